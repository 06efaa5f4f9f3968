"""Tests for price parsing, diaper classification and URL normalization."""

from decimal import Decimal

import pytest

from diaper_pricer.scrapers.utils.normalizer import (
    DiaperClassifier,
    PriceNormalizer,
    normalize_url,
    price_per_unit,
)


# ============================================================================
# PriceNormalizer
# ============================================================================


class TestCleanPriceString:
    """Tests for PriceNormalizer.clean_price_string()."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("$54.97", Decimal("54.97")),
            ("CAD 1,049.99", Decimal("1049.99")),
            ("54,97 $", Decimal("54.97")),
            ("1 234,56 $", Decimal("1234.56")),
            ("$1,049", Decimal("1049.00")),
            ("Now $39.99 Was $49.99", Decimal("39.99")),
            (54.97, Decimal("54.97")),
            (60, Decimal("60.00")),
        ],
    )
    def test_parses_canadian_formats(self, raw, expected):
        assert PriceNormalizer.clean_price_string(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "Free", "$0.00", 0, True])
    def test_rejects_unparseable_or_non_positive(self, raw):
        assert PriceNormalizer.clean_price_string(raw) is None

    def test_combine_whole_fraction(self):
        assert PriceNormalizer.combine_whole_fraction("54.", "97") == Decimal("54.97")

    def test_combine_whole_without_fraction(self):
        assert PriceNormalizer.combine_whole_fraction("1,049", "") == Decimal("1049.00")

    def test_combine_missing_whole(self):
        assert PriceNormalizer.combine_whole_fraction("", "97") is None


class TestPricePerUnit:
    """Tests for price_per_unit()."""

    def test_rounds_half_up_to_four_places(self):
        # 54.97 / 198 = 0.277626...
        assert price_per_unit(Decimal("54.97"), 198) == Decimal("0.2776")

    def test_exact_division(self):
        assert price_per_unit(Decimal("60.00"), 120) == Decimal("0.5000")

    def test_half_up(self):
        # 0.00005 rounds away from zero
        assert price_per_unit(Decimal("0.0001"), 2) == Decimal("0.0001")

    @pytest.mark.parametrize("count", [0, -5])
    def test_non_positive_count_raises(self, count):
        with pytest.raises(ValueError):
            price_per_unit(Decimal("10.00"), count)


# ============================================================================
# DiaperClassifier
# ============================================================================


class TestDiaperClassifier:
    """Tests for DiaperClassifier.is_diaper_product()."""

    def test_accepts_brand_diaper_title(self):
        assert DiaperClassifier.is_diaper_product("Pampers Baby Dry Diapers Size 3, 198 Count", "Pampers")

    def test_brand_with_apostrophe(self):
        assert DiaperClassifier.is_diaper_product("Parent's Choice Premium Diapers, Size 4", "Parent's Choice")

    def test_nappies_keyword(self):
        assert DiaperClassifier.is_diaper_product("Huggies Little Movers Nappies Size 5", "Huggies")

    def test_rejects_other_brand(self):
        assert not DiaperClassifier.is_diaper_product("Huggies Snug & Dry Diapers Size 3", "Pampers")

    def test_rejects_missing_diaper_keyword(self):
        assert not DiaperClassifier.is_diaper_product("Pampers Sensitive Baby Lotion", "Pampers")

    @pytest.mark.parametrize(
        "title",
        [
            "Pampers Sensitive Baby Wipes for Diapers, 336 Count",
            "Huggies Little Swimmers Swim Diapers Size 4",
            "Pampers Easy Ups Training Pants Diapers Size 4T-5T",
            "Huggies Pull-Ups Potty Training Diapers",
        ],
    )
    def test_rejects_adjacent_categories(self, title):
        brand = "Pampers" if "Pampers" in title else "Huggies"
        assert not DiaperClassifier.is_diaper_product(title, brand)

    def test_empty_inputs(self):
        assert not DiaperClassifier.is_diaper_product("", "Pampers")
        assert not DiaperClassifier.is_diaper_product("Pampers Diapers", "")


# ============================================================================
# URL normalization
# ============================================================================


class TestNormalizeUrl:
    """Tests for normalize_url()."""

    def test_resolves_relative_path(self):
        assert normalize_url("/dp/B07XYZ1234", "https://www.amazon.ca") == "https://www.amazon.ca/dp/B07XYZ1234"

    def test_strips_tracking_parameters(self):
        url = "https://www.walmart.ca/en/ip/6000200832288?utm_source=google&ref=abc&selectedSellerId=0"
        assert normalize_url(url) == "https://www.walmart.ca/en/ip/6000200832288?selectedSellerId=0"

    def test_drops_fragment(self):
        assert normalize_url("https://well.ca/products/pampers.html#reviews") == "https://well.ca/products/pampers.html"

    def test_absolute_url_ignores_base(self):
        url = "https://www.costco.ca/kirkland-signature-diapers.product.100.html"
        assert normalize_url(url, "https://www.amazon.ca") == url

    def test_empty_url_passthrough(self):
        assert normalize_url("", "https://www.amazon.ca") == ""

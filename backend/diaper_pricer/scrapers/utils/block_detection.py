"""Anti-bot challenge detection for fetched pages."""

from typing import Iterable, Optional

# Lowercase substrings seen on CAPTCHA / denial pages of the covered retailers
BLOCK_MARKERS = [
    "captcha",
    "access denied",
    "too many requests",
    "enter the characters you see below",
    "type the characters you see",
    "sorry, we just need to make sure you're not a robot",
    "to discuss automated access to amazon data",
    "request unsuccessful. incapsula",
    "pardon our interruption",
    "security check",
    "unusual traffic",
]


def detect_block(
    body: str,
    status_code: Optional[int] = None,
    expect_html: bool = True,
    min_html_length: int = 1000,
    markers: Iterable[str] = BLOCK_MARKERS,
) -> Optional[str]:
    """Classify a response as an anti-bot challenge.

    Args:
        body: Response text
        status_code: HTTP status, if known
        expect_html: Apply the short-body check (listing pages are never tiny)
        min_html_length: Bodies shorter than this are treated as blocked
        markers: Lowercase substrings that identify a challenge page

    Returns:
        The reason the response looks blocked, or None if it looks genuine
    """
    if status_code == 403:
        return "http_403"

    lowered = (body or "").lower()
    for marker in markers:
        if marker in lowered:
            return marker

    if expect_html and len(body or "") < min_html_length:
        return "short_body"

    return None

"""Register all retailer adapters with the factory.

This module should be imported during application startup to register
all available adapters with the adapter factory.
"""

from typing import Optional

import structlog

from diaper_pricer.scrapers.factory import AdapterFactory, get_adapter_factory
from diaper_pricer.scrapers.adapters import (
    AmazonAdapter,
    CanadianTireAdapter,
    CostcoAdapter,
    ShoppersAdapter,
    SuperstoreAdapter,
    WalmartAdapter,
    WellAdapter,
)

logger = structlog.get_logger(__name__)


ALL_ADAPTERS = [
    AmazonAdapter,
    WalmartAdapter,
    CostcoAdapter,
    ShoppersAdapter,
    SuperstoreAdapter,
    CanadianTireAdapter,
    WellAdapter,
]


def register_all_adapters(factory: Optional[AdapterFactory] = None) -> AdapterFactory:
    """Register all available adapters with the factory.

    This should be called during application startup.

    Args:
        factory: Factory to populate (default: the global one)

    Returns:
        The populated factory
    """
    factory = factory or get_adapter_factory()

    for adapter_class in ALL_ADAPTERS:
        try:
            factory.register_adapter(adapter_class.retailer_key, adapter_class)
        except Exception as e:
            logger.error(
                "adapter_registration_failed",
                retailer_key=adapter_class.retailer_key,
                error=str(e),
                exc_info=True,
            )

    logger.info(
        "all_adapters_registered",
        count=len(factory.get_registered_retailers()),
        retailers=factory.get_registered_retailers(),
    )
    return factory

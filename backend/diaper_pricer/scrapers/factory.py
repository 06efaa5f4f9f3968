"""Factory for creating and managing retailer adapter instances."""

from typing import Dict, Iterable, List, Optional, Type

import structlog

from diaper_pricer.scrapers.base import BaseRetailerAdapter
from diaper_pricer.scrapers.fetcher import ResilientFetcher
from diaper_pricer.scrapers.utils import DomainRateLimiter
from diaper_pricer.scrapers.utils.browser_manager import BrowserManager, get_browser_manager


logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Factory for creating and configuring adapter instances.

    Owns the resources shared by every adapter in a job: one fetcher with a
    per-domain rate limiter, and the Playwright browser for JS-rendered sites.
    """

    def __init__(
        self,
        fetcher: Optional[ResilientFetcher] = None,
        browser_manager: Optional[BrowserManager] = None,
    ):
        """Initialize the adapter factory.

        Args:
            fetcher: Shared fetcher (default: one with a DomainRateLimiter)
            browser_manager: Browser for browser adapters (default: global singleton)
        """
        self.fetcher = fetcher or ResilientFetcher(rate_limiter=DomainRateLimiter())
        self._browser_manager = browser_manager

        # Registry of adapter classes
        self._adapter_registry: Dict[str, Type[BaseRetailerAdapter]] = {}

    @property
    def browser_manager(self) -> BrowserManager:
        if self._browser_manager is None:
            self._browser_manager = get_browser_manager()
        return self._browser_manager

    def register_adapter(self, retailer_key: str, adapter_class: Type[BaseRetailerAdapter]) -> None:
        """Register an adapter class for a retailer.

        Args:
            retailer_key: Registry key (e.g., "walmart")
            adapter_class: Adapter class (must inherit from BaseRetailerAdapter)
        """
        if not issubclass(adapter_class, BaseRetailerAdapter):
            raise ValueError(f"Adapter class must inherit from BaseRetailerAdapter: {adapter_class}")

        self._adapter_registry[retailer_key] = adapter_class
        logger.debug("adapter_registered", retailer_key=retailer_key, retailer=adapter_class.retailer_name)

    def create_adapter(self, retailer_key: str, **kwargs) -> Optional[BaseRetailerAdapter]:
        """Create and configure an adapter instance.

        Args:
            retailer_key: Registry key
            **kwargs: Passed through to the adapter (e.g., delay_range)

        Returns:
            Configured adapter instance, or None if not registered
        """
        adapter_class = self._adapter_registry.get(retailer_key)
        if not adapter_class:
            logger.warning("adapter_not_found", retailer_key=retailer_key)
            return None

        if adapter_class.uses_browser:
            kwargs.setdefault("browser_manager", self.browser_manager)

        adapter = adapter_class(self.fetcher, **kwargs)
        logger.debug("adapter_created", retailer_key=retailer_key)
        return adapter

    def create_adapters(self, retailer_keys: Optional[Iterable[str]] = None, **kwargs) -> List[BaseRetailerAdapter]:
        """Create adapters for the given keys, or for every registered retailer.

        Unknown keys are logged and skipped.
        """
        keys = list(retailer_keys) if retailer_keys else self.get_registered_retailers()
        adapters = []
        for key in keys:
            adapter = self.create_adapter(key, **kwargs)
            if adapter:
                adapters.append(adapter)
        return adapters

    def get_registered_retailers(self) -> List[str]:
        """Get registered retailer keys in registration order."""
        return list(self._adapter_registry.keys())

    def get_retailer_names(self) -> Dict[str, str]:
        """Map registry keys to persisted retailer names."""
        return {key: cls.retailer_name for key, cls in self._adapter_registry.items()}

    def has_adapter(self, retailer_key: str) -> bool:
        """Check if an adapter is registered for a retailer."""
        return retailer_key in self._adapter_registry

    async def close(self) -> None:
        """Close the shared fetcher and, if it was started, the browser."""
        await self.fetcher.close()
        if self._browser_manager is not None:
            await self._browser_manager.stop()


# Global factory instance
adapter_factory = AdapterFactory()


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory instance.

    Returns:
        AdapterFactory instance
    """
    return adapter_factory

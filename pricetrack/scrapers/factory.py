"""Factory for creating site adapter instances."""

from typing import Callable, Dict, List, Optional

import structlog

from pricetrack.scrapers.base import SiteAdapter


logger = structlog.get_logger(__name__)

AdapterClass = Callable[[], SiteAdapter]


class AdapterFactory:
    """Registry of adapter classes keyed by site id.

    A fresh adapter is created per run so per-run state (such as a
    remembered panel URL) never leaks between runs.
    """

    def __init__(self):
        self._adapter_registry: Dict[str, AdapterClass] = {}

    def register_adapter(self, site_id: str, adapter_class: AdapterClass) -> None:
        """Register an adapter class for a site.

        Args:
            site_id: Site identifier (e.g., "romprod")
            adapter_class: Class whose instances satisfy SiteAdapter
        """
        if getattr(adapter_class, "site_id", None) != site_id:
            raise ValueError(f"Adapter {adapter_class!r} does not declare site_id '{site_id}'")

        self._adapter_registry[site_id] = adapter_class
        logger.debug("adapter_registered", site_id=site_id, adapter_class=adapter_class.__name__)

    def create_adapter(self, site_id: str) -> Optional[SiteAdapter]:
        """Create an adapter instance, or None if none is registered."""
        adapter_class = self._adapter_registry.get(site_id)
        if not adapter_class:
            logger.warning("adapter_not_found", site_id=site_id)
            return None
        return adapter_class()

    def get_registered_sites(self) -> List[str]:
        return list(self._adapter_registry.keys())

    def has_adapter(self, site_id: str) -> bool:
        return site_id in self._adapter_registry


# Global factory instance
adapter_factory = AdapterFactory()


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory instance."""
    return adapter_factory

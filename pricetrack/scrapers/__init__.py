"""Browser scraping for the tracked wholesale marketplaces.

This package provides:
- The SiteAdapter interface and one adapter per marketplace
- Utility modules for price parsing, sessions, credentials and page probing
- Factory for creating adapter instances
- The scrape runner that streams price events to stdout
"""

from .base import PriceResult, ProductLinkTarget, SiteAdapter
from .factory import AdapterFactory, adapter_factory, get_adapter_factory

__all__ = [
    # Interface
    "SiteAdapter",
    # Data structures
    "PriceResult",
    "ProductLinkTarget",
    # Factory
    "AdapterFactory",
    "adapter_factory",
    "get_adapter_factory",
]

"""Register all site adapters with the factory.

Called once by the scrape runner before any site is processed.
"""

from typing import Optional

import structlog

from pricetrack.scrapers.factory import AdapterFactory, get_adapter_factory
from pricetrack.scrapers.adapters import (
    FoodexAdapter,
    MastersaleAdapter,
    MaxyWholesaleAdapter,
    RomegaFoodsAdapter,
    RomprodAdapter,
)

logger = structlog.get_logger(__name__)


def register_all_adapters(factory: Optional[AdapterFactory] = None) -> None:
    """Register every known adapter, with the global factory by default."""
    factory = factory or get_adapter_factory()

    adapters = [
        RomprodAdapter,
        MastersaleAdapter,
        MaxyWholesaleAdapter,
        RomegaFoodsAdapter,
        FoodexAdapter,
    ]

    for adapter_class in adapters:
        factory.register_adapter(adapter_class.site_id, adapter_class)

    logger.info(
        "all_adapters_registered",
        count=len(factory.get_registered_sites()),
        sites=factory.get_registered_sites(),
    )

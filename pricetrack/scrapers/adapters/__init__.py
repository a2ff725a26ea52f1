"""Site-specific adapter implementations.

Each adapter module provides a plain class satisfying
:class:`pricetrack.scrapers.base.SiteAdapter`.
"""

from .romprod import RomprodAdapter
from .mastersale import MastersaleAdapter
from .maxywholesale import MaxyWholesaleAdapter
from .romegafoods import RomegaFoodsAdapter
from .foodex import FoodexAdapter

__all__ = [
    "RomprodAdapter",
    "MastersaleAdapter",
    "MaxyWholesaleAdapter",
    "RomegaFoodsAdapter",
    "FoodexAdapter",
]

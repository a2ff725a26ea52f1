"""SQLAlchemy models for the price tracker.

All models are imported here so ``Base.metadata`` knows every table.
"""

from pricetrack.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin
from pricetrack.models.site import Site
from pricetrack.models.product import Product
from pricetrack.models.product_link import ProductLink
from pricetrack.models.price_snapshot import PriceSnapshot
from pricetrack.models.price_change import PriceChange
from pricetrack.models.query_run import QueryRun, RUN_DONE, RUN_ERROR, RUN_RUNNING

__all__ = [
    "Base",
    "IntegerPrimaryKeyMixin",
    "TimestampMixin",
    "Site",
    "Product",
    "ProductLink",
    "PriceSnapshot",
    "PriceChange",
    "QueryRun",
    "RUN_RUNNING",
    "RUN_DONE",
    "RUN_ERROR",
]

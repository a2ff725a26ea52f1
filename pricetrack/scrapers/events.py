"""Writing runner events to the output stream."""

import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

from pricetrack.schemas.events import EventModel, LoginErrorEvent, PriceEvent, ScrapeErrorEvent
from pricetrack.scrapers.base import PriceResult, ProductLinkTarget
from pricetrack.scrapers.utils.normalizer import format_gbp


class StreamEventSink:
    """Writes one JSON event per line and flushes after each.

    Flushing per event lets the reading side persist prices while the
    run is still going.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream or sys.stdout
        self.count = 0

    def emit(self, event: EventModel) -> None:
        self._stream.write(event.to_line() + "\n")
        self._stream.flush()
        self.count += 1


def build_price_event(link: ProductLinkTarget, result: PriceResult, ts: Optional[datetime] = None) -> PriceEvent:
    ts = ts or datetime.now(timezone.utc)
    return PriceEvent(
        id=link.id,
        ts=ts.isoformat(),
        site_id=link.site_id,
        name=link.name,
        sku=link.sku,
        url=link.url,
        search_query=link.search_query,
        amount=float(result.amount),
        pack_price=float(result.pack_price) if result.pack_price is not None else None,
        pack_size=result.pack_size,
        unit_label=result.unit_label,
        pack_label=result.pack_label,
        formatted=format_gbp(result.amount),
    )


def build_scrape_error(link: ProductLinkTarget, message: str) -> ScrapeErrorEvent:
    return ScrapeErrorEvent(site_id=link.site_id, url=link.url, message=message)


def build_login_error(site_id: str, message: str) -> LoginErrorEvent:
    return LoginErrorEvent(site_id=site_id, message=message)

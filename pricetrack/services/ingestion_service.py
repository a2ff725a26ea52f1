"""Ingestion of scrape-runner events into the database.

Every price observation, whether it came from the runner's event stream
or from the manual capture endpoint, is applied by
:meth:`IngestionPipeline.apply_observation` in its own transaction:
overwrite the link's current prices, append a snapshot, and append a
change record when a previous unit price existed and differs.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterable, Dict, Optional, Union

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricetrack.core.exceptions import LinkNotFound, MalformedEvent, PersistenceFailure
from pricetrack.models import PriceChange, PriceSnapshot, ProductLink, QueryRun, RUN_DONE, RUN_ERROR
from pricetrack.schemas.events import LOGIN_ERROR, SCRAPE_ERROR
from pricetrack.scrapers.utils.normalizer import FOUR_PLACES, clean_label, coerce_decimal, coerce_int

logger = structlog.get_logger(__name__)


def parse_timestamp(value: Any) -> datetime:
    """Event timestamp as an aware datetime; falls back to now."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def same_price(old: Optional[Decimal], new: Decimal) -> bool:
    if old is None:
        return False
    return Decimal(old).quantize(FOUR_PLACES) == Decimal(new).quantize(FOUR_PLACES)


@dataclass
class PriceObservation:
    """One price reading for one product link, ready to persist."""

    link_id: int
    unit_price: Decimal
    captured_at: datetime
    pack_price: Optional[Decimal] = None
    pack_size: Optional[int] = None
    unit_label: Optional[str] = None
    pack_label: Optional[str] = None

    @classmethod
    def from_event(cls, payload: Dict[str, Any]) -> "PriceObservation":
        """Build from a runner price event.

        Raises:
            MalformedEvent: If the id or the amount is missing or unusable
        """
        link_id = coerce_int(payload.get("id"))
        if link_id is None:
            raise MalformedEvent(f"missing or invalid id (url={payload.get('url')})")

        amount = coerce_decimal(payload.get("amount"))
        if amount is None or amount < 0:
            raise MalformedEvent(f"invalid amount for id {link_id}: {payload.get('amount')!r}")

        pack_size = coerce_int(payload.get("packSize"))
        pack_price = coerce_decimal(payload.get("packPrice"))
        return cls(
            link_id=link_id,
            unit_price=amount,
            captured_at=parse_timestamp(payload.get("ts")),
            pack_price=pack_price if pack_price is not None and pack_price >= 0 else None,
            pack_size=pack_size if pack_size and pack_size > 0 else None,
            unit_label=clean_label(payload.get("unitLabel")),
            pack_label=clean_label(payload.get("packLabel")),
        )


@dataclass
class AppliedObservation:
    """What :meth:`IngestionPipeline.apply_observation` wrote."""

    link_id: int
    old: Optional[Decimal]
    new: Decimal
    changed: bool


@dataclass
class IngestionStats:
    """Counters for one stream."""

    lines: int = 0
    processed: int = 0
    changes: int = 0
    failures: int = 0


async def apply_observation(session: AsyncSession, observation: PriceObservation) -> AppliedObservation:
    """Write one observation using ``session``; the caller owns the transaction.

    Raises:
        LinkNotFound: If the link does not exist (nothing is written)
    """
    link = await session.get(ProductLink, observation.link_id)
    if link is None:
        raise LinkNotFound(observation.link_id)

    old = link.last_price
    new = observation.unit_price

    link.last_price = new
    link.last_price_pack = observation.pack_price
    link.pack_size = observation.pack_size
    link.unit_label = observation.unit_label
    link.pack_label = observation.pack_label
    link.last_checked = observation.captured_at

    session.add(
        PriceSnapshot(
            product_link_id=link.id,
            unit_price=new,
            pack_price=observation.pack_price,
            pack_size=observation.pack_size,
            captured_at=observation.captured_at,
        )
    )

    changed = old is not None and not same_price(old, new)
    if changed:
        session.add(
            PriceChange(
                product_link_id=link.id,
                old=old,
                new=new,
                changed_at=observation.captured_at,
            )
        )

    return AppliedObservation(link_id=link.id, old=old, new=new, changed=changed)


class IngestionPipeline:
    """Consumes one run's event stream and keeps the run record current.

    Lines are handled strictly in arrival order. A bad line is counted
    as a failure and never stops the stream.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        run_id: Optional[int] = None,
        total: int = 0,
    ):
        self.session_factory = session_factory
        self.run_id = run_id
        self.total = total
        self.stats = IngestionStats()
        self.logger = logger.bind(service="ingestion_pipeline", run_id=run_id)

    async def apply_observation(self, observation: PriceObservation) -> AppliedObservation:
        """Apply one observation in its own transaction.

        Raises:
            PersistenceFailure: If the link is missing or the write fails;
                the transaction is rolled back
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    return await apply_observation(session, observation)
        except PersistenceFailure:
            raise
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"could not store price for link {observation.link_id}: {e}")

    async def handle_line(self, line: Union[str, bytes]) -> None:
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        text = line.strip()
        if not text or not text.startswith("{"):
            return

        self.stats.lines += 1
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            self.stats.failures += 1
            self.logger.warning("event_parse_failed", error=str(e), line=text[:200])
            return
        if not isinstance(payload, dict):
            self.stats.failures += 1
            self.logger.warning("event_not_an_object", line=text[:200])
            return

        event_type = payload.get("type")
        if event_type == SCRAPE_ERROR:
            self.stats.failures += 1
            self.logger.warning(
                "scrape_error_reported",
                site_id=payload.get("siteId"),
                url=payload.get("url"),
                message=payload.get("message"),
            )
            return
        if event_type == LOGIN_ERROR:
            self.stats.failures += 1
            self.logger.warning("login_error_reported", site_id=payload.get("siteId"), message=payload.get("message"))
            return

        try:
            observation = PriceObservation.from_event(payload)
        except MalformedEvent as e:
            self.stats.failures += 1
            self.logger.warning("event_dropped", reason=e.message)
            return

        try:
            applied = await self.apply_observation(observation)
        except PersistenceFailure as e:
            self.stats.failures += 1
            self.logger.error("price_persist_failed", link_id=observation.link_id, error=e.message)
            return

        self.stats.processed += 1
        if applied.changed:
            self.stats.changes += 1
            self.logger.info(
                "price_changed",
                link_id=applied.link_id,
                old=str(applied.old),
                new=str(applied.new),
            )
        await self._update_note(self.progress_note())

    async def consume(self, lines: AsyncIterable[Union[str, bytes]]) -> IngestionStats:
        """Handle every line of ``lines`` in order."""
        async for line in lines:
            await self.handle_line(line)
        return self.stats

    def progress_note(self) -> Optional[str]:
        if self.total <= 0:
            return None
        return f"{self.stats.processed}/{self.total}"

    async def finalize(self, exit_code: Optional[int]) -> str:
        """Close the run: done only for a clean exit with no failures.

        Returns:
            The final run status
        """
        status = RUN_DONE if exit_code == 0 and self.stats.failures == 0 else RUN_ERROR

        if self.run_id is not None:
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        run = await session.get(QueryRun, self.run_id)
                        if run is not None:
                            run.status = status
                            run.finished_at = datetime.now(timezone.utc)
                            note = self.progress_note()
                            if note is not None:
                                run.note = note
            except SQLAlchemyError as e:
                self.logger.error("run_finalize_failed", error=str(e), exc_info=True)

        self.logger.info(
            "ingestion_finished",
            status=status,
            exit_code=exit_code,
            lines=self.stats.lines,
            processed=self.stats.processed,
            changes=self.stats.changes,
            failures=self.stats.failures,
        )
        return status

    async def _update_note(self, note: Optional[str]) -> None:
        if self.run_id is None or note is None:
            return
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    run = await session.get(QueryRun, self.run_id)
                    if run is not None:
                        run.note = note
        except SQLAlchemyError as e:
            self.logger.warning("run_note_update_failed", error=str(e))

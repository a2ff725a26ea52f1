"""Scrape run tracking."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from pricetrack.models.base import Base, IntegerPrimaryKeyMixin

RUN_RUNNING = "running"
RUN_DONE = "done"
RUN_ERROR = "error"


class QueryRun(IntegerPrimaryKeyMixin, Base):
    """Tracks one orchestration invocation.

    Status moves running -> done only on a clean exit with zero
    event-level failures; anything else (including an administrative
    reset) ends in error.
    """

    __tablename__ = "query_runs"

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RUN_RUNNING,
        index=True,
        comment="Status: 'running', 'done', 'error'",
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the run finished (success or failure)",
    )
    eta_sec: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Estimated duration in seconds")
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Free-form progress note")

    def __repr__(self) -> str:
        return f"<QueryRun(id={self.id}, status='{self.status}', started_at={self.started_at})>"

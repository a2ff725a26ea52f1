"""Starting scrape runs and supervising their ingestion.

A run is a :class:`QueryRun` row plus a runner child process. The HTTP
request that starts it returns immediately; a background task owned by
:class:`RunService` feeds the child's stdout into an
:class:`IngestionPipeline` and closes the run when the child exits.
"""

import asyncio
import json
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Set

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from pricetrack.config import settings
from pricetrack.core.exceptions import RunInProgress
from pricetrack.db.session import async_session_factory
from pricetrack.models import ProductLink, QueryRun, RUN_DONE, RUN_ERROR, RUN_RUNNING, Site
from pricetrack.scrapers.base import ProductLinkTarget
from pricetrack.scrapers.sites import MANUAL_ONLY_SITE, require_automated_site
from pricetrack.services.ingestion_service import IngestionPipeline

logger = structlog.get_logger(__name__)

RESET_NOTE = "manual reset"


@dataclass
class RunStarted:
    run_id: int
    count: int
    site_id: Optional[str]


async def load_run_links(session: AsyncSession, site_id: Optional[str] = None) -> List[ProductLinkTarget]:
    """Links to hand to the runner, ordered by id.

    Without a site filter every automated site is included; the
    manual-only site never is.
    """
    query = (
        select(ProductLink)
        .join(Site, ProductLink.site_id == Site.id)
        .options(selectinload(ProductLink.product), selectinload(ProductLink.site))
        .order_by(ProductLink.id)
    )
    if site_id:
        query = query.where(Site.slug == site_id)
    else:
        query = query.where(Site.slug != MANUAL_ONLY_SITE)

    result = await session.execute(query)
    return [
        ProductLinkTarget(
            id=link.id,
            name=link.product.name if link.product else "Unknown",
            site_id=link.site.slug,
            url=link.url,
            sku=link.product.sku if link.product else None,
            selector=link.selector,
            search_query=link.search_query,
        )
        for link in result.scalars().all()
    ]


def initial_note(site_id: Optional[str], total: int) -> str:
    prefix = f"site:{site_id}" if site_id else "all-sites"
    return f"{prefix}:{total}" if total else f"{prefix}:empty"


class RunService:
    """Owns the background tasks that supervise runner processes."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        links_path: Optional[str] = None,
        python_executable: Optional[str] = None,
    ):
        self.session_factory = session_factory or async_session_factory
        self.links_path = Path(links_path or settings.RUN_LINKS_PATH)
        self.python_executable = python_executable or sys.executable
        self._tasks: Set[asyncio.Task] = set()
        self._start_lock = asyncio.Lock()
        self.logger = logger.bind(service="run_service")

    @property
    def active_tasks(self) -> int:
        return len(self._tasks)

    async def start_run(self, site_id: Optional[str] = None) -> RunStarted:
        """Create a run and start the runner in the background.

        Only one run is active at a time, so browser sessions and the links
        file are never shared between runner processes.

        Raises:
            ConfigurationError: For an unknown or manual-only site id
            RunInProgress: While another run is still running
        """
        if site_id:
            require_automated_site(site_id)

        async with self._start_lock:
            return await self._create_run(site_id)

    async def _create_run(self, site_id: Optional[str]) -> RunStarted:
        async with self.session_factory() as session:
            active = await self.running_run_id(session)
            if active is not None or any(not task.done() for task in self._tasks):
                raise RunInProgress(active)
            links = await load_run_links(session, site_id)

        total = len(links)
        self.write_links_file(links)

        async with self.session_factory() as session:
            async with session.begin():
                run = QueryRun(
                    status=RUN_RUNNING,
                    eta_sec=settings.estimate_eta(total),
                    note=initial_note(site_id, total),
                )
                if total == 0:
                    run.status = RUN_DONE
                    run.finished_at = datetime.now(timezone.utc)
                session.add(run)
                await session.flush()
                run_id = run.id

        self.logger.info("run_created", run_id=run_id, site_id=site_id, count=total)

        if total > 0:
            task = asyncio.create_task(self._start_and_supervise(run_id, site_id, total))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return RunStarted(run_id=run_id, count=total, site_id=site_id)

    async def running_run_id(self, session: AsyncSession) -> Optional[int]:
        result = await session.execute(
            select(QueryRun.id).where(QueryRun.status == RUN_RUNNING).order_by(QueryRun.id.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    def write_links_file(self, links: List[ProductLinkTarget]) -> None:
        self.links_path.parent.mkdir(parents=True, exist_ok=True)
        self.links_path.write_text(
            json.dumps([link.to_dict() for link in links], indent=2),
            encoding="utf-8",
        )

    def runner_command(self, site_id: Optional[str]) -> List[str]:
        command = [self.python_executable, "-m", "pricetrack.scrapers.runner", "--links", str(self.links_path)]
        if site_id:
            command += ["--site", site_id]
        return command

    async def spawn(self, site_id: Optional[str]) -> asyncio.subprocess.Process:
        env = dict(os.environ)
        env["PYTHONUNBUFFERED"] = "1"
        return await asyncio.create_subprocess_exec(
            *self.runner_command(site_id),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )

    async def _start_and_supervise(self, run_id: int, site_id: Optional[str], total: int) -> str:
        pipeline = IngestionPipeline(self.session_factory, run_id=run_id, total=total)
        try:
            process = await self.spawn(site_id)
        except OSError as e:
            self.logger.error("runner_spawn_failed", run_id=run_id, error=str(e), exc_info=True)
            return await pipeline.finalize(None)
        return await self.supervise(pipeline, process)

    async def supervise(self, pipeline: IngestionPipeline, process: asyncio.subprocess.Process) -> str:
        """Feed the child's stdout to ``pipeline`` until it exits.

        Returns:
            The final run status
        """
        relay = asyncio.create_task(self._relay_stderr(process, pipeline.run_id))
        try:
            await pipeline.consume(process.stdout)
            exit_code = await process.wait()
        except asyncio.CancelledError:
            self.logger.warning("run_supervision_cancelled", run_id=pipeline.run_id)
            await self._stop_process(process)
            relay.cancel()
            await pipeline.finalize(None)
            raise
        except Exception as e:
            self.logger.error("run_supervision_failed", run_id=pipeline.run_id, error=str(e), exc_info=True)
            await self._stop_process(process)
            exit_code = None

        await relay

        self.logger.info("runner_exited", run_id=pipeline.run_id, exit_code=exit_code)
        return await pipeline.finalize(exit_code)

    async def _stop_process(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            process.kill()
            await process.wait()

    async def _relay_stderr(self, process: asyncio.subprocess.Process, run_id: Optional[int]) -> None:
        if process.stderr is None:
            return
        async for raw in process.stderr:
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                self.logger.info("runner_log", run_id=run_id, line=line)

    async def reset_stuck_runs(self) -> int:
        """Mark every running run as errored.

        Returns:
            Number of runs reset
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(QueryRun)
                    .where(QueryRun.status == RUN_RUNNING)
                    .values(
                        status=RUN_ERROR,
                        finished_at=datetime.now(timezone.utc),
                        note=RESET_NOTE,
                    )
                )
        count = result.rowcount or 0
        self.logger.info("runs_reset", count=count)
        return count

    async def shutdown(self) -> None:
        """Cancel supervision tasks (application shutdown).

        Cancelled supervisors kill their runner and mark the run as errored.
        """
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


# Singleton instance
_run_service: Optional[RunService] = None


def get_run_service() -> RunService:
    """Get the global RunService singleton."""
    global _run_service
    if _run_service is None:
        _run_service = RunService()
    return _run_service

"""Scrape runner: logs into each site and streams price events to stdout.

Runs as a child process of the API. stdout carries nothing but NDJSON
events (see :mod:`pricetrack.schemas.events`); all logging goes to
stderr.

Usage:
    python -m pricetrack.scrapers.runner --links data/products.json
    python -m pricetrack.scrapers.runner --links data/products.json --site romprod
"""

import argparse
import asyncio
import json
import sys
from collections import OrderedDict
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional

import structlog
from dotenv import load_dotenv
from playwright.async_api import BrowserContext, Page
from playwright.async_api import Error as PlaywrightError

from pricetrack.config import settings
from pricetrack.core.exceptions import (
    AuthenticationFailure,
    ConfigurationError,
    ExtractionFailure,
    MissingCredentials,
)
from pricetrack.core.logging import configure_logging
from pricetrack.scrapers.base import ProductLinkTarget, SiteAdapter
from pricetrack.scrapers.events import (
    StreamEventSink,
    build_login_error,
    build_price_event,
    build_scrape_error,
)
from pricetrack.scrapers.factory import AdapterFactory, get_adapter_factory
from pricetrack.scrapers.register_adapters import register_all_adapters
from pricetrack.scrapers.sites import MANUAL_ONLY_SITE, require_automated_site, resolve_site
from pricetrack.scrapers.utils.browser_manager import BrowserManager
from pricetrack.scrapers.utils.credentials import CredentialProvider
from pricetrack.scrapers.utils.retry import login_retrying
from pricetrack.scrapers.utils.session_store import SessionStore

logger = structlog.get_logger(__name__)


@dataclass
class RunSummary:
    """Counters logged when a run finishes."""

    sites_attempted: int = 0
    links: int = 0
    successes: int = 0
    failures: int = 0
    login_failures: int = 0


def plan_run(
    links: List[ProductLinkTarget],
    site_filter: Optional[str] = None,
) -> "OrderedDict[str, List[ProductLinkTarget]]":
    """Group links by site, in first-seen order.

    Validation happens here, before any browser is opened.

    Raises:
        ConfigurationError: For an unknown or manual-only site filter, or
            links that reference an unknown site
    """
    if site_filter:
        require_automated_site(site_filter)
        links = [link for link in links if link.site_id == site_filter]

    unknown = sorted({link.site_id for link in links if resolve_site(link.site_id) is None})
    if unknown:
        raise ConfigurationError(f"Links reference unknown sites: {', '.join(unknown)}")

    groups: "OrderedDict[str, List[ProductLinkTarget]]" = OrderedDict()
    for link in links:
        if link.site_id == MANUAL_ONLY_SITE:
            continue
        groups.setdefault(link.site_id, []).append(link)

    skipped = sum(1 for link in links if link.site_id == MANUAL_ONLY_SITE)
    if skipped:
        logger.warning("manual_only_links_skipped", site_id=MANUAL_ONLY_SITE, count=skipped)
    return groups


class ScrapeOrchestrator:
    """Processes sites one after another, each in its own browser context.

    A site that cannot be authenticated is reported and skipped; a link
    that cannot be extracted is reported and the next link is tried.
    """

    def __init__(
        self,
        sink: StreamEventSink,
        browser: BrowserManager,
        session_store: SessionStore,
        credentials: CredentialProvider,
        factory: Optional[AdapterFactory] = None,
    ):
        self.sink = sink
        self.browser = browser
        self.session_store = session_store
        self.credentials = credentials
        self.factory = factory or get_adapter_factory()
        self.logger = logger.bind(service="scrape_orchestrator")

    async def run(
        self,
        links: List[ProductLinkTarget],
        site_filter: Optional[str] = None,
    ) -> RunSummary:
        groups = plan_run(links, site_filter)
        summary = RunSummary()

        self.logger.info(
            "run_started",
            sites=list(groups.keys()),
            links=sum(len(v) for v in groups.values()),
        )

        try:
            for site_id, site_links in groups.items():
                summary.sites_attempted += 1
                summary.links += len(site_links)
                await self.process_site(site_id, site_links, summary)
        finally:
            await self.browser.stop()

        self.logger.info("run_summary", **asdict(summary))
        return summary

    async def process_site(
        self,
        site_id: str,
        links: List[ProductLinkTarget],
        summary: RunSummary,
    ) -> None:
        log = self.logger.bind(site_id=site_id)
        adapter = self.factory.create_adapter(site_id)
        if adapter is None:
            raise ConfigurationError(f"No adapter registered for site: {site_id}")

        stored_state = self.session_store.read(site_id)

        async with self.browser.site_context(site_id, stored_state) as context:
            try:
                page = await context.new_page()
                if not await self.authenticate(adapter, page):
                    summary.login_failures += 1
                    summary.failures += len(links)
                    return

                for link in links:
                    if await self.scrape_link(adapter, page, link):
                        summary.successes += 1
                    else:
                        summary.failures += 1
            finally:
                await self.persist_session(site_id, context)

        log.info("site_complete", links=len(links))

    async def authenticate(self, adapter: SiteAdapter, page: Page) -> bool:
        """Reuse the restored session or log in with bounded retries.

        Returns:
            True if the page is authenticated; otherwise a login-error
            event has been emitted
        """
        site_id = adapter.site_id
        log = self.logger.bind(site_id=site_id)

        try:
            if await adapter.is_logged_in(page):
                log.info("session_reused")
                return True
        except PlaywrightError as e:
            log.warning("session_check_failed", error=str(e))

        try:
            credentials = self.credentials.resolve(site_id)
            async for attempt in login_retrying():
                with attempt:
                    await adapter.login(page, credentials)
        except (MissingCredentials, ConfigurationError, AuthenticationFailure) as e:
            log.warning("login_failed", error=e.message)
            self.sink.emit(build_login_error(site_id, e.message))
            return False
        except PlaywrightError as e:
            log.warning("login_failed", error=str(e))
            self.sink.emit(build_login_error(site_id, f"{site_id} login failed: {e}"))
            return False

        log.info("login_succeeded")
        return True

    async def scrape_link(self, adapter: SiteAdapter, page: Page, link: ProductLinkTarget) -> bool:
        """Extract one link and emit its event. Never raises for page errors."""
        log = self.logger.bind(site_id=link.site_id, link_id=link.id)
        try:
            result = await adapter.extract_price(page, link)
        except ExtractionFailure as e:
            log.warning("extraction_failed", url=link.url, error=e.message)
            self.sink.emit(build_scrape_error(link, e.message))
            return False
        except Exception as e:
            log.error("extraction_error", url=link.url, error=str(e), exc_info=True)
            self.sink.emit(build_scrape_error(link, str(e) or e.__class__.__name__))
            return False

        self.sink.emit(build_price_event(link, result))
        log.info("price_extracted", amount=str(result.amount))
        return True

    async def persist_session(self, site_id: str, context: BrowserContext) -> None:
        if self.session_store.is_excluded(site_id):
            return
        try:
            state = await context.storage_state()
            self.session_store.write(site_id, state)
        except Exception as e:
            self.logger.warning("session_persist_failed", site_id=site_id, error=str(e))


def load_links(path: str) -> List[ProductLinkTarget]:
    """Read the run's product links from a JSON array file.

    Raises:
        ConfigurationError: If the file is missing or not a JSON array
    """
    file_path = Path(path)
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"Links file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Links file is not valid JSON: {e}")

    if not isinstance(data, list):
        raise ConfigurationError("Links file must contain a JSON array")
    return [ProductLinkTarget.from_dict(item) for item in data if isinstance(item, dict)]


async def run_links(
    links: List[ProductLinkTarget],
    site_filter: Optional[str] = None,
    headless: Optional[bool] = None,
) -> RunSummary:
    register_all_adapters()
    orchestrator = ScrapeOrchestrator(
        sink=StreamEventSink(sys.stdout),
        browser=BrowserManager(headless=headless),
        session_store=SessionStore(settings.STATE_DIR),
        credentials=CredentialProvider(settings.CREDENTIALS_PATH),
    )
    return await orchestrator.run(links, site_filter)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Log into wholesale sites and stream product prices as NDJSON on stdout.",
    )
    parser.add_argument(
        "--links",
        default=settings.RUN_LINKS_PATH,
        help=f"JSON array of product links (default: {settings.RUN_LINKS_PATH})",
    )
    parser.add_argument(
        "--site",
        default=None,
        metavar="SITE_ID",
        help="Only process this site (default: SCRAPER_SITE, else all automated sites)",
    )
    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Show the browser window (debugging).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point.

    Returns:
        0 on completion, 2 on configuration errors, 1 on unexpected failures
    """
    load_dotenv()
    configure_logging(debug=settings.DEBUG, stream=sys.stderr)
    args = parse_args(argv)
    site_filter = args.site or settings.SCRAPER_SITE or None

    try:
        links = load_links(args.links)
        asyncio.run(run_links(links, site_filter, headless=False if args.no_headless else None))
    except ConfigurationError as e:
        logger.error("run_configuration_error", error=e.message)
        return 2
    except Exception as e:
        logger.error("run_failed", error=str(e), exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Playwright browser lifecycle for scrape runs.

One browser per run; each site gets its own context, opened with that
site's stored session (if any) and closed before the next site starts.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from pricetrack.config import settings

logger = structlog.get_logger()


class BrowserManager:
    """Launches Chromium and hands out per-site contexts.

    Contexts get:
    - A fixed en-GB locale and London timezone so prices render in GBP
    - The stored session state for the site, when provided
    - Stealth JS injection to mask automation signals
    """

    def __init__(
        self,
        headless: Optional[bool] = None,
        slow_mo_ms: Optional[int] = None,
    ):
        self._headless = settings.BROWSER_HEADLESS if headless is None else headless
        self._slow_mo_ms = settings.BROWSER_SLOW_MO_MS if slow_mo_ms is None else slow_mo_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        """Launch the browser. Safe to call more than once."""
        async with self._lock:
            if self._browser:
                return
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                slow_mo=self._slow_mo_ms,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                ],
            )
            logger.info("browser_started", headless=self._headless, slow_mo_ms=self._slow_mo_ms)

    async def stop(self) -> None:
        async with self._lock:
            if self._browser:
                await self._browser.close()
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
            logger.info("browser_stopped")

    async def new_context(self, storage_state: Optional[Dict[str, Any]] = None) -> BrowserContext:
        if not self._browser:
            await self.start()

        context = await self._browser.new_context(
            user_agent=settings.BROWSER_USER_AGENT,
            viewport={"width": 1366, "height": 900},
            locale=settings.BROWSER_LOCALE,
            timezone_id=settings.BROWSER_TIMEZONE,
            storage_state=storage_state,
        )
        await context.add_init_script(STEALTH_JS)
        context.set_default_timeout(settings.ELEMENT_TIMEOUT_MS)
        context.set_default_navigation_timeout(settings.NAVIGATION_TIMEOUT_MS)
        return context

    @asynccontextmanager
    async def site_context(
        self,
        site_id: str,
        storage_state: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[BrowserContext]:
        """Context for one site, closed on exit even if the body raised."""
        context = await self.new_context(storage_state)
        logger.info("browser_context_opened", site_id=site_id, restored_session=storage_state is not None)
        try:
            yield context
        finally:
            await context.close()
            logger.info("browser_context_closed", site_id=site_id)


# Minimal stealth JS to mask automation signals
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-GB', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
"""

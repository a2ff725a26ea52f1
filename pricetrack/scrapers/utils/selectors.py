"""Ordered-fallback selector probing on Playwright pages.

Site markup drifts, so every element lookup goes through a list of
candidate selectors tried in order; the first one that matches wins.
"""

from typing import Optional, Sequence

import structlog
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricetrack.config import settings

logger = structlog.get_logger(__name__)


async def first_present(page: Page, candidates: Sequence[str]) -> Optional[Locator]:
    """Return the first element matching any candidate, in candidate order.

    Does not wait; returns None when nothing is on the page right now.
    """
    for selector in candidates:
        locator = page.locator(selector).first
        if await locator.count() > 0:
            return locator
    return None


async def wait_for_first(
    page: Page,
    candidates: Sequence[str],
    timeout_ms: Optional[int] = None,
) -> Locator:
    """Wait until one candidate is visible and return it.

    Candidates are probed immediately first; if none is attached yet, waits
    (bounded) for the combined selector and probes again so the earliest
    candidate in the list still wins.

    Raises:
        PlaywrightTimeoutError: If no candidate appears within the timeout
    """
    timeout_ms = timeout_ms or settings.ELEMENT_TIMEOUT_MS

    locator = await first_present(page, candidates)
    if locator is None:
        combined = ", ".join(candidates)
        await page.locator(combined).first.wait_for(state="visible", timeout=timeout_ms)
        locator = await first_present(page, candidates)
        if locator is None:
            raise PlaywrightTimeoutError(f"No element matched any of {list(candidates)}")

    await locator.wait_for(state="visible", timeout=timeout_ms)
    return locator


async def has_any(page: Page, candidates: Sequence[str]) -> bool:
    return await first_present(page, candidates) is not None


async def settle(page: Page, timeout_ms: int = 10000) -> None:
    """Wait for network idle, tolerating pages that never go quiet."""
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        logger.debug("network_idle_timeout", url=page.url)


async def goto(page: Page, url: str) -> None:
    """Navigate with the configured navigation timeout."""
    await page.goto(url, wait_until="domcontentloaded", timeout=settings.NAVIGATION_TIMEOUT_MS)

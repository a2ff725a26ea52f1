"""Waiting out "checking your browser" interstitials."""

from typing import Optional

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricetrack.config import settings

logger = structlog.get_logger(__name__)

CHALLENGE_PATH_MARKER = "/cdn-cgi/challenge-platform"
CHALLENGE_TEXT_MARKERS = ("Verifying you are human", "Checking your browser")

_CHALLENGE_CLEARED_JS = """
([pathMarker, textMarkers]) => {
  if (window.location.pathname.includes(pathMarker)) return false;
  const text = (document.body && document.body.innerText) || '';
  return !textMarkers.some((m) => text.toLowerCase().includes(m.toLowerCase()));
}
"""


async def wait_for_challenge(page: Page, timeout_ms: Optional[int] = None) -> bool:
    """Poll until the challenge marker disappears or the timeout elapses.

    A timeout is not an error here; callers decide with
    :func:`challenge_present` whether the page is still blocked.

    Returns:
        True if the challenge cleared within the timeout
    """
    timeout_ms = timeout_ms or settings.CHALLENGE_TIMEOUT_MS
    try:
        await page.wait_for_function(
            _CHALLENGE_CLEARED_JS,
            arg=[CHALLENGE_PATH_MARKER, list(CHALLENGE_TEXT_MARKERS)],
            timeout=timeout_ms,
        )
        return True
    except PlaywrightTimeoutError:
        logger.warning("challenge_wait_timeout", url=page.url, timeout_ms=timeout_ms)
        return False


async def challenge_present(page: Page) -> bool:
    """Explicit check for the challenge page right now."""
    if CHALLENGE_PATH_MARKER in page.url:
        return True
    body = (await page.locator("body").first.text_content()) or ""
    lowered = body.lower()
    return any(marker.lower() in lowered for marker in CHALLENGE_TEXT_MARKERS)

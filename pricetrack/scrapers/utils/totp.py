"""Time-based one-time codes for sites with two-factor login."""

from typing import Optional, Sequence

import pyotp
import structlog
from playwright.async_api import Page

from pricetrack.scrapers.utils.credentials import Credentials
from pricetrack.scrapers.utils.selectors import first_present

logger = structlog.get_logger(__name__)

TOTP_INPUT_SELECTORS = (
    'input[name*="otp" i]',
    'input[name*="totp" i]',
    'input[name*="code" i]',
)


def generate_totp(secret: Optional[str]) -> Optional[str]:
    """Current 6-digit code for ``secret``, or None when no secret is set."""
    if not secret:
        return None
    return pyotp.TOTP(secret.replace(" ", "")).now()


async def fill_totp_if_present(
    page: Page,
    credentials: Credentials,
    candidates: Sequence[str] = TOTP_INPUT_SELECTORS,
) -> bool:
    """Fill a one-time code field when both a secret and a field exist.

    Returns:
        True if a code was entered
    """
    code = generate_totp(credentials.totp_secret)
    if code is None:
        return False

    field = await first_present(page, candidates)
    if field is None:
        return False

    await field.fill(code)
    logger.debug("totp_code_entered")
    return True

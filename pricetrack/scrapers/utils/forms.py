"""Login form filling shared by site adapters."""

from dataclasses import dataclass
from typing import Tuple

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricetrack.core.exceptions import AuthenticationFailure
from pricetrack.scrapers.utils.credentials import Credentials
from pricetrack.scrapers.utils.selectors import first_present, wait_for_first

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LoginForm:
    """Ordered selector candidates for a site's login form fields."""

    username: Tuple[str, ...]
    password: Tuple[str, ...]
    submit: Tuple[str, ...] = ('button[type="submit"]', 'input[type="submit"]')


async def fill_credentials(page: Page, form: LoginForm, credentials: Credentials, site_id: str) -> None:
    """Fill username and password using the first matching candidates.

    Raises:
        AuthenticationFailure: If either field never becomes visible
    """
    try:
        user = await wait_for_first(page, form.username)
        await user.fill(credentials.username)
        password = await wait_for_first(page, form.password)
        await password.fill(credentials.password)
    except PlaywrightTimeoutError:
        raise AuthenticationFailure(site_id, "login form fields not found")


async def submit_form(page: Page, form: LoginForm, site_id: str, wait_for_navigation: bool = True) -> None:
    """Click the first submit control, or press Enter in the password field.

    With ``wait_for_navigation`` the click is wrapped in an
    expect_navigation block so the next check sees the post-login page.
    """
    submit = await first_present(page, form.submit)
    if submit is None:
        password = await first_present(page, form.password)
        if password is None:
            raise AuthenticationFailure(site_id, "no submit control")
        target, action = password, "enter"
    else:
        target, action = submit, "click"

    logger.debug("login_submit", site_id=site_id, action=action)

    async def _act():
        if action == "click":
            await target.click()
        else:
            await target.press("Enter")

    if not wait_for_navigation:
        await _act()
        return

    try:
        async with page.expect_navigation(wait_until="domcontentloaded"):
            await _act()
    except PlaywrightTimeoutError:
        # Some forms post via XHR and never navigate; verification decides
        logger.debug("login_submit_no_navigation", site_id=site_id)

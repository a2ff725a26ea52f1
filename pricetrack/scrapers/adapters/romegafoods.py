"""Romega Foods adapter.

Login may ask for a one-time code and is followed by a promotional modal
that has to be cancelled. Product pages show the box price first and
offer a unit/box selector.
"""

import re

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricetrack.core.exceptions import AuthenticationFailure, ExtractionFailure
from pricetrack.scrapers.base import PriceResult, ProductLinkTarget
from pricetrack.scrapers.extraction import PACK, ExtractionProfile, extract_with_profile
from pricetrack.scrapers.sites import SITE_BY_ID
from pricetrack.scrapers.utils.credentials import Credentials
from pricetrack.scrapers.utils.forms import LoginForm, fill_credentials, submit_form
from pricetrack.scrapers.utils.selectors import goto, has_any, settle
from pricetrack.scrapers.utils.totp import fill_totp_if_present

logger = structlog.get_logger()

SITE = SITE_BY_ID["romegafoods"]
DASHBOARD_URL = SITE.url_for("/my-account")
LOGIN_PATTERN = re.compile(r"/login", re.IGNORECASE)

LOGOUT_SELECTORS = ('a[href*="logout"]', 'a:has-text("Log out")', 'a:has-text("Logout")')
MODAL_CANCEL_SELECTORS = ('[role="dialog"] button:has-text("Cancel")', 'button:has-text("Cancel")')

LOGIN_FORM = LoginForm(
    username=(
        'form[action*="/login"] input[name="email"]',
        'input[class*="login_loginUserClass"]',
        "input#username",
        'input[type="email"]',
    ),
    password=(
        'form[action*="/login"] input[name="password"]',
        'input[class*="login_loginPasswordClass"]',
        "input#password",
        'input[type="password"]',
    ),
    submit=(
        'form[action*="/login"] button:has-text("Login")',
        'form[action*="/login"] button[type="submit"]',
        'button[class*="login_loginButton"]',
    ),
)

PROFILE = ExtractionProfile(
    price_selectors=(SITE.default_selector, 'h1[class*="price"]'),
    base_kind=PACK,
    pack_info_selectors=('[class*="product_boxInfo"]',),
    quantity_select_selectors=("select#productUnit", 'select[name="productUnit"]'),
)


class RomegaFoodsAdapter:
    """Romega Foods session handling and price extraction."""

    site_id = SITE.id

    def __init__(self):
        self.logger = logger.bind(adapter=self.site_id)

    async def is_logged_in(self, page: Page) -> bool:
        if await has_any(page, LOGOUT_SELECTORS):
            return True

        try:
            await goto(page, DASHBOARD_URL)
        except PlaywrightTimeoutError:
            return False
        await settle(page)

        if await has_any(page, LOGOUT_SELECTORS):
            return True
        # The dashboard redirects anonymous visitors back to the login page
        return not LOGIN_PATTERN.search(page.url) and not await has_any(page, LOGIN_FORM.password)

    async def dismiss_modal(self, page: Page) -> bool:
        """Cancel the post-login modal if it is showing.

        Returns:
            True if a modal was dismissed
        """
        for selector in MODAL_CANCEL_SELECTORS:
            button = page.locator(selector).first
            if await button.count() == 0:
                continue
            try:
                await button.click(timeout=3000)
            except PlaywrightTimeoutError:
                self.logger.debug("modal_cancel_not_clickable", selector=selector)
                continue
            await page.wait_for_timeout(500)
            return True
        return False

    async def login(self, page: Page, credentials: Credentials) -> None:
        await goto(page, SITE.login_url)
        await fill_credentials(page, LOGIN_FORM, credentials, self.site_id)
        if await fill_totp_if_present(page, credentials):
            self.logger.info("totp_submitted")
        await submit_form(page, LOGIN_FORM, self.site_id)
        await settle(page)

        if await self.dismiss_modal(page):
            self.logger.debug("post_login_modal_dismissed")

        if not await self.is_logged_in(page):
            raise AuthenticationFailure(self.site_id, "account page not reachable after submit")
        self.logger.info("login_verified")

    async def extract_price(self, page: Page, link: ProductLinkTarget) -> PriceResult:
        if not link.url:
            raise ExtractionFailure(self.site_id, "product link has no URL")

        await goto(page, link.url)
        await settle(page)
        if "404" in await page.title():
            raise ExtractionFailure(self.site_id, f"product page not found: {link.url}")

        return await extract_with_profile(page, PROFILE, self.site_id, link.selector)

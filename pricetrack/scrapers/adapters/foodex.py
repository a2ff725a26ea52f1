"""Foodex London adapter.

Every page sits behind a "checking your browser" interstitial. Automated
runs reject this site and prices come from the manual capture flow, but
the adapter is kept so the site can be scripted when the check is not
served.
"""

import structlog
from playwright.async_api import Page

from pricetrack.core.exceptions import AuthenticationFailure, ExtractionFailure
from pricetrack.scrapers.base import PriceResult, ProductLinkTarget
from pricetrack.scrapers.extraction import PACK, ExtractionProfile, extract_with_profile
from pricetrack.scrapers.sites import SITE_BY_ID
from pricetrack.scrapers.utils.challenge import challenge_present, wait_for_challenge
from pricetrack.scrapers.utils.credentials import Credentials
from pricetrack.scrapers.utils.forms import LoginForm, fill_credentials, submit_form
from pricetrack.scrapers.utils.selectors import goto, has_any

logger = structlog.get_logger()

SITE = SITE_BY_ID["foodex"]

LOGOUT_SELECTORS = ('a[href*="logout"]', 'a:has-text("Log out")', 'a:has-text("Logout")')

LOGIN_FORM = LoginForm(
    username=("input#username", 'input[name="username"]', 'input[type="email"]', 'input[name*="login" i]'),
    password=('input#password[type="password"]', 'input[name="password"][type="password"]'),
    submit=('button[name="login"]', "button.woocommerce-form-login__submit", 'button[type="submit"]'),
)

PROFILE = ExtractionProfile(
    price_selectors=(SITE.default_selector, "td.price", 'h1[class*="price"]'),
    base_kind=PACK,
    pack_info_selectors=('[class*="product_boxInfo"]',),
    quantity_select_selectors=("select#productUnit", 'select[name="productUnit"]'),
)


class FoodexAdapter:
    """Foodex London session handling behind the browser check."""

    site_id = SITE.id

    def __init__(self):
        self.logger = logger.bind(adapter=self.site_id)

    async def _pass_challenge(self, page: Page) -> bool:
        """Wait out the interstitial; False only if it is still showing."""
        if await wait_for_challenge(page):
            return True
        return not await challenge_present(page)

    async def is_logged_in(self, page: Page) -> bool:
        await goto(page, SITE.login_url)
        if not await self._pass_challenge(page):
            return False
        return await has_any(page, LOGOUT_SELECTORS)

    async def login(self, page: Page, credentials: Credentials) -> None:
        await goto(page, SITE.login_url)
        if not await self._pass_challenge(page):
            raise AuthenticationFailure(self.site_id, "browser check did not clear")

        await fill_credentials(page, LOGIN_FORM, credentials, self.site_id)
        await submit_form(page, LOGIN_FORM, self.site_id)

        if not await self.is_logged_in(page):
            raise AuthenticationFailure(self.site_id, "no logout link after submitting credentials")
        self.logger.info("login_verified")

    async def extract_price(self, page: Page, link: ProductLinkTarget) -> PriceResult:
        await goto(page, link.url)
        if not await self._pass_challenge(page):
            raise ExtractionFailure(self.site_id, "browser check did not clear")
        return await extract_with_profile(page, PROFILE, self.site_id, link.selector)

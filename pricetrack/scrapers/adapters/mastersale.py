"""Mastersale adapter.

Logged-in state means a logout link is present AND no login form is
rendered; the storefront keeps a hidden logout link in some templates.
"""

import structlog
from playwright.async_api import Page

from pricetrack.core.exceptions import AuthenticationFailure
from pricetrack.scrapers.base import PriceResult, ProductLinkTarget
from pricetrack.scrapers.extraction import ExtractionProfile, extract_with_profile
from pricetrack.scrapers.sites import SITE_BY_ID
from pricetrack.scrapers.utils.credentials import Credentials
from pricetrack.scrapers.utils.forms import LoginForm, fill_credentials, submit_form
from pricetrack.scrapers.utils.selectors import goto, has_any, settle

logger = structlog.get_logger()

SITE = SITE_BY_ID["mastersale"]

LOGOUT_SELECTORS = (
    'a[href*="logout"]',
    'a:text-matches("logout|wyloguj", "i")',
)
LOGIN_FORM_SELECTORS = ('form:has(button:text-matches("log(owanie|in)", "i"))',)

LOGIN_FORM = LoginForm(
    username=('input[type="email"]', 'input[name="email"]', 'input[name*="login" i]'),
    password=('input[type="password"]',),
    submit=('button:text-matches("log(owanie|in)", "i")', 'button[type="submit"]'),
)

PROFILE = ExtractionProfile(
    price_selectors=(SITE.default_selector, "span.price", ".price", "[data-test=price]"),
)


class MastersaleAdapter:
    """Mastersale session handling and price extraction."""

    site_id = SITE.id

    def __init__(self):
        self.logger = logger.bind(adapter=self.site_id)

    async def is_logged_in(self, page: Page) -> bool:
        await goto(page, SITE.base_url)
        await settle(page)
        if not await has_any(page, LOGOUT_SELECTORS):
            return False
        return not await has_any(page, LOGIN_FORM_SELECTORS)

    async def login(self, page: Page, credentials: Credentials) -> None:
        await goto(page, SITE.login_url)
        await fill_credentials(page, LOGIN_FORM, credentials, self.site_id)
        await submit_form(page, LOGIN_FORM, self.site_id)

        if not await self.is_logged_in(page):
            raise AuthenticationFailure(self.site_id, "login form still shown after submit")
        self.logger.info("login_verified")

    async def extract_price(self, page: Page, link: ProductLinkTarget) -> PriceResult:
        await goto(page, link.url)
        return await extract_with_profile(page, PROFILE, self.site_id, link.selector)

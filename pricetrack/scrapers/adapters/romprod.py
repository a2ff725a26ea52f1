"""Romprod adapter.

WooCommerce storefront: the account page shows a customer-logout link
once signed in, and product pages show a single unit price.
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

SITE = SITE_BY_ID["romprod"]

LOGOUT_SELECTORS = ('a[href*="customer-logout"]',)

LOGIN_FORM = LoginForm(
    username=("input#username", 'input[name="username"]', 'input[type="email"]'),
    password=('input#password[type="password"]', 'input[name="password"]'),
    submit=('button[name="login"]', "button.woocommerce-form-login__submit", 'button[type="submit"]'),
)

PROFILE = ExtractionProfile(
    price_selectors=(
        SITE.default_selector,
        ".elementor-widget-woocommerce-product-price p span",
        "p.price span.woocommerce-Price-amount",
    ),
)


class RomprodAdapter:
    """Romprod session handling and price extraction."""

    site_id = SITE.id

    def __init__(self):
        self.logger = logger.bind(adapter=self.site_id)

    async def is_logged_in(self, page: Page) -> bool:
        await goto(page, SITE.login_url)
        return await has_any(page, LOGOUT_SELECTORS)

    async def login(self, page: Page, credentials: Credentials) -> None:
        await goto(page, SITE.login_url)
        await fill_credentials(page, LOGIN_FORM, credentials, self.site_id)
        await submit_form(page, LOGIN_FORM, self.site_id)
        await settle(page)

        if not await self.is_logged_in(page):
            raise AuthenticationFailure(self.site_id, "no logout link after submitting credentials")
        self.logger.info("login_verified")

    async def extract_price(self, page: Page, link: ProductLinkTarget) -> PriceResult:
        await goto(page, link.url)
        return await extract_with_profile(page, PROFILE, self.site_id, link.selector)

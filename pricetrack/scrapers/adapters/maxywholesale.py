"""Maxy Wholesale adapter.

Search-driven: products have no stable URLs, so extraction goes through
the order panel's navbar search, picks the catalog card whose text
contains the product name and follows its detail link. The panel URL
carries a customer category id that is remembered once seen.
"""

import re
from typing import Optional
from urllib.parse import urljoin

import structlog
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricetrack.config import settings
from pricetrack.core.exceptions import AuthenticationFailure, ExtractionFailure
from pricetrack.scrapers.base import PriceResult, ProductLinkTarget
from pricetrack.scrapers.extraction import PACK, ExtractionProfile, extract_with_profile
from pricetrack.scrapers.sites import SITE_BY_ID
from pricetrack.scrapers.utils.credentials import Credentials
from pricetrack.scrapers.utils.forms import LoginForm, fill_credentials, submit_form
from pricetrack.scrapers.utils.selectors import goto, has_any, settle

logger = structlog.get_logger()

SITE = SITE_BY_ID["maxywholesale"]

DEFAULT_PANEL_URL = SITE.url_for("/order/panel.php?CategoryID=75")
PANEL_PATTERN = re.compile(r"/order/panel\.php", re.IGNORECASE)
PANEL_ATTEMPTS = 3

SEARCH_TOGGLE = 'nav.main-header [data-widget="navbar-search"]'
SEARCH_BLOCK = "nav.main-header .navbar-search-block"
SEARCH_INPUT = f"{SEARCH_BLOCK} input.form-control.form-control-navbar"
SEARCH_SUBMIT = f'{SEARCH_BLOCK} button[type="submit"]'
PRODUCT_CARD = ".productArea.simpleCart_shelfItem"

LOGOUT_SELECTORS = ('a[href*="log-out"]', 'a[href*="logout"]', 'a:has-text("Log out")', 'a:has-text("Logout")')

LOGIN_FORM = LoginForm(
    username=('input#eMail[name="eMail"]', 'input[type="email"]', 'input[placeholder*="mail" i]'),
    password=('input#PassCode[type="password"]', 'input[type="password"]', 'input[placeholder*="password" i]'),
    submit=('button:has-text("Sign In")', "button.btn.btn-success", 'button[type="submit"]', 'input[type="submit"]'),
)

PROFILE = ExtractionProfile(
    price_selectors=('h1[class*="price"]', ".priceDetails_price__"),
    base_kind=PACK,
    pack_info_selectors=('[class*="product_boxInfo"]', ".qtySizeText"),
    quantity_select_selectors=(SITE.default_selector, 'select[name="productUnit"]'),
    settle_ms=250,
)


class MaxyWholesaleAdapter:
    """Maxy Wholesale session handling and search-driven extraction."""

    site_id = SITE.id

    def __init__(self):
        self.logger = logger.bind(adapter=self.site_id)
        self.panel_url = DEFAULT_PANEL_URL

    def _remember_panel(self, url: Optional[str]) -> None:
        if url and PANEL_PATTERN.search(url):
            self.panel_url = url

    async def _on_panel(self, page: Page) -> bool:
        if PANEL_PATTERN.search(page.url) and await has_any(page, (SEARCH_TOGGLE,)):
            self._remember_panel(page.url)
            return True
        return False

    async def is_logged_in(self, page: Page) -> bool:
        if await self._on_panel(page):
            return True

        try:
            await goto(page, self.panel_url)
        except PlaywrightTimeoutError:
            return False
        await settle(page)

        if await self._on_panel(page):
            return True
        return await has_any(page, LOGOUT_SELECTORS)

    async def _ensure_panel(self, page: Page) -> None:
        for attempt in range(1, PANEL_ATTEMPTS + 1):
            if await has_any(page, (SEARCH_TOGGLE,)):
                self._remember_panel(page.url)
                return
            self.logger.debug("panel_navigate", attempt=attempt, url=self.panel_url)
            await goto(page, self.panel_url)
            await settle(page)
            await page.wait_for_timeout(600)

        raise ExtractionFailure(self.site_id, "unable to reach the order panel")

    async def login(self, page: Page, credentials: Credentials) -> None:
        await goto(page, SITE.login_url)
        await settle(page)

        category = page.locator("#CategoryID")
        if await category.count():
            category_id = (await category.input_value()).strip()
            if category_id:
                self.panel_url = SITE.url_for(f"/order/panel.php?CategoryID={category_id}")

        await fill_credentials(page, LOGIN_FORM, credentials, self.site_id)
        await submit_form(page, LOGIN_FORM, self.site_id, wait_for_navigation=False)
        await settle(page)
        await page.wait_for_timeout(1500)

        if not await self.is_logged_in(page):
            raise AuthenticationFailure(self.site_id, "order panel not reachable after submit")
        self.logger.info("login_verified", panel_url=self.panel_url)

    async def _search(self, page: Page, query: str) -> None:
        block = page.locator(SEARCH_BLOCK).first
        if not await block.is_visible():
            await page.locator(SEARCH_TOGGLE).first.click()
            await block.wait_for(state="visible", timeout=settings.ELEMENT_TIMEOUT_MS)

        search = page.locator(SEARCH_INPUT).first
        await search.wait_for(state="visible", timeout=settings.ELEMENT_TIMEOUT_MS)
        await search.fill(query)

        submit = page.locator(SEARCH_SUBMIT).first
        async with page.expect_navigation(wait_until="domcontentloaded", timeout=settings.NAVIGATION_TIMEOUT_MS):
            if await submit.count():
                await submit.click()
            else:
                await search.press("Enter")
        await settle(page)

    async def extract_price(self, page: Page, link: ProductLinkTarget) -> PriceResult:
        query = (link.search_query or link.sku or link.name or "").strip()
        if not query:
            raise ExtractionFailure(self.site_id, "missing search query")

        name = link.name.strip() if link.name and link.name != "Unknown" else query

        await self._ensure_panel(page)
        try:
            await self._search(page, query)
        except PlaywrightTimeoutError:
            raise ExtractionFailure(self.site_id, f"search for '{query}' did not complete")

        card = page.locator(PRODUCT_CARD).filter(has_text=re.compile(re.escape(name), re.IGNORECASE)).first
        try:
            await card.wait_for(state="visible", timeout=settings.ELEMENT_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            raise ExtractionFailure(self.site_id, f"product '{name}' not found in search results")

        href = await card.locator("a[href]").first.get_attribute("href")
        if href:
            await goto(page, urljoin(SITE.base_url, href))

        # Stored link selectors point at the unit dropdown here, never at the price
        return await extract_with_profile(page, PROFILE, self.site_id)

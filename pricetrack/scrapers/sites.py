"""Static definitions of the marketplaces the scraper knows about."""

from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urljoin

from pricetrack.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class SiteDefinition:
    """Identity and entry points of one marketplace."""

    id: str
    name: str
    base_url: str
    login_path: str = "/"
    default_selector: Optional[str] = None
    search_mode: str = "url"  # 'url' or 'query'

    @property
    def login_url(self) -> str:
        return urljoin(self.base_url, self.login_path)

    def url_for(self, path: str) -> str:
        return urljoin(self.base_url, path)


SITE_DEFINITIONS: List[SiteDefinition] = [
    SiteDefinition(
        id="romprod",
        name="Romprod",
        base_url="https://romprod.uk",
        login_path="/my-account/",
        default_selector="span.woocommerce-Price-amount bdi",
    ),
    SiteDefinition(
        id="mastersale",
        name="Mastersale",
        base_url="https://mastersale.eu",
        login_path="/users/login",
        default_selector="price-netto",
    ),
    SiteDefinition(
        id="maxywholesale",
        name="Maxy Wholesale",
        base_url="https://maxywholesale.com",
        login_path="/order/",
        default_selector="select#productUnit",
        search_mode="query",
    ),
    SiteDefinition(
        id="romegafoods",
        name="Romega Foods",
        base_url="https://romegafoods.co.uk",
        login_path="/login?redirect_url=/my-account",
        default_selector='h1[class*="priceDetails_price"]',
    ),
    SiteDefinition(
        id="foodex",
        name="Foodex London",
        base_url="https://foodex.london",
        login_path="/login/",
        default_selector=(
            "body > div.site > div.center.main-site > section > div > form > div > "
            "section > div > table > tbody > tr > td.price"
        ),
    ),
]

SITE_BY_ID: Dict[str, SiteDefinition] = {site.id: site for site in SITE_DEFINITIONS}
SITE_BY_NAME: Dict[str, SiteDefinition] = {site.name.lower(): site for site in SITE_DEFINITIONS}

# Anti-automation protection: prices are captured by a human-operated helper
MANUAL_ONLY_SITE = "foodex"

# Stored sessions are never replayed for these sites
SESSION_EXCLUDED_SITES = frozenset({"maxywholesale"})


def resolve_site(site_id: Optional[str]) -> Optional[SiteDefinition]:
    """Look up a site by id, returning None for unknown or empty ids."""
    return SITE_BY_ID.get(site_id) if site_id else None


def resolve_site_by_name(name: Optional[str]) -> Optional[SiteDefinition]:
    return SITE_BY_NAME.get(name.lower()) if name else None


def require_automated_site(site_id: str) -> SiteDefinition:
    """Validate a site filter for an automated run.

    Raises:
        ConfigurationError: For unknown ids and for the manual-only site
    """
    site = resolve_site(site_id)
    if site is None:
        known = ", ".join(SITE_BY_ID)
        raise ConfigurationError(f"Unknown site '{site_id}'. Known sites: {known}")
    if site.id == MANUAL_ONLY_SITE:
        raise ConfigurationError(f"{site.name} requires the manual capture flow.")
    return site

"""Shared price extraction driven by declarative per-site profiles.

Each adapter describes *where* prices live (ordered selector candidates,
pack info, a unit/pack quantity selector) in an :class:`ExtractionProfile`;
:func:`extract_with_profile` is the single algorithm that reads them.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Tuple

import structlog
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pricetrack.config import settings
from pricetrack.core.exceptions import ExtractionFailure, UnparsableAmount
from pricetrack.scrapers.base import PriceResult
from pricetrack.scrapers.utils.normalizer import derive_unit_price, parse_price
from pricetrack.scrapers.utils.selectors import first_present, wait_for_first

logger = structlog.get_logger(__name__)

UNIT = "unit"
PACK = "pack"

UNIT_KEYWORDS = ("unit", "pc", "piece", "each", "single")
PACK_KEYWORDS = ("box", "case", "carton", "pack")

_PACK_INFO_PATTERN = re.compile(r"(\d+)\s*[x×]", re.IGNORECASE)
_FIRST_NUMBER = re.compile(r"(\d+)")


@dataclass(frozen=True)
class ExtractionProfile:
    """Where a site shows its prices.

    ``base_kind`` says whether the price element shows a unit or a pack
    price before any quantity option is touched.
    """

    price_selectors: Tuple[str, ...]
    base_kind: str = UNIT
    pack_info_selectors: Tuple[str, ...] = ()
    quantity_select_selectors: Tuple[str, ...] = ()
    unit_keywords: Tuple[str, ...] = UNIT_KEYWORDS
    pack_keywords: Tuple[str, ...] = PACK_KEYWORDS
    unit_label: str = "unit"
    pack_label: str = "box"
    settle_ms: int = 200


def _keyword_pattern(keywords: Tuple[str, ...]) -> re.Pattern:
    # A keyword may follow digits ("12pcs") but not letters ("peach")
    return re.compile(r"(?<![a-z])(?:" + "|".join(re.escape(k) for k in keywords) + ")", re.IGNORECASE)


def classify_option(label: str, value: Optional[str], profile: ExtractionProfile) -> Optional[str]:
    """Classify a quantity option as unit, pack or neither.

    Pack keywords are checked first so "Box of 12 units" counts as a pack.
    """
    text = f"{label or ''} {value or ''}"
    if _keyword_pattern(profile.pack_keywords).search(text):
        return PACK
    if _keyword_pattern(profile.unit_keywords).search(text):
        return UNIT
    return None


def extract_multiplier(text: str) -> Optional[int]:
    """Pack multiplier from text like '12 x 80g' or 'Box (24)'."""
    if not text:
        return None
    match = _PACK_INFO_PATTERN.search(text) or _FIRST_NUMBER.search(text)
    if not match:
        return None
    size = int(match.group(1))
    return size if size > 0 else None


async def read_price(locator: Locator) -> Decimal:
    text = (await locator.inner_text(timeout=settings.ELEMENT_TIMEOUT_MS)).strip()
    return parse_price(text)


async def read_pack_size(page: Page, profile: ExtractionProfile) -> Optional[int]:
    if not profile.pack_info_selectors:
        return None
    info = await first_present(page, profile.pack_info_selectors)
    if info is None:
        return None
    text = " ".join((await info.inner_text()).split())
    match = _PACK_INFO_PATTERN.search(text)
    return int(match.group(1)) if match and int(match.group(1)) > 0 else None


async def _choose(select: Locator, value: Optional[str], label: str) -> None:
    if value:
        await select.select_option(value=value)
    else:
        await select.select_option(label=label)


async def _observe_quantity_options(
    page: Page,
    select: Locator,
    price: Locator,
    profile: ExtractionProfile,
    observed: Dict[str, Decimal],
) -> Optional[int]:
    """Select every enabled unit/pack option and record the price it shows.

    Returns:
        Pack multiplier read from the pack option label, if any
    """
    pack_choice: Optional[Tuple[Optional[str], str]] = None
    multiplier: Optional[int] = None

    for option in await select.locator("option").all():
        if await option.get_attribute("disabled") is not None:
            continue

        value = await option.get_attribute("value")
        label = ((await option.text_content()) or "").strip()
        kind = classify_option(label, value, profile)
        if kind is None:
            continue

        await _choose(select, value, label)
        await page.wait_for_timeout(profile.settle_ms)
        observed[kind] = await read_price(price)

        if kind == PACK:
            pack_choice = (value, label)
            multiplier = multiplier or extract_multiplier(label)

    # Leave the page showing the pack price, as a shopper would see it
    if pack_choice is not None:
        await _choose(select, *pack_choice)

    return multiplier


async def extract_with_profile(
    page: Page,
    profile: ExtractionProfile,
    site_id: str,
    selector_override: Optional[str] = None,
) -> PriceResult:
    """Read unit and pack prices from the current page.

    Raises:
        ExtractionFailure: If no price element appears or its text is not a price
    """
    # A link selector naming the quantity dropdown is not a price element
    if selector_override in profile.quantity_select_selectors:
        selector_override = None
    candidates = tuple(filter(None, (selector_override,))) + profile.price_selectors

    try:
        price = await wait_for_first(page, candidates)
    except PlaywrightTimeoutError:
        raise ExtractionFailure(site_id, f"price element not found ({candidates[0]})")

    observed: Dict[str, Decimal] = {}
    try:
        observed[profile.base_kind] = await read_price(price)
        pack_size = await read_pack_size(page, profile)

        select = None
        if profile.quantity_select_selectors:
            select = await first_present(page, profile.quantity_select_selectors)
        if select is not None:
            multiplier = await _observe_quantity_options(page, select, price, profile, observed)
            pack_size = pack_size or multiplier
    except UnparsableAmount as e:
        raise ExtractionFailure(site_id, e.message)

    unit_price = observed.get(UNIT)
    pack_price = observed.get(PACK)

    if unit_price is None and pack_price is not None and pack_size:
        unit_price = derive_unit_price(pack_price, pack_size)

    amount = unit_price if unit_price is not None else pack_price

    logger.debug(
        "price_extracted",
        site_id=site_id,
        unit_price=str(unit_price) if unit_price is not None else None,
        pack_price=str(pack_price) if pack_price is not None else None,
        pack_size=pack_size,
    )

    return PriceResult(
        amount=amount,
        unit_label=profile.unit_label if unit_price is not None else None,
        pack_price=pack_price,
        pack_size=pack_size,
        pack_label=profile.pack_label if pack_price is not None else None,
    )

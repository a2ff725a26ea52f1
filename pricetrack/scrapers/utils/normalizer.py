"""Price text normalization for scraped GBP amounts."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from pricetrack.core.exceptions import UnparsableAmount

logger = structlog.get_logger()

_NON_NUMERIC = re.compile(r"[^0-9,.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")

TWO_PLACES = Decimal("0.01")
FOUR_PLACES = Decimal("0.0001")


def parse_price(raw: str) -> Decimal:
    """Normalize scraped price text into a 2dp Decimal.

    Everything except digits, comma and dot is dropped. With both
    separators present the dot is a thousands separator and the comma the
    decimal point ("1.234,56"); a lone comma is the decimal point
    ("12,50"); a lone dot is used as-is ("£12.50").

    Args:
        raw: Text read from the page

    Returns:
        Amount rounded half-up to 2 decimal places

    Raises:
        UnparsableAmount: If no finite, non-negative number remains
    """
    cleaned = _NON_NUMERIC.sub("", raw or "")
    has_comma = "," in cleaned
    has_dot = "." in cleaned

    if has_comma and has_dot:
        cleaned = cleaned.replace(".", "").replace(",", ".", 1)
    elif has_comma:
        cleaned = cleaned.replace(",", ".", 1)

    # Only the leading number counts: "12.50." from "£12.50 ex. VAT" is 12.50
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        raise UnparsableAmount(raw)

    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        raise UnparsableAmount(raw)

    if not value.is_finite() or value < 0:
        raise UnparsableAmount(raw)

    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def natural_precision(value: Decimal) -> Decimal:
    """Drop trailing zeros without switching to exponent notation."""
    if value == value.to_integral_value():
        return value.quantize(Decimal(1))
    return value.normalize()


def derive_unit_price(pack_price: Decimal, pack_size: int) -> Decimal:
    """Unit price from a pack price: 4dp, then reported at natural precision."""
    unit = (pack_price / Decimal(pack_size)).quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)
    return natural_precision(unit)


def format_gbp(amount: Decimal) -> str:
    """Render an amount the way the dashboard shows it, e.g. '£1,234.50'."""
    return f"£{Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP):,.2f}"


def coerce_decimal(value: Any) -> Optional[Decimal]:
    """Best-effort conversion of an event field to a finite Decimal.

    Returns None for missing, blank, boolean or non-numeric values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def coerce_int(value: Any) -> Optional[int]:
    """Integer conversion for ids and pack sizes; rejects fractional values."""
    number = coerce_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def clean_label(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None

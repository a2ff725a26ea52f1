"""Tests for price text normalization."""

from decimal import Decimal

import pytest

from pricetrack.core.exceptions import UnparsableAmount
from pricetrack.scrapers.utils.normalizer import (
    clean_label,
    coerce_decimal,
    coerce_int,
    derive_unit_price,
    format_gbp,
    natural_precision,
    parse_price,
)


class TestParsePrice:
    """Separator handling and rejection of non-prices."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("£12.50", Decimal("12.50")),
            ("12,50", Decimal("12.50")),
            ("1.234,56 zł", Decimal("1234.56")),
            ("  £ 7 ", Decimal("7.00")),
            ("£12.50 ex. VAT", Decimal("12.50")),
            ("£0.005", Decimal("0.01")),
            ("£1,234.56", Decimal("1.23")),
        ],
    )
    def test_parses(self, raw, expected):
        assert parse_price(raw) == expected

    @pytest.mark.parametrize("raw", ["", "Call for price", "£", None, ".,"])
    def test_rejects_text_without_a_number(self, raw):
        with pytest.raises(UnparsableAmount):
            parse_price(raw)

    def test_error_keeps_raw_text(self):
        with pytest.raises(UnparsableAmount) as exc_info:
            parse_price("out of stock")
        assert exc_info.value.raw == "out of stock"


class TestUnitDerivation:
    def test_even_split_has_no_trailing_zeros(self):
        assert str(derive_unit_price(Decimal("12.00"), 12)) == "1"

    def test_rounds_to_four_places(self):
        assert derive_unit_price(Decimal("10.00"), 3) == Decimal("3.3333")

    def test_natural_precision(self):
        assert str(natural_precision(Decimal("1.2500"))) == "1.25"
        assert str(natural_precision(Decimal("100.00"))) == "100"


class TestFormatting:
    def test_format_gbp(self):
        assert format_gbp(Decimal("9.5")) == "£9.50"
        assert format_gbp(Decimal("1234.5")) == "£1,234.50"


class TestCoercion:
    """Lenient conversion of event fields."""

    @pytest.mark.parametrize("value", [None, "", "  ", True, "abc", "NaN", "Infinity"])
    def test_unusable_decimals(self, value):
        assert coerce_decimal(value) is None

    def test_decimal_from_number_and_text(self):
        assert coerce_decimal(9.5) == Decimal("9.5")
        assert coerce_decimal(" 12.25 ") == Decimal("12.25")

    def test_int_rejects_fractions(self):
        assert coerce_int("12") == 12
        assert coerce_int(12.0) == 12
        assert coerce_int(12.5) is None

    def test_clean_label(self):
        assert clean_label("  box ") == "box"
        assert clean_label("") is None
        assert clean_label(3) is None

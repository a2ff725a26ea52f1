"""Tests for profile-driven price extraction."""

from decimal import Decimal

import pytest

from fakes import FakeElement, FakePage
from pricetrack.core.exceptions import ExtractionFailure
from pricetrack.scrapers.extraction import (
    PACK,
    UNIT,
    ExtractionProfile,
    classify_option,
    extract_multiplier,
    extract_with_profile,
)

UNIT_PROFILE = ExtractionProfile(price_selectors=(".price", ".alt-price"))

PACK_PROFILE = ExtractionProfile(
    price_selectors=("h1.price",),
    base_kind=PACK,
    pack_info_selectors=(".box-info",),
    quantity_select_selectors=("select#productUnit",),
    settle_ms=0,
)


def quantity_page(prices, options, pack_info=None):
    """A page whose price follows the selected quantity option."""
    page = FakePage()
    page.state["selected"] = options[0][0]

    def on_select(choice):
        page.state["selected"] = choice

    option_elements = [
        FakeElement(label, attrs=dict({"value": value}, **({"disabled": ""} if disabled else {})))
        for value, label, disabled in options
    ]
    page.set("h1.price", FakeElement(lambda: prices[page.state["selected"]]))
    page.set("select#productUnit", FakeElement(children={"option": option_elements}, on_select=on_select))
    if pack_info:
        page.set(".box-info", FakeElement(pack_info))
    return page


class TestClassifyOption:
    @pytest.mark.parametrize(
        "label, value, expected",
        [
            ("Box of 12 units", None, PACK),
            ("12pcs", None, UNIT),
            ("Single", "1", UNIT),
            ("Carton", "ctn", PACK),
            ("Peach", None, None),
        ],
    )
    def test_classification(self, label, value, expected):
        assert classify_option(label, value, UNIT_PROFILE) == expected


class TestExtractMultiplier:
    def test_times_pattern_preferred(self):
        assert extract_multiplier("Box 2024 (12 x 80g)") == 12

    def test_first_number(self):
        assert extract_multiplier("Box (24)") == 24

    def test_nothing_usable(self):
        assert extract_multiplier("Box") is None
        assert extract_multiplier("0 pieces") is None


class TestExtractWithProfile:
    async def test_unit_only_page(self):
        page = FakePage()
        page.set(".price", FakeElement("£2.49"))

        result = await extract_with_profile(page, UNIT_PROFILE, "romprod")

        assert result.amount == Decimal("2.49")
        assert result.unit_label == "unit"
        assert result.pack_price is None
        assert result.pack_label is None

    async def test_override_selector_tried_first(self):
        page = FakePage()
        page.set(".price", FakeElement("£2.49"))
        page.set("#special", FakeElement("£1.99"))

        result = await extract_with_profile(page, UNIT_PROFILE, "romprod", "#special")

        assert result.amount == Decimal("1.99")

    async def test_override_naming_quantity_select_is_ignored(self):
        page = FakePage()
        page.set("h1.price", FakeElement("£24.00"))
        page.set(".box-info", FakeElement("12 x 1L"))
        page.set("select#productUnit", FakeElement("Box (12)\nUnit"))

        result = await extract_with_profile(page, PACK_PROFILE, "maxywholesale", "select#productUnit")

        assert result.pack_price == Decimal("24.00")
        assert result.pack_size == 12

    async def test_pack_only_page_derives_unit_price(self):
        page = FakePage()
        page.set("h1.price", FakeElement("£12.00"))
        page.set(".box-info", FakeElement("12 x 500ml"))

        result = await extract_with_profile(page, PACK_PROFILE, "romegafoods")

        assert result.pack_price == Decimal("12.00")
        assert result.pack_size == 12
        assert str(result.amount) == "1"
        assert result.unit_label == "unit"
        assert result.pack_label == "box"

    async def test_pack_without_size_reports_pack_price(self):
        page = FakePage()
        page.set("h1.price", FakeElement("£18.00"))

        result = await extract_with_profile(page, PACK_PROFILE, "romegafoods")

        assert result.amount == Decimal("18.00")
        assert result.unit_label is None
        assert result.pack_size is None

    async def test_reads_both_options_and_skips_disabled(self):
        page = quantity_page(
            prices={"box": "£15.00", "unit": "£1.40", "pallet": "£900.00"},
            options=[("box", "Box (12)", False), ("unit", "Unit", False), ("pallet", "Pack pallet", True)],
        )
        select = page.elements["select#productUnit"][0]

        result = await extract_with_profile(page, PACK_PROFILE, "romegafoods")

        assert result.amount == Decimal("1.40")
        assert result.pack_price == Decimal("15.00")
        assert result.pack_size == 12
        assert "pallet" not in select.selections
        # The page is left on the pack option
        assert select.selections[-1] == "box"

    async def test_pack_info_beats_option_multiplier(self):
        page = quantity_page(
            prices={"box": "£24.00", "unit": "£2.10"},
            options=[("box", "Box (10)", False), ("unit", "Unit", False)],
            pack_info="Box of 12 x 330ml",
        )

        result = await extract_with_profile(page, PACK_PROFILE, "romegafoods")

        assert result.pack_size == 12

    async def test_missing_price_element(self):
        with pytest.raises(ExtractionFailure, match="price element not found"):
            await extract_with_profile(FakePage(), UNIT_PROFILE, "romprod")

    async def test_unparsable_price_text(self):
        page = FakePage()
        page.set(".price", FakeElement("Call for price"))

        with pytest.raises(ExtractionFailure):
            await extract_with_profile(page, UNIT_PROFILE, "romprod")

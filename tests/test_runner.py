"""Tests for the scrape runner: planning, orchestration and the event stream."""

import io
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from playwright.async_api import Error as PlaywrightError

from fakes import FakeBrowser
from pricetrack.config import settings
from pricetrack.core.exceptions import AuthenticationFailure, ConfigurationError, ExtractionFailure
from pricetrack.scrapers.base import PriceResult, ProductLinkTarget
from pricetrack.scrapers.events import StreamEventSink, build_login_error, build_price_event, build_scrape_error
from pricetrack.scrapers.runner import ScrapeOrchestrator, load_links, main, plan_run
from pricetrack.scrapers.utils.credentials import CredentialProvider
from pricetrack.scrapers.utils.session_store import SessionStore

ALL_CREDENTIALS = {
    f"{site.upper()}_{field}": value
    for site in ("romprod", "mastersale", "maxywholesale", "romegafoods")
    for field, value in (("USERNAME", "buyer"), ("PASSWORD", "pw"))
}


def link(link_id, site_id, name="Item", url=None):
    return ProductLinkTarget(id=link_id, name=name, site_id=site_id, url=url or f"https://{site_id}.example/{link_id}")


class ScriptedAdapter:
    """Adapter double whose outcomes are set per test."""

    def __init__(self, site_id, logged_in=False, login_failures=0, prices=None, session_error=None):
        self.site_id = site_id
        self.logged_in = logged_in
        self.login_failures = login_failures
        self.prices = prices or {}
        self.session_error = session_error
        self.login_calls = 0

    async def is_logged_in(self, page):
        if self.session_error is not None:
            raise self.session_error
        return self.logged_in

    async def login(self, page, credentials):
        self.login_calls += 1
        if self.login_calls <= self.login_failures:
            raise AuthenticationFailure(self.site_id, "still on the login page")
        self.logged_in = True

    async def extract_price(self, page, target):
        outcome = self.prices.get(target.id)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            raise ExtractionFailure(self.site_id, "price element not found")
        return outcome


class StubFactory:
    def __init__(self, *adapters):
        self.adapters = {adapter.site_id: adapter for adapter in adapters}

    def create_adapter(self, site_id):
        return self.adapters.get(site_id)


@pytest.fixture(autouse=True)
def no_login_wait(monkeypatch):
    monkeypatch.setattr(settings, "LOGIN_RETRY_WAIT_SEC", 0)
    monkeypatch.setattr(settings, "LOGIN_MAX_ATTEMPTS", 2)


def make_orchestrator(tmp_path, *adapters, environ=None):
    stream = io.StringIO()
    browser = FakeBrowser()
    orchestrator = ScrapeOrchestrator(
        sink=StreamEventSink(stream),
        browser=browser,
        session_store=SessionStore(tmp_path / "state"),
        credentials=CredentialProvider(tmp_path / "creds.json", environ=ALL_CREDENTIALS if environ is None else environ),
        factory=StubFactory(*adapters),
    )
    return orchestrator, browser, stream


def events(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestPlanRun:
    def test_groups_by_site_in_first_seen_order(self):
        groups = plan_run([link(1, "mastersale"), link(2, "romprod"), link(3, "mastersale")])

        assert list(groups) == ["mastersale", "romprod"]
        assert [target.id for target in groups["mastersale"]] == [1, 3]

    def test_site_filter(self):
        groups = plan_run([link(1, "mastersale"), link(2, "romprod")], "romprod")

        assert list(groups) == ["romprod"]

    def test_manual_only_links_skipped(self):
        groups = plan_run([link(1, "foodex"), link(2, "romprod")])

        assert list(groups) == ["romprod"]

    @pytest.mark.parametrize("site_filter", ["foodex", "nowhere"])
    def test_rejected_filters(self, site_filter):
        with pytest.raises(ConfigurationError):
            plan_run([link(1, "romprod")], site_filter)

    def test_unknown_site_in_links(self):
        with pytest.raises(ConfigurationError, match="unknown sites: acme"):
            plan_run([link(1, "romprod"), link(2, "acme")])


class TestLoadLinks:
    def test_reads_camel_case_records(self, tmp_path):
        path = tmp_path / "links.json"
        path.write_text(json.dumps([
            {"id": 7, "name": "Tea", "siteId": "maxywholesale", "url": "", "searchQuery": "tea 80"},
            "not a record",
        ]))

        links = load_links(str(path))

        assert len(links) == 1
        assert links[0].id == 7
        assert links[0].search_query == "tea 80"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_links(str(tmp_path / "absent.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "links.json"
        path.write_text("[{")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_links(str(path))

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "links.json"
        path.write_text("{}")

        with pytest.raises(ConfigurationError, match="JSON array"):
            load_links(str(path))

    def test_main_exits_2_on_configuration_error(self, tmp_path):
        assert main(["--links", str(tmp_path / "absent.json")]) == 2


class TestEvents:
    def test_price_event_wire_format(self):
        target = ProductLinkTarget(id=5, name="Oil", site_id="romegafoods", url="https://x/oil", sku="OIL-1")
        result = PriceResult(
            amount=Decimal("1.25"),
            unit_label="unit",
            pack_price=Decimal("15.00"),
            pack_size=12,
            pack_label="box",
        )
        ts = datetime(2025, 1, 1, 9, 30, tzinfo=timezone.utc)

        payload = json.loads(build_price_event(target, result, ts).to_line())

        assert payload["id"] == 5
        assert payload["siteId"] == "romegafoods"
        assert payload["currency"] == "GBP"
        assert payload["amount"] == 1.25
        assert payload["packPrice"] == 15.0
        assert payload["packSize"] == 12
        assert payload["formatted"] == "£1.25"
        assert payload["ts"] == "2025-01-01T09:30:00+00:00"
        assert "type" not in payload

    def test_error_events(self):
        target = link(1, "romprod")

        scrape = json.loads(build_scrape_error(target, "price element not found").to_line())
        login = json.loads(build_login_error("romprod", "Missing credentials for romprod").to_line())

        assert scrape == {
            "type": "scrape-error",
            "siteId": "romprod",
            "url": target.url,
            "message": "price element not found",
        }
        assert login["type"] == "login-error"

    def test_sink_writes_one_line_per_event(self):
        stream = io.StringIO()
        sink = StreamEventSink(stream)

        sink.emit(build_login_error("romprod", "a"))
        sink.emit(build_login_error("mastersale", "b"))

        assert stream.getvalue().count("\n") == 2
        assert sink.count == 2


class TestScrapeOrchestrator:
    async def test_login_failure_skips_site_and_run_continues(self, tmp_path):
        romprod = ScriptedAdapter("romprod", login_failures=5)
        mastersale = ScriptedAdapter(
            "mastersale",
            logged_in=True,
            prices={2: PriceResult(amount=Decimal("3.20")), 3: ExtractionFailure("mastersale", "price element not found")},
        )
        orchestrator, browser, stream = make_orchestrator(tmp_path, romprod, mastersale)

        summary = await orchestrator.run([link(1, "romprod"), link(2, "mastersale"), link(3, "mastersale")])

        emitted = events(stream)
        assert [e.get("type", "price") for e in emitted] == ["login-error", "price", "scrape-error"]
        assert emitted[0]["siteId"] == "romprod"
        assert emitted[1]["id"] == 2
        assert emitted[1]["amount"] == 3.2
        assert romprod.login_calls == 2
        assert summary.successes == 1
        assert summary.failures == 2
        assert summary.login_failures == 1
        assert browser.stopped is True
        assert all(context.closed for context in browser.contexts)

    async def test_site_contexts_open_and_close_in_sequence(self, tmp_path):
        romprod = ScriptedAdapter("romprod", logged_in=True, prices={1: PriceResult(amount=Decimal("1"))})
        mastersale = ScriptedAdapter("mastersale", login_failures=5)
        romega = ScriptedAdapter("romegafoods", logged_in=True, prices={3: ExtractionFailure("romegafoods", "404")})
        orchestrator, browser, _ = make_orchestrator(tmp_path, romprod, mastersale, romega)

        await orchestrator.run([link(1, "romprod"), link(2, "mastersale"), link(3, "romegafoods"), link(4, "romprod")])

        assert browser.max_open == 1
        assert browser.lifecycle == [
            ("open", "romprod"),
            ("close", "romprod"),
            ("open", "mastersale"),
            ("close", "mastersale"),
            ("open", "romegafoods"),
            ("close", "romegafoods"),
        ]

    async def test_login_retry_recovers(self, tmp_path):
        romprod = ScriptedAdapter("romprod", login_failures=1, prices={1: PriceResult(amount=Decimal("1"))})
        orchestrator, _, stream = make_orchestrator(tmp_path, romprod)

        summary = await orchestrator.run([link(1, "romprod")])

        assert romprod.login_calls == 2
        assert [e.get("type") for e in events(stream)] == [None]
        assert summary.failures == 0

    async def test_missing_credentials_reported(self, tmp_path):
        romprod = ScriptedAdapter("romprod")
        orchestrator, _, stream = make_orchestrator(tmp_path, romprod, environ={})

        await orchestrator.run([link(1, "romprod")])

        emitted = events(stream)
        assert emitted == [{"type": "login-error", "siteId": "romprod", "message": "Missing credentials for romprod"}]
        assert romprod.login_calls == 0

    async def test_unexpected_extraction_error_becomes_scrape_error(self, tmp_path):
        romprod = ScriptedAdapter(
            "romprod",
            logged_in=True,
            prices={1: RuntimeError("boom"), 2: PriceResult(amount=Decimal("2"))},
        )
        orchestrator, _, stream = make_orchestrator(tmp_path, romprod)

        summary = await orchestrator.run([link(1, "romprod"), link(2, "romprod")])

        emitted = events(stream)
        assert emitted[0] == {"type": "scrape-error", "siteId": "romprod", "url": "https://romprod.example/1", "message": "boom"}
        assert emitted[1]["id"] == 2
        assert summary.successes == 1

    async def test_manual_only_filter_opens_no_browser(self, tmp_path):
        orchestrator, browser, stream = make_orchestrator(tmp_path)

        with pytest.raises(ConfigurationError):
            await orchestrator.run([link(1, "foodex")], "foodex")

        assert browser.contexts == []
        assert stream.getvalue() == ""

    async def test_sessions_restored_and_persisted(self, tmp_path):
        store = SessionStore(tmp_path / "state")
        store.write("romprod", {"cookies": [{"name": "old"}], "origins": []})
        romprod = ScriptedAdapter("romprod", logged_in=True, prices={1: PriceResult(amount=Decimal("1"))})
        maxy = ScriptedAdapter("maxywholesale", logged_in=True, prices={2: PriceResult(amount=Decimal("2"))})
        orchestrator, browser, _ = make_orchestrator(tmp_path, romprod, maxy)

        await orchestrator.run([link(1, "romprod"), link(2, "maxywholesale")])

        assert browser.contexts[0].restored_state == {"cookies": [{"name": "old"}], "origins": []}
        assert store.read("romprod") == browser.contexts[0].saved_state
        assert not store.path_for("maxywholesale").exists()

    async def test_crash_still_closes_context_and_saves_session(self, tmp_path):
        romprod = ScriptedAdapter("romprod", session_error=RuntimeError("browser died"))
        orchestrator, browser, _ = make_orchestrator(tmp_path, romprod)

        with pytest.raises(RuntimeError):
            await orchestrator.run([link(1, "romprod")])

        assert browser.contexts[0].closed is True
        assert browser.stopped is True
        assert SessionStore(tmp_path / "state").read("romprod") is not None

    async def test_session_check_playwright_error_falls_back_to_login(self, tmp_path):
        romprod = ScriptedAdapter(
            "romprod",
            session_error=PlaywrightError("Target closed"),
            prices={1: PriceResult(amount=Decimal("1"))},
        )
        orchestrator, _, _ = make_orchestrator(tmp_path, romprod)

        summary = await orchestrator.run([link(1, "romprod")])

        assert romprod.login_calls == 1
        assert summary.successes == 1

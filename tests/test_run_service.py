"""Tests for starting, supervising and resetting scrape runs."""

import asyncio
import json
from decimal import Decimal

import pytest

from pricetrack.core.exceptions import ConfigurationError, RunInProgress
from pricetrack.models import ProductLink, QueryRun, RUN_DONE, RUN_ERROR, RUN_RUNNING
from pricetrack.services.ingestion_service import IngestionPipeline
from pricetrack.services.run_service import RESET_NOTE, RunService, initial_note, load_run_links


async def stream(*items):
    for item in items:
        yield item


async def never_ending():
    await asyncio.Event().wait()
    yield b""


class FakeProcess:
    """Stands in for an asyncio subprocess with piped stdout/stderr."""

    def __init__(self, stdout_lines=(), exit_code=0, stderr_lines=()):
        self.stdout = stream(*stdout_lines)
        self.stderr = stream(*stderr_lines)
        self.exit_code = exit_code
        self.returncode = None
        self.killed = False

    async def wait(self):
        if self.returncode is None:
            self.returncode = self.exit_code
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9


def event(link_id, amount):
    return (json.dumps({"id": link_id, "ts": "2025-03-01T10:00:00+00:00", "amount": amount}) + "\n").encode()


@pytest.fixture
def run_service(session_factory, tmp_path):
    return RunService(session_factory, links_path=str(tmp_path / "data" / "products.json"), python_executable="python3")


async def get_run(session_factory, run_id):
    async with session_factory() as session:
        return await session.get(QueryRun, run_id)


async def finish_tasks(service):
    await asyncio.gather(*list(service._tasks))


class TestLoadRunLinks:
    async def test_manual_only_site_excluded_without_filter(self, session_factory, make_link):
        romprod = await make_link(site_slug="romprod")
        await make_link(site_slug="foodex", name="Feta")
        maxy = await make_link(site_slug="maxywholesale", name="Tea", sku="T-80", search_query="tea 80")

        async with session_factory() as session:
            links = await load_run_links(session)

        assert [link.id for link in links] == [romprod, maxy]
        assert links[1].site_id == "maxywholesale"
        assert links[1].sku == "T-80"
        assert links[1].search_query == "tea 80"

    async def test_site_filter(self, session_factory, make_link):
        await make_link(site_slug="romprod")
        mastersale = await make_link(site_slug="mastersale", name="Pickles")

        async with session_factory() as session:
            links = await load_run_links(session, "mastersale")

        assert [link.id for link in links] == [mastersale]


class TestRunService:
    def test_initial_note(self):
        assert initial_note(None, 5) == "all-sites:5"
        assert initial_note("romprod", 0) == "site:romprod:empty"

    def test_runner_command(self, run_service):
        command = run_service.runner_command("romprod")

        assert command[:3] == ["python3", "-m", "pricetrack.scrapers.runner"]
        assert command[-2:] == ["--site", "romprod"]
        assert "--site" not in run_service.runner_command(None)

    @pytest.mark.parametrize("site_id", ["nowhere", "foodex"])
    async def test_rejects_bad_site(self, run_service, site_id):
        with pytest.raises(ConfigurationError):
            await run_service.start_run(site_id)

    async def test_zero_links_finishes_immediately(self, run_service, session_factory):
        started = await run_service.start_run("romprod")

        run = await get_run(session_factory, started.run_id)
        assert started.count == 0
        assert run.status == RUN_DONE
        assert run.finished_at is not None
        assert run.note == "site:romprod:empty"
        assert run.eta_sec is None
        assert run_service.active_tasks == 0

    async def test_run_ingests_runner_output(self, run_service, session_factory, make_link, monkeypatch):
        link_id = await make_link(site_slug="romprod", last_price=Decimal("10.00"))

        async def fake_spawn(site_id):
            return FakeProcess([event(link_id, 9.5)], stderr_lines=[b"romprod: login_succeeded\n"])

        monkeypatch.setattr(run_service, "spawn", fake_spawn)

        started = await run_service.start_run()
        await finish_tasks(run_service)

        run = await get_run(session_factory, started.run_id)
        assert started.count == 1
        assert run.status == RUN_DONE
        assert run.note == "1/1"
        assert run.eta_sec == 20

        written = json.loads(run_service.links_path.read_text())
        assert written[0]["id"] == link_id
        assert written[0]["siteId"] == "romprod"

        async with session_factory() as session:
            link = await session.get(ProductLink, link_id)
        assert link.last_price == Decimal("9.5")

    async def test_runner_crash_marks_error(self, run_service, session_factory, make_link, monkeypatch):
        link_id = await make_link()

        async def fake_spawn(site_id):
            return FakeProcess([event(link_id, 1.0)], exit_code=1)

        monkeypatch.setattr(run_service, "spawn", fake_spawn)

        started = await run_service.start_run()
        await finish_tasks(run_service)

        assert (await get_run(session_factory, started.run_id)).status == RUN_ERROR

    async def test_spawn_failure_marks_error(self, run_service, session_factory, make_link, monkeypatch):
        await make_link()

        async def failing_spawn(site_id):
            raise FileNotFoundError("python3")

        monkeypatch.setattr(run_service, "spawn", failing_spawn)

        started = await run_service.start_run()
        await finish_tasks(run_service)

        run = await get_run(session_factory, started.run_id)
        assert run.status == RUN_ERROR
        assert run.finished_at is not None

    async def test_supervise_kills_process_when_ingestion_breaks(self, run_service, session_factory):
        process = FakeProcess()

        async def broken_stdout():
            raise RuntimeError("pipe closed")
            yield b""

        process.stdout = broken_stdout()
        pipeline = IngestionPipeline(session_factory)

        assert await run_service.supervise(pipeline, process) == RUN_ERROR
        assert process.killed is True

    async def test_second_run_rejected_while_first_is_running(self, run_service, make_link, monkeypatch):
        await make_link()
        spawned = []

        async def fake_spawn(site_id):
            process = FakeProcess()
            process.stdout = never_ending()
            spawned.append(process)
            return process

        monkeypatch.setattr(run_service, "spawn", fake_spawn)

        first = await run_service.start_run()
        await asyncio.sleep(0)

        with pytest.raises(RunInProgress) as excinfo:
            await run_service.start_run()
        assert excinfo.value.run_id == first.run_id
        assert len(spawned) == 1

        await run_service.shutdown()

    async def test_stale_running_row_blocks_until_reset(self, run_service, session_factory):
        async with session_factory() as session:
            async with session.begin():
                session.add(QueryRun(status=RUN_RUNNING))

        with pytest.raises(RunInProgress):
            await run_service.start_run("romprod")

        await run_service.reset_stuck_runs()
        started = await run_service.start_run("romprod")

        assert started.count == 0

    async def test_next_run_allowed_after_previous_finishes(self, run_service, make_link, monkeypatch):
        link_id = await make_link()

        async def fake_spawn(site_id):
            return FakeProcess([event(link_id, 2.0)])

        monkeypatch.setattr(run_service, "spawn", fake_spawn)

        await run_service.start_run()
        await finish_tasks(run_service)
        second = await run_service.start_run()
        await finish_tasks(run_service)

        assert second.count == 1

    async def test_shutdown_kills_runner_and_marks_run_error(self, run_service, session_factory, make_link, monkeypatch):
        await make_link()
        spawned = asyncio.Event()
        process = FakeProcess()
        process.stdout = never_ending()

        async def fake_spawn(site_id):
            spawned.set()
            return process

        monkeypatch.setattr(run_service, "spawn", fake_spawn)

        started = await run_service.start_run()
        await spawned.wait()
        await asyncio.sleep(0)

        await asyncio.wait_for(run_service.shutdown(), timeout=5)

        run = await get_run(session_factory, started.run_id)
        assert process.killed is True
        assert run.status == RUN_ERROR
        assert run.finished_at is not None

    async def test_reset_only_touches_running_runs(self, run_service, session_factory):
        async with session_factory() as session:
            async with session.begin():
                stuck = QueryRun(status=RUN_RUNNING, note="all-sites:3")
                done = QueryRun(status=RUN_DONE, note="3/3")
                session.add_all([stuck, done])

        assert await run_service.reset_stuck_runs() == 1

        stuck = await get_run(session_factory, stuck.id)
        done = await get_run(session_factory, done.id)
        assert stuck.status == RUN_ERROR
        assert stuck.note == RESET_NOTE
        assert stuck.finished_at is not None
        assert done.status == RUN_DONE
        assert done.note == "3/3"

        assert await run_service.reset_stuck_runs() == 0

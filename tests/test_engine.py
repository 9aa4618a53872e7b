# File: tests/test_engine.py
from __future__ import annotations

import asyncio
import json

import pytest

from contact_scout.engine import Engine, run_sites
from contact_scout.errors import FailureKind, InferenceResponseError
from contact_scout.models import ExtractedData, SiteProcessingRecord, SiteResult
from contact_scout.report.json_report import ResultSink

BIG = "Acme Widgets. " * 200


class SleepyOrchestrator:
    """Tracks how many sites are processed at the same time."""

    stats = {"active": 0, "peak": 0}

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.seen = []

    async def process(self, url):
        stats = self.stats
        stats["active"] += 1
        stats["peak"] = max(stats["peak"], stats["active"])
        try:
            await asyncio.sleep(0.02)
            if url in self.fail_on:
                raise RuntimeError(f"crash on {url}")
            self.seen.append(url)
            return SiteResult(url, url, SiteProcessingRecord(site_name=url), ExtractedData.empty())
        finally:
            stats["active"] -= 1


@pytest.fixture(autouse=True)
def reset_stats():
    SleepyOrchestrator.stats = {"active": 0, "peak": 0}


@pytest.mark.asyncio()
async def test_run_sites_respects_concurrency():
    made = []

    def factory():
        orch = SleepyOrchestrator()
        made.append(orch)
        return orch

    sites = [f"s{i}.test" for i in range(10)]
    results = await run_sites(sites, factory, concurrency=3)

    assert len(results) == 10
    assert sorted(r.site_id for r in results) == sorted(sites)
    assert SleepyOrchestrator.stats["peak"] == 3
    # one orchestrator per worker, each handling its sites one by one
    assert len(made) == 3
    assert sum(len(o.seen) for o in made) == 10


@pytest.mark.asyncio()
async def test_run_sites_never_starts_more_workers_than_sites():
    made = []

    def factory():
        made.append(SleepyOrchestrator())
        return made[-1]

    results = await run_sites(["a.test"], factory, concurrency=30)
    assert len(results) == 1
    assert len(made) == 1


@pytest.mark.asyncio()
async def test_run_sites_empty():
    assert await run_sites([], SleepyOrchestrator, concurrency=4) == []


@pytest.mark.asyncio()
async def test_worker_survives_crashing_site():
    orch = SleepyOrchestrator(fail_on={"bad.test"})
    results = await run_sites(["good.test", "bad.test", "also-good.test"], lambda: orch, concurrency=1)

    by_id = {r.site_id: r for r in results}
    assert by_id["bad.test"].failure_kind is FailureKind.UNEXPECTED
    assert by_id["bad.test"].site_url == "https://bad.test"
    assert by_id["good.test"].ok
    assert by_id["also-good.test"].ok


@pytest.mark.asyncio()
async def test_result_callback_errors_do_not_stop_the_run():
    calls = []

    async def on_result(result):
        calls.append(result.site_id)
        raise OSError("disk full")

    results = await run_sites(["a.test", "b.test"], SleepyOrchestrator, concurrency=2, on_result=on_result)
    assert len(results) == 2
    assert sorted(calls) == ["a.test", "b.test"]


@pytest.mark.asyncio()
async def test_any_result_callback_error_keeps_workers_alive():
    calls = []

    async def on_result(result):
        calls.append(result.site_id)
        raise TypeError("Object of type set is not JSON serializable")

    sites = [f"s{i}.test" for i in range(5)]
    results = await asyncio.wait_for(
        run_sites(sites, SleepyOrchestrator, concurrency=2, on_result=on_result), timeout=5
    )
    assert len(results) == 5
    assert sorted(calls) == sorted(sites)


@pytest.mark.asyncio()
async def test_engine_run_end_to_end(fakes, fast_config, tmp_path):
    outcomes = {
        "https://acme.test": fakes.result(BIG, url="https://acme.test/", links=["https://acme.test/contact"]),
        "https://acme.test/contact": fakes.result("Phone: +1 555 0100"),
        "https://spa.test": fakes.result("Loading...", url="https://spa.test/"),
    }
    renderer = fakes.Renderer({"https://spa.test/": fakes.result(BIG, url="https://spa.test/")})
    client = fakes.Client()
    engine = Engine(
        fast_config,
        chain_factory=lambda session, cfg: fakes.Chain(outcomes),
        renderer=renderer,
        client=client,
    )
    sink = ResultSink(tmp_path / "all_results.json")

    report = await engine.run(["acme.test", "spa.test", "dead.test"], sink)

    assert report.total_sites == 3
    assert report.success_count == 2
    assert [e.site_id for e in report.download_errors] == ["dead.test"]
    assert report.extraction_errors == []
    assert set(report.results) == {"acme.test", "spa.test", "dead.test"}
    assert report.results["dead.test"].is_empty
    assert report.results["acme.test"].phone_numbers
    assert report.duration > 0

    written = json.loads((tmp_path / "all_results.json").read_text(encoding="utf-8"))
    assert set(written) == {"acme.test", "spa.test", "dead.test"}
    assert sink.written == 3
    assert renderer.rendered == ["https://spa.test/"]
    assert sum(len(b) for b in client.batches) == 2


@pytest.mark.asyncio()
async def test_engine_run_extraction_failure(fakes, fast_config):
    outcomes = {"https://acme.test": fakes.result(BIG, url="https://acme.test/")}
    engine = Engine(
        fast_config.model_copy(update={"max_retries": 0}),
        chain_factory=lambda session, cfg: fakes.Chain(outcomes),
        renderer=fakes.Renderer(),
        client=fakes.Client([InferenceResponseError("garbage")]),
    )

    report = await engine.run(["acme.test"])

    assert report.success_count == 0
    assert len(report.extraction_errors) == 1
    entry = report.extraction_errors[0]
    assert entry.error_type == "ExtractionError"
    assert entry.retry_count == 0
    assert entry.transient is False
    assert "InferenceResponseError: garbage" in entry.cause

"""crawl.registry（実行履歴・状態遷移）のユニットテスト。"""
from datetime import datetime, timedelta, timezone

import pytest

from mailbox_dash.api.models import CrawlRun, ErrorSample, RunStats, RunStatus
from mailbox_dash.constants import ERRORS_SAMPLE_MAX
from mailbox_dash.crawl.registry import InMemoryRunRegistry, clean_links
from mailbox_dash.crawl.simulator import CrawlSimulator
from mailbox_dash.errors import Conflict, InvalidArgument, NotFound


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kw):
        self.now += timedelta(**kw)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 5, 21, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def registry(clock):
    old = CrawlRun(
        run_id="RUN_20250520000000",
        started_at=clock.now - timedelta(days=1),
        finished_at=clock.now - timedelta(hours=23),
        status=RunStatus.SUCCESS,
        stats=RunStats(found=10, validated=10),
    )
    return InMemoryRunRegistry([old], clock=clock)


def test_trigger_creates_running_run_with_zero_stats(registry):
    rid = registry.trigger_run(["https://x/a", "https://x/b"])
    run = registry.get_run(rid)
    assert run.status is RunStatus.RUNNING
    assert run.stats == RunStats(0, 0, 0, 0)
    assert run.finished_at is None
    assert registry.list_runs()[0].run_id == rid
    assert registry.links_for(rid) == ("https://x/a", "https://x/b")


@pytest.mark.parametrize("links", [[], ["", "   "], None])
def test_trigger_without_links_is_rejected(registry, links):
    before = registry.list_runs()
    with pytest.raises(InvalidArgument):
        registry.trigger_run(links)
    assert registry.list_runs() == before


def test_clean_links_strips_blank_entries():
    assert clean_links([" https://x/a ", "", "  ", "https://x/b"]) == ["https://x/a", "https://x/b"]


def test_list_runs_newest_first(registry, clock):
    first = registry.trigger_run(["https://x/a"])
    clock.advance(minutes=1)
    second = registry.trigger_run(["https://x/b"])
    ids = [r.run_id for r in registry.list_runs()]
    assert ids == [second, first, "RUN_20250520000000"]


def test_run_ids_are_unique_within_same_second(registry):
    a = registry.trigger_run(["https://x/a"])
    b = registry.trigger_run(["https://x/a"])
    assert a != b
    assert b == f"{a}_2"
    # 同時刻は後から作ったものが先頭
    assert [r.run_id for r in registry.list_runs()][:2] == [b, a]


def test_get_unknown_run_raises_not_found(registry):
    with pytest.raises(NotFound):
        registry.get_run("RUN_missing")


def test_cancel_terminal_run_conflicts_and_keeps_status(registry):
    with pytest.raises(Conflict):
        registry.cancel_run("RUN_20250520000000")
    assert registry.get_run("RUN_20250520000000").status is RunStatus.SUCCESS


def test_cancel_only_records_intent(registry):
    rid = registry.trigger_run(["https://x/a"])
    registry.cancel_run(rid)
    assert registry.cancel_requested(rid)
    assert registry.get_run(rid).status is RunStatus.RUNNING


def test_cancelled_after_crawler_observes_request(registry):
    rid = registry.trigger_run(["https://x/a"])
    registry.cancel_run(rid)
    CrawlSimulator(registry, seed=1).advance(rid)
    run = registry.get_run(rid)
    assert run.status is RunStatus.CANCELLED
    assert run.finished_at is not None
    assert not registry.cancel_requested(rid)


def test_terminal_snapshot_is_frozen(registry):
    rid = registry.trigger_run(["https://x/a", "https://x/b"])
    assert registry.get_run(rid).stats.found == 0
    final = RunStats(found=100, validated=95, skipped=3, failed=2)
    registry.apply_update(rid, status=RunStatus.SUCCESS, stats=final)

    for _ in range(3):
        run = registry.get_run(rid)
        assert run.status is RunStatus.SUCCESS
        assert run.stats == final
    with pytest.raises(Conflict):
        registry.apply_update(rid, status=RunStatus.RUNNING)
    with pytest.raises(Conflict):
        registry.apply_update(rid, stats=RunStats(found=200))
    assert registry.get_run(rid).stats == final


def test_stats_cannot_decrease_while_running(registry):
    rid = registry.trigger_run(["https://x/a"])
    registry.apply_update(rid, stats=RunStats(found=10, validated=5))
    with pytest.raises(InvalidArgument):
        registry.apply_update(rid, stats=RunStats(found=10, validated=4))


def test_inconsistent_counts_are_tolerated_mid_run(registry):
    rid = registry.trigger_run(["https://x/a"])
    run = registry.apply_update(rid, stats=RunStats(found=2, validated=3))
    assert run.status is RunStatus.RUNNING
    assert not run.stats.is_consistent()


def test_errors_sample_is_capped(registry):
    rid = registry.trigger_run(["https://x/a"])
    errors = [ErrorSample(link=f"https://x/{i}", reason="boom") for i in range(ERRORS_SAMPLE_MAX + 5)]
    registry.apply_update(rid, errors=errors[:3])
    run = registry.apply_update(rid, errors=errors[3:])
    assert len(run.errors_sample) == ERRORS_SAMPLE_MAX
    assert run.errors_sample[0].link == "https://x/0"


def test_stale_running_run_reported_as_timeout(registry, clock):
    rid = registry.trigger_run(["https://x/a"])
    clock.advance(minutes=46)
    run = registry.get_run(rid)
    assert run.status is RunStatus.TIMEOUT
    assert run.finished_at == clock.now
    with pytest.raises(Conflict):
        registry.cancel_run(rid)


def test_simulator_runs_to_success(registry):
    rid = registry.trigger_run(["https://x/a", "https://x/b"])
    sim = CrawlSimulator(registry, listings_per_link=10, batch_size=7, failure_rate=0.0, skip_rate=0.0, seed=3)
    previous = registry.get_run(rid).stats
    for _ in range(10):
        sim.step()
        run = registry.get_run(rid)
        assert run.stats.covers(previous)
        previous = run.stats
        if run.is_terminal:
            break
    assert run.status is RunStatus.SUCCESS
    assert run.stats == RunStats(found=20, validated=20)


def test_simulator_marks_all_failed_run_as_failed(registry):
    rid = registry.trigger_run(["https://x/a"])
    sim = CrawlSimulator(registry, listings_per_link=5, batch_size=5, failure_rate=1.0, seed=3)
    sim.advance(rid)
    run = registry.get_run(rid)
    assert run.status is RunStatus.FAILED
    assert run.stats.failed == 5
    assert len(run.errors_sample) == 5

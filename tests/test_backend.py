"""backend（MockBackend / ApiBackend の切り替え）のテスト。"""
import io

import pandas as pd
import pytest

from mailbox_dash.api.models import MailboxFilter, RunStatus
from mailbox_dash.backend import EXPORT_COLUMNS, ApiBackend, MockBackend, get_backend
from mailbox_dash.config import default_config
from mailbox_dash.crawl.poller import RunPoller
from mailbox_dash.crawl.registry import InMemoryRunRegistry
from mailbox_dash.directory.query import MailboxDirectory
from mailbox_dash.errors import Conflict, InvalidArgument
from mailbox_dash.params import DashboardParams


@pytest.fixture
def params():
    return DashboardParams.from_config(default_config())


@pytest.fixture
def backend(params):
    return MockBackend.from_params(params)


def test_mock_backend_serves_generated_directory(backend, params):
    stats = backend.get_stats()
    assert stats.total_mailboxes == params.mock_mailbox_count
    page = backend.query(MailboxFilter(page=1, page_size=25))
    assert page.total == params.mock_mailbox_count
    assert len(page.items) == 25


def test_mock_history_has_no_running_runs(backend):
    runs = backend.list_runs()
    assert runs
    assert all(r.is_terminal for r in runs)


def test_triggered_run_progresses_until_terminal(backend):
    run_id = backend.trigger_run(["https://www.anytimemailbox.com/l/usa"])
    sleeps = []
    with RunPoller(backend.list_runs, read_run=backend.get_run, interval_sec=5.0, sleep=sleeps.append) as poller:
        poller.track(run_id)
        assert poller.start()
        poller.run_until_idle(max_ticks=20)
        run = poller.view.get(run_id)
    assert run.status is RunStatus.SUCCESS
    assert run.stats.found == 20
    assert run.stats.processed == 20
    assert run.finished_at is not None
    assert poller.view.runs[0].run_id == run_id


def test_cancel_is_reflected_on_next_read(backend):
    run_id = backend.trigger_run(["https://a", "https://b"])
    backend.cancel_run(run_id)
    assert backend.get_run(run_id).status is RunStatus.CANCELLED
    with pytest.raises(Conflict):
        backend.cancel_run(run_id)


def test_trigger_without_links_is_rejected(backend):
    with pytest.raises(InvalidArgument):
        backend.trigger_run([])


def test_export_csv_has_fixed_columns(backend, params):
    df = pd.read_csv(io.StringIO(backend.export_csv()))
    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == params.mock_mailbox_count
    assert backend.export_url() is None


def test_export_csv_of_empty_directory_is_header_only():
    backend = MockBackend(MailboxDirectory([]), InMemoryRunRegistry())
    assert backend.export_csv().strip() == ",".join(EXPORT_COLUMNS)


def test_get_backend_selects_by_mode(params):
    from dataclasses import replace

    assert isinstance(get_backend(params), MockBackend)
    live = get_backend(replace(params, backend_mode="live", api_base_url="http://dash.test/"))
    assert isinstance(live, ApiBackend)
    assert live.export_url() == "http://dash.test/api/mailboxes/export"
    assert live.export_csv() is None

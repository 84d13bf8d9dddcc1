"""api.client（DashboardApiClient）のユニットテスト。通信はフェイクのセッションで差し替える。"""
import pytest
import requests

from mailbox_dash.api.client import DashboardApiClient
from mailbox_dash.api.models import CrawlRun, MailboxFilter, MailboxRecord, RunStatus
from mailbox_dash.constants import ERRORS_SAMPLE_MAX
from mailbox_dash.directory.stats import compute_stats
from mailbox_dash.errors import Conflict, InvalidArgument, NotFound, TransportError

BASE = "http://dash.test"


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else ("" if body is None else repr(body))
        self.content = b"" if body is None and not text else b"x"

    def json(self):
        if self._body is None:
            raise ValueError("no json body")
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    """(method, path) ごとに応答を返す。path は /api 以降。"""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def _respond(self, method, url, payload):
        path = url.split("/api", 1)[1]
        self.calls.append((method, path, payload))
        resp = self.routes.get((method, path))
        if resp is None:
            return FakeResponse(404, {"error": f"no route {path}"})
        if isinstance(resp, Exception):
            raise resp
        if callable(resp):
            return resp(payload)
        return resp

    def get(self, url, params=None, headers=None, timeout=None):
        return self._respond("GET", url, params)

    def post(self, url, json=None, headers=None, timeout=None):
        return self._respond("POST", url, json)


def _client(routes):
    session = FakeSession(routes)
    return DashboardApiClient(BASE, session=session), session


def _run_json(rid="RUN_20250521120000", status="running", **extra):
    d = {
        "runId": rid,
        "startedAt": "2025-05-21T12:00:00Z",
        "status": status,
        "stats": {"found": 40, "validated": 10, "skipped": 2, "failed": 1},
    }
    d.update(extra)
    return d


def test_get_mailboxes_maps_items_and_sends_exact_filters():
    body = {
        "items": [
            {
                "id": "mb_1",
                "name": "Downtown Center",
                "link": "https://atmb.test/1",
                "price": 12.5,
                "addressRaw": {"street": "1 Main St", "city": "Austin", "state": "TX", "zip": "78701"},
                "cmra": "y",
                "rdi": "commercial",
                "standardizedAddress": {"deliveryLine1": "1 MAIN ST", "lastLine": "AUSTIN TX 78701"},
                "source": "ATMB",
            }
        ],
        "total": 31,
        "page": 2,
    }
    client, session = _client({("GET", "/mailboxes"): FakeResponse(200, body)})
    page = client.get_mailboxes(MailboxFilter(page=2, page_size=10, state="TX", rdi="Commercial"))

    method, path, params = session.calls[0]
    assert (method, path) == ("GET", "/mailboxes")
    assert params == {"active": "true", "page": 2, "pageSize": 10, "state": "TX", "rdi": "Commercial"}
    assert page.total == 31
    assert page.page == 2
    assert page.page_count == 4
    mb = page.items[0]
    assert mb.city == "Austin"
    assert mb.cmra == "Y"
    assert mb.rdi == "Commercial"
    assert mb.standardized_address.delivery_line1 == "1 MAIN ST"


def test_search_omits_exact_filters():
    client, session = _client({("GET", "/mailboxes"): FakeResponse(200, {"items": [], "total": 0})})
    client.get_mailboxes(MailboxFilter(state="TX", cmra="Y", search="  downtown "))
    params = session.calls[0][2]
    assert params["search"] == "downtown"
    assert "state" not in params
    assert "cmra" not in params


def test_invalid_filter_is_rejected_without_request():
    client, session = _client({})
    with pytest.raises(InvalidArgument):
        client.get_mailboxes(MailboxFilter(page=0))
    assert session.calls == []


def test_unknown_choice_values_become_unknown():
    body = {"items": [{"name": "X", "link": "https://x", "cmra": "maybe", "rdi": ""}], "total": 1}
    client, _ = _client({("GET", "/mailboxes"): FakeResponse(200, body)})
    mb = client.get_mailboxes(MailboxFilter()).items[0]
    assert mb.cmra == "Unknown"
    assert mb.rdi == "Unknown"
    # id が無いときはリンクから導出
    assert len(mb.mailbox_id) == 32


@pytest.mark.parametrize("raw", ["nan", "inf", "-inf", float("nan"), -5])
def test_non_finite_or_negative_price_becomes_zero(raw):
    body = {"items": [{"id": "mb_1", "name": "X", "link": "https://x", "price": raw}], "total": 1}
    client, _ = _client({("GET", "/mailboxes"): FakeResponse(200, body)})
    mb = client.get_mailboxes(MailboxFilter()).items[0]
    assert mb.price == 0.0
    assert compute_stats([mb]).avg_price == 0.0


def test_non_finite_price_rejected_on_construction():
    with pytest.raises(InvalidArgument):
        MailboxRecord(mailbox_id="mb_1", name="X", link="https://x", price=float("inf"))


def test_trigger_with_no_links_sends_nothing():
    client, session = _client({})
    with pytest.raises(InvalidArgument):
        client.trigger_crawl(["", "   "])
    assert session.calls == []


def test_trigger_posts_cleaned_links_and_returns_run_id():
    client, session = _client({("POST", "/crawl/run"): FakeResponse(202, {"runId": "RUN_1"})})
    run_id = client.trigger_crawl([" https://a ", "", "https://b"])
    assert run_id == "RUN_1"
    assert session.calls[0] == ("POST", "/crawl/run", {"links": ["https://a", "https://b"]})


def test_trigger_without_run_id_is_transport_error():
    client, _ = _client({("POST", "/crawl/run"): FakeResponse(200, {})})
    with pytest.raises(TransportError):
        client.trigger_crawl(["https://a"])


def test_list_runs_newest_first():
    items = [
        _run_json("RUN_OLD", "success", startedAt="2025-05-20T00:00:00Z"),
        _run_json("RUN_NEW", "running", startedAt="2025-05-21T00:00:00Z"),
    ]
    client, _ = _client({("GET", "/crawl/runs"): FakeResponse(200, {"items": items})})
    runs = client.list_runs()
    assert [r.run_id for r in runs] == ["RUN_NEW", "RUN_OLD"]
    assert runs[0].status is RunStatus.RUNNING


def test_list_runs_falls_back_to_status_endpoint():
    client, session = _client({
        ("POST", "/crawl/run"): FakeResponse(200, {"runId": "RUN_A"}),
        ("GET", "/crawl/status"): FakeResponse(200, _run_json("RUN_A")),
    })
    client.trigger_crawl(["https://a"])
    runs = client.list_runs()
    assert [r.run_id for r in runs] == ["RUN_A"]
    paths = [c[1] for c in session.calls]
    assert paths == ["/crawl/run", "/crawl/runs", "/crawl/status"]
    assert session.calls[-1][2]["runId"] == "RUN_A"
    assert "ts" in session.calls[-1][2]


def test_get_run_unknown_is_not_found():
    client, _ = _client({("GET", "/crawl/status"): FakeResponse(404, {"error": "run not found"})})
    with pytest.raises(NotFound):
        client.get_run("RUN_X")


def test_get_run_empty_body_is_not_found():
    client, _ = _client({("GET", "/crawl/status"): FakeResponse(200, {})})
    with pytest.raises(NotFound):
        client.get_run("RUN_X")


def test_get_run_non_object_body_is_transport_error():
    client, _ = _client({("GET", "/crawl/status"): FakeResponse(200, [{"runId": "RUN_X"}])})
    with pytest.raises(TransportError):
        client.get_run("RUN_X")


def test_negative_counters_are_transport_errors():
    bad = _run_json(stats={"found": 10, "validated": -1})
    client, _ = _client({
        ("GET", "/crawl/status"): FakeResponse(200, bad),
        ("GET", "/crawl/runs"): FakeResponse(200, {"items": [bad]}),
    })
    with pytest.raises(TransportError):
        client.get_run("RUN_20250521120000")
    with pytest.raises(TransportError):
        client.list_runs()
    legacy = {"runId": "RUN_L", "startedAt": "2025-05-21T12:00:00Z", "status": "failed", "totalFailed": -3}
    with pytest.raises(ValueError):
        CrawlRun.from_api(legacy)


def test_server_error_keeps_status_and_message():
    client, _ = _client({("GET", "/stats"): FakeResponse(500, {"error": "db unavailable"})})
    with pytest.raises(TransportError) as ei:
        client.get_stats()
    assert ei.value.status_code == 500
    assert str(ei.value) == "[500] db unavailable"


def test_bad_request_maps_to_invalid_argument():
    client, _ = _client({("GET", "/mailboxes"): FakeResponse(400, text="bad pageSize")})
    with pytest.raises(InvalidArgument, match="bad pageSize"):
        client.get_mailboxes(MailboxFilter())


def test_connection_failure_is_transport_error():
    client, _ = _client({("GET", "/stats"): requests.ConnectionError("refused")})
    with pytest.raises(TransportError) as ei:
        client.get_stats()
    assert ei.value.status_code is None


def test_cancel_terminal_run_is_conflict_without_post():
    client, session = _client({("GET", "/crawl/status"): FakeResponse(200, _run_json(status="success"))})
    with pytest.raises(Conflict):
        client.cancel_run("RUN_20250521120000")
    assert all(c[0] == "GET" for c in session.calls)


def test_cancel_running_run_posts_request():
    client, session = _client({
        ("GET", "/crawl/status"): FakeResponse(200, _run_json()),
        ("POST", "/crawl/cancel"): FakeResponse(202, {"status": "accepted"}),
    })
    client.cancel_run("RUN_20250521120000")
    assert session.calls[-1] == ("POST", "/crawl/cancel", {"runId": "RUN_20250521120000"})


def test_cancel_conflict_from_server():
    client, _ = _client({
        ("GET", "/crawl/status"): FakeResponse(200, _run_json()),
        ("POST", "/crawl/cancel"): FakeResponse(409, {"error": "already finished"}),
    })
    with pytest.raises(Conflict):
        client.cancel_run("RUN_20250521120000")


def test_stats_mapping_and_refresh():
    body = {
        "totalMailboxes": 3,
        "totalCommercial": 1,
        "totalResidential": 1,
        "avgPrice": 19.99,
        "byState": {"CA": 2, "Unknown": 1},
        "bySource": {"ATMB": 3},
        "lastUpdated": "2025-05-21T12:00:00.123456789Z",
    }
    client, session = _client({
        ("GET", "/stats"): FakeResponse(200, body),
        ("POST", "/stats/refresh"): FakeResponse(200, body),
    })
    stats = client.get_stats()
    assert stats.total_mailboxes == 3
    assert stats.avg_price == pytest.approx(19.99)
    assert stats.by_state == {"CA": 2, "Unknown": 1}
    assert stats.last_updated.microsecond == 123456
    client.refresh_stats()
    assert session.calls[-1][:2] == ("POST", "/stats/refresh")


def test_export_url():
    client, _ = _client({})
    assert client.export_url() == f"{BASE}/api/mailboxes/export"


# --- CrawlRun.from_api -----------------------------------------------------


def test_running_run_ignores_zero_finished_at():
    run = CrawlRun.from_api(_run_json(finishedAt="0001-01-01T00:00:00Z"))
    assert run.finished_at is None
    assert not run.is_terminal


def test_legacy_status_shape():
    d = {
        "id": "RUN_L",
        "startedAt": "2025-05-21T12:00:00Z",
        "finishedAt": "2025-05-21T12:30:00Z",
        "status": "partial_halt",
        "totalFound": 10,
        "totalValidated": 6,
        "totalFailed": 2,
    }
    run = CrawlRun.from_api(d)
    assert run.run_id == "RUN_L"
    assert run.status is RunStatus.PARTIAL_HALT
    assert run.stats.found == 10
    assert run.stats.skipped == 0
    assert run.finished_at is not None


def test_errors_sample_is_capped():
    errors = [{"link": f"https://x/{i}", "reason": "timeout"} for i in range(25)]
    run = CrawlRun.from_api(_run_json(status="failed", errorsSample=errors))
    assert len(run.errors_sample) == ERRORS_SAMPLE_MAX


def test_run_without_started_at_is_rejected():
    with pytest.raises(ValueError):
        CrawlRun.from_api({"runId": "RUN_1", "status": "running", "startedAt": "0001-01-01T00:00:00Z"})


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        CrawlRun.from_api(_run_json(status="paused"))

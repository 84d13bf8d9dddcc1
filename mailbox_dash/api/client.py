"""ダッシュボード API（/api 以下）のクライアント。"""
from __future__ import annotations

import logging
import time
from typing import Any, Optional, Sequence

import requests

from mailbox_dash.api.models import CrawlRun, MailboxFilter, MailboxPage, MailboxRecord, Stats
from mailbox_dash.constants import DEFAULT_API_BASE_URL
from mailbox_dash.crawl.registry import clean_links
from mailbox_dash.errors import Conflict, InvalidArgument, MailboxDashError, NotFound, TransportError
from mailbox_dash.util import http

logger = logging.getLogger(__name__)


def _error_message(resp: Optional[requests.Response]) -> str:
    """エラーレスポンスから {"error": "..."} の内容、なければ本文を取り出す。"""
    if resp is None:
        return ""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return (resp.text or "").strip() or f"Request failed: {resp.status_code}"


def _error_for_status(status: int, message: str) -> MailboxDashError:
    if status == 400:
        return InvalidArgument(message)
    if status == 404:
        return NotFound(message)
    if status == 409:
        return Conflict(message)
    return TransportError(message, status_code=status)


class DashboardApiClient:
    """
    バックエンド API の薄いラッパー。通信のタイムアウトは util.http に任せ、
    リトライはしない（失敗は呼び出し側へ）。
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout_sec: Optional[int] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._timeout_sec = timeout_sec
        # /crawl/runs が無い旧バックエンド向けに、このクライアントが知っている run ID を覚える
        self._known_run_ids: list[str] = []

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api{path}"

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        try:
            return http.get_json(self._url(path), params=params, timeout_sec=self._timeout_sec, session=self._session)
        except requests.HTTPError as e:
            resp = e.response
            status = resp.status_code if resp is not None else 0
            raise _error_for_status(status, _error_message(resp)) from e
        except requests.RequestException as e:
            raise TransportError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"GET {path} returned invalid JSON: {e}") from e

    def _post(self, path: str, body: Any) -> Any:
        try:
            return http.post_json(self._url(path), body, timeout_sec=self._timeout_sec, session=self._session)
        except requests.HTTPError as e:
            resp = e.response
            status = resp.status_code if resp is not None else 0
            raise _error_for_status(status, _error_message(resp)) from e
        except requests.RequestException as e:
            raise TransportError(f"POST {path} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"POST {path} returned invalid JSON: {e}") from e

    # --- mailboxes -------------------------------------------------------

    def get_mailboxes(self, flt: MailboxFilter) -> MailboxPage:
        """
        GET /api/mailboxes。
        search 指定時は完全一致条件を送らない（インメモリ版と同じ意味にそろえる）。
        """
        flt.validate()
        params: dict[str, Any] = {"active": "true", "page": flt.page, "pageSize": flt.page_size}
        if flt.search_term is not None:
            params["search"] = flt.search_term
        else:
            params.update(flt.exact_fields())
        data = self._get("/mailboxes", params=params)
        try:
            items = [MailboxRecord.from_api(m) for m in (data.get("items") or [])]
            total = int(data.get("total", 0) or 0)
            page = int(data.get("page", 0) or flt.page)
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportError(f"unexpected mailboxes response: {e}") from e
        return MailboxPage(items=items, total=total, page=page, page_size=flt.page_size)

    def export_url(self) -> str:
        """CSV ダウンロード用 URL（取得自体はブラウザに任せる）。"""
        return self._url("/mailboxes/export")

    # --- stats -----------------------------------------------------------

    def get_stats(self) -> Stats:
        return self._decode_stats(self._get("/stats"))

    def refresh_stats(self) -> Stats:
        """POST /api/stats/refresh。サーバー側で再集計した結果を返す。"""
        return self._decode_stats(self._post("/stats/refresh", {}))

    @staticmethod
    def _decode_stats(data: Any) -> Stats:
        try:
            return Stats.from_api(data or {})
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportError(f"unexpected stats response: {e}") from e

    # --- crawl runs ------------------------------------------------------

    def trigger_crawl(self, links: Sequence[str]) -> str:
        """POST /api/crawl/run。リンクが空なら通信せずに InvalidArgument。"""
        cleaned = clean_links(links)
        if not cleaned:
            raise InvalidArgument("no links provided to crawl")
        data = self._post("/crawl/run", {"links": cleaned})
        run_id = str((data or {}).get("runId") or "").strip()
        if not run_id:
            raise TransportError("crawl run accepted without runId")
        self.remember_run(run_id)
        logger.info("crawl triggered: run_id=%s links=%d", run_id, len(cleaned))
        return run_id

    def remember_run(self, run_id: str) -> None:
        if run_id and run_id not in self._known_run_ids:
            self._known_run_ids.append(run_id)

    def list_runs(self) -> list[CrawlRun]:
        """
        GET /api/crawl/runs（新しい順）。
        404 の旧バックエンドでは既知の run を /crawl/status で1件ずつ読む。
        """
        try:
            data = self._get("/crawl/runs")
        except NotFound:
            logger.debug("/crawl/runs not available, falling back to /crawl/status")
            return self._list_runs_legacy()
        try:
            runs = [CrawlRun.from_api(r) for r in (data.get("items") or [])]
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportError(f"unexpected runs response: {e}") from e
        return sorted(runs, key=lambda r: r.started_at, reverse=True)

    def _list_runs_legacy(self) -> list[CrawlRun]:
        runs: list[CrawlRun] = []
        for rid in self._known_run_ids:
            try:
                runs.append(self.get_run(rid))
            except NotFound:
                continue
        return sorted(runs, key=lambda r: r.started_at, reverse=True)

    def get_run(self, run_id: str) -> CrawlRun:
        """GET /api/crawl/status?runId=。ts はキャッシュ回避用。"""
        if not run_id:
            raise InvalidArgument("runId is required")
        data = self._get("/crawl/status", params={"runId": run_id, "ts": int(time.time() * 1000)})
        try:
            if not data or not (data.get("runId") or data.get("id")):
                raise NotFound(f"run {run_id} not found")
            return CrawlRun.from_api(data)
        except (AttributeError, TypeError, ValueError) as e:
            raise TransportError(f"unexpected run status response: {e}") from e

    def cancel_run(self, run_id: str) -> None:
        """
        POST /api/crawl/cancel。終了済みなら送信せずに Conflict。
        受け付けても即座に cancelled になるとは限らない。
        """
        current = self.get_run(run_id)
        if current.is_terminal:
            raise Conflict(f"run {run_id} is not running (status: {current.status.value})")
        self._post("/crawl/cancel", {"runId": run_id})
        logger.info("cancel requested: run_id=%s", run_id)

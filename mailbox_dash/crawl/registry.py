"""クロール実行履歴（モックモード用のインメモリ実装）。"""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence

from mailbox_dash.api.models import CrawlRun, ErrorSample, RunStats, RunStatus
from mailbox_dash.constants import DEFAULT_STALE_RUN_MINUTES, ERRORS_SAMPLE_MAX
from mailbox_dash.errors import Conflict, InvalidArgument, NotFound
from mailbox_dash.util.datetime_utils import run_id as make_run_id, utc_now

logger = logging.getLogger(__name__)


def clean_links(links: Optional[Sequence[str]]) -> list[str]:
    """空白だけのリンクを除く。実行開始前のチェックに使う。"""
    return [s.strip() for s in (links or []) if s and s.strip()]


class InMemoryRunRegistry:
    """
    実行履歴の保持と状態遷移。

    ダッシュボード側の操作は list / get / trigger / cancel のみ。
    apply_update は外部クローラー側（モックでは CrawlSimulator）が使う。
    """

    def __init__(
        self,
        runs: Iterable[CrawlRun] = (),
        clock: Callable[[], datetime] = utc_now,
        stale_after: Optional[timedelta] = timedelta(minutes=DEFAULT_STALE_RUN_MINUTES),
        source: str = "ATMB",
    ) -> None:
        self._clock = clock
        self._stale_after = stale_after
        self._source = source
        self._runs: dict[str, CrawlRun] = {}
        self._links: dict[str, tuple[str, ...]] = {}
        self._cancel_requested: set[str] = set()
        self._lock = threading.Lock()
        for run in runs:
            self._runs[run.run_id] = run

    def list_runs(self) -> list[CrawlRun]:
        """開始時刻の新しい順。同時刻は後から登録したものが先。"""
        with self._lock:
            self._expire_stale()
            newest_first = list(reversed(list(self._runs.values())))
        return sorted(newest_first, key=lambda r: r.started_at, reverse=True)

    def get_run(self, run_id: str) -> CrawlRun:
        with self._lock:
            self._expire_stale()
            run = self._runs.get(run_id)
        if run is None:
            raise NotFound(f"run {run_id} not found")
        return run

    def trigger_run(self, links: Sequence[str]) -> str:
        """running の実行を作って ID を返す。完了は待たない。"""
        cleaned = clean_links(links)
        if not cleaned:
            raise InvalidArgument("no links provided to crawl")
        now = self._clock()
        with self._lock:
            rid = self._unique_id(make_run_id(now))
            self._runs[rid] = CrawlRun(
                run_id=rid,
                started_at=now,
                status=RunStatus.RUNNING,
                stats=RunStats(),
                source=self._source,
            )
            self._links[rid] = tuple(cleaned)
        logger.info("run %s accepted: links=%d", rid, len(cleaned))
        return rid

    def cancel_run(self, run_id: str) -> None:
        """
        キャンセル要求を記録するだけ。cancelled への遷移はクローラー側が行い、
        次の状態取得で確定する。
        """
        run = self.get_run(run_id)
        if run.is_terminal:
            raise Conflict(f"run {run_id} is not running (status: {run.status.value})")
        with self._lock:
            self._cancel_requested.add(run_id)
        logger.info("run %s cancel requested", run_id)

    def cancel_requested(self, run_id: str) -> bool:
        return run_id in self._cancel_requested

    def links_for(self, run_id: str) -> tuple[str, ...]:
        return self._links.get(run_id, ())

    def apply_update(
        self,
        run_id: str,
        *,
        status: Optional[RunStatus] = None,
        stats: Optional[RunStats] = None,
        errors: Iterable[ErrorSample] = (),
    ) -> CrawlRun:
        """
        クローラーからの進捗・終了報告を反映する。
        終端の実行は変更できない。実行中の stats は減らせない。
        """
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise NotFound(f"run {run_id} not found")
            if run.is_terminal:
                raise Conflict(f"run {run_id} is already {run.status.value}")
            if stats is not None and not stats.covers(run.stats):
                raise InvalidArgument(f"run {run_id} stats must not decrease while running")
            sample = list(run.errors_sample)
            for e in errors:
                if len(sample) >= ERRORS_SAMPLE_MAX:
                    break
                sample.append(e)
            new_status = status or run.status
            updated = replace(
                run,
                status=new_status,
                stats=stats if stats is not None else run.stats,
                errors_sample=tuple(sample),
                finished_at=self._clock() if new_status.is_terminal else None,
            )
            self._runs[run_id] = updated
            if new_status.is_terminal:
                self._cancel_requested.discard(run_id)
        if new_status.is_terminal:
            logger.info("run %s finished: status=%s", run_id, new_status.value)
        return updated

    def _unique_id(self, base: str) -> str:
        rid = base
        n = 2
        while rid in self._runs:
            rid = f"{base}_{n}"
            n += 1
        return rid

    def _expire_stale(self) -> None:
        # 長時間 running のままの実行は読み取り時に timeout 扱いにする
        if self._stale_after is None:
            return
        now = self._clock()
        for rid, run in list(self._runs.items()):
            if run.status is RunStatus.RUNNING and now - run.started_at > self._stale_after:
                self._runs[rid] = replace(run, status=RunStatus.TIMEOUT, finished_at=now)
                self._cancel_requested.discard(rid)
                logger.warning("run %s marked as timeout (started %s)", rid, run.started_at.isoformat())

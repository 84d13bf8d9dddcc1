"""
実行中クロールの状態を定期的に再取得するポーラー。

バックグラウンドスレッドは使わない。1 tick で状態取得を1回行い、
結果を反映してから次の tick を予約する。追跡中の run がすべて終端になった時点で
予約をやめる（以降は一切取得しない）。
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Iterable, Optional

from mailbox_dash.api.models import CrawlRun, RunStatus
from mailbox_dash.constants import DEFAULT_POLL_INTERVAL_SEC
from mailbox_dash.errors import MailboxDashError, NotFound
from mailbox_dash.util.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class RunView:
    """
    画面に出す実行一覧。取得ごとに丸ごと差し替える。

    begin_read() で発行番号を受け取り、complete_read() で結果を渡す。
    すでに反映済みの取得より前に発行された取得の結果は捨てる
    （遅れて返ってきた古いレスポンスで新しい状態を上書きしない）。
    一度終端になった run が running に戻ることはない。
    """

    def __init__(self, runs: Iterable[CrawlRun] = ()) -> None:
        self._lock = threading.Lock()
        self._runs: list[CrawlRun] = list(runs)
        self._issued = 0
        self._applied = 0
        self._updated_at: Optional[datetime] = None

    @property
    def runs(self) -> list[CrawlRun]:
        return list(self._runs)

    @property
    def updated_at(self) -> Optional[datetime]:
        return self._updated_at

    def get(self, run_id: str) -> Optional[CrawlRun]:
        for run in self._runs:
            if run.run_id == run_id:
                return run
        return None

    def begin_read(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def complete_read(self, seq: int, runs: Iterable[CrawlRun], partial: bool = False) -> bool:
        """
        取得結果を反映。古い取得なら False を返して何もしない。
        partial=True のときは一覧を置き換えず、該当 run だけ差し替える。
        """
        incoming = list(runs)
        with self._lock:
            if seq <= self._applied:
                logger.debug("discard stale run read seq=%d (applied=%d)", seq, self._applied)
                return False
            previous = {r.run_id: r for r in self._runs}
            merged = [_keep_terminal(previous.get(r.run_id), r) for r in incoming]
            if partial:
                seen = {r.run_id for r in merged}
                merged += [r for r in self._runs if r.run_id not in seen]
                merged.sort(key=lambda r: r.started_at, reverse=True)
            self._runs = merged
            self._applied = seq
            self._updated_at = utc_now()
            return True


def _keep_terminal(old: Optional[CrawlRun], new: CrawlRun) -> CrawlRun:
    if old is not None and old.is_terminal and not new.is_terminal:
        return old
    return new


class RunPoller:
    """
    追跡中の run が running の間だけ interval_sec ごとに状態を取り直す。

    start() / stop() が唯一の開始・停止の窓口。画面破棄時は stop()（または with 文）。
    読み取り失敗はログに出して次の tick で再試行する。失敗だけでは止まらない。
    """

    def __init__(
        self,
        read_runs: Callable[[], list[CrawlRun]],
        read_run: Optional[Callable[[str], CrawlRun]] = None,
        view: Optional[RunView] = None,
        interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        on_terminal: Optional[Callable[[CrawlRun], None]] = None,
    ) -> None:
        self._read_runs = read_runs
        self._read_run = read_run
        self.view = view or RunView()
        self.interval_sec = interval_sec
        self._clock = clock
        self._sleep = sleep
        self._on_terminal = on_terminal
        self._tracked: set[str] = set()
        self._active = False
        self._next_tick_at: Optional[float] = None
        self.reads_issued = 0
        self.last_error: Optional[MailboxDashError] = None

    def __enter__(self) -> RunPoller:
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def tracked_ids(self) -> frozenset[str]:
        return frozenset(self._tracked)

    def track(self, run_id: str) -> None:
        self._tracked.add(run_id)

    def start(self) -> bool:
        """
        ポーリングを開始。一覧で終端になった追跡対象を外し、一覧中の running を追跡に加える。
        追跡すべきものが無ければ開始しない。
        """
        for rid in list(self._tracked):
            run = self.view.get(rid)
            if run is not None and run.is_terminal:
                self._tracked.discard(rid)
        self._tracked |= {r.run_id for r in self.view.runs if r.status is RunStatus.RUNNING}
        if not self._any_running():
            self.stop()
            return False
        if not self._active:
            self._active = True
            self._next_tick_at = self._clock() + self.interval_sec
            logger.info("polling started: tracked=%s interval=%.1fs", sorted(self._tracked), self.interval_sec)
        return True

    def stop(self) -> None:
        """予約中の tick を破棄する。以後 tick() は取得を行わない。"""
        if self._active:
            logger.info("polling stopped")
        self._active = False
        self._next_tick_at = None

    def reset(self) -> None:
        """停止して追跡対象も空にする（画面破棄時）。"""
        self.stop()
        self._tracked.clear()

    def seconds_until_next_tick(self) -> Optional[float]:
        if not self._active or self._next_tick_at is None:
            return None
        return max(0.0, self._next_tick_at - self._clock())

    def tick_if_due(self) -> bool:
        """予約時刻を過ぎていれば tick する（Streamlit の再実行から呼ぶ）。"""
        remaining = self.seconds_until_next_tick()
        if remaining is None or remaining > 0:
            return False
        self.tick()
        return True

    def tick(self) -> None:
        """状態を1回取得して反映し、次を予約するか停止する。"""
        if not self._active:
            return
        seq = self.view.begin_read()
        self.reads_issued += 1
        try:
            runs = self._read_runs()
        except MailboxDashError as e:
            self.last_error = e
            logger.warning("run status read failed, retry in %.1fs: %s", self.interval_sec, e)
            self._schedule_next()
            return
        self.last_error = None
        before = {rid: self.view.get(rid) for rid in self._tracked}
        self.view.complete_read(seq, runs)
        self._resolve_missing()
        self._notify_terminal(before)

        if self._any_running():
            self._schedule_next()
        else:
            self.stop()

    def run_until_idle(self, max_ticks: Optional[int] = None) -> int:
        """停止するまで待機と tick を繰り返す（CLI 用）。実行した tick 数を返す。"""
        ticks = 0
        while self._active:
            remaining = self.seconds_until_next_tick()
            if remaining:
                self._sleep(remaining)
            if not self._active:
                break
            self.tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
        return ticks

    def _schedule_next(self) -> None:
        if self._active:
            self._next_tick_at = self._clock() + self.interval_sec

    def _any_running(self) -> bool:
        for rid in self._tracked:
            run = self.view.get(rid)
            # まだ一覧に現れていない run は実行中として扱う
            if run is None or run.status is RunStatus.RUNNING:
                return True
        return False

    def _resolve_missing(self) -> None:
        # 一覧（件数上限あり）から外れた追跡対象は単体取得で補う
        missing = [rid for rid in self._tracked if self.view.get(rid) is None]
        for rid in missing:
            if self._read_run is None:
                logger.warning("run %s not in run list, stop tracking", rid)
                self._tracked.discard(rid)
                continue
            seq = self.view.begin_read()
            self.reads_issued += 1
            try:
                run = self._read_run(rid)
            except NotFound:
                logger.warning("run %s not found, stop tracking", rid)
                self._tracked.discard(rid)
                continue
            except MailboxDashError as e:
                self.last_error = e
                logger.warning("run %s status read failed: %s", rid, e)
                continue
            self.view.complete_read(seq, [run], partial=True)

    def _notify_terminal(self, before: dict[str, Optional[CrawlRun]]) -> None:
        if self._on_terminal is None:
            return
        for rid, old in before.items():
            run = self.view.get(rid)
            if run is not None and run.is_terminal and (old is None or not old.is_terminal):
                self._on_terminal(run)

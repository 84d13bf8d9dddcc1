"""Web UI 用の実行追跡（ポーラーをセッションに保持）。"""
from __future__ import annotations

import logging
from typing import Optional

from mailbox_dash.crawl.poller import RunPoller
from mailbox_dash.store import db, repo_ui_state
from mailbox_dash.util.log import log_run_summary

logger = logging.getLogger(__name__)

_POLLER_KEY = "run_poller"


def get_run_poller(backend, interval_sec: float) -> RunPoller:
    """セッションごとに1つのポーラーを作って使い回す。"""
    import streamlit as st

    poller = st.session_state.get(_POLLER_KEY)
    if poller is None:
        poller = RunPoller(
            backend.list_runs,
            read_run=backend.get_run,
            interval_sec=interval_sec,
            on_terminal=lambda run: log_run_summary(logger, run),
        )
        st.session_state[_POLLER_KEY] = poller
    return poller


def refresh_runs(poller: RunPoller, backend) -> None:
    """
    手動更新。ポーリング中の取得と競合しても、後から発行した取得が優先される。
    running があればポーリングを開始する。失敗は呼び出し側へ送出。
    """
    seq = poller.view.begin_read()
    runs = backend.list_runs()
    poller.view.complete_read(seq, runs)
    poller.start()


def teardown_run_poller() -> None:
    """画面を離れたときに予約中の tick と追跡対象を破棄する。"""
    import streamlit as st

    poller: Optional[RunPoller] = st.session_state.get(_POLLER_KEY)
    if poller is not None:
        poller.reset()
    # 次に開いたときは一覧を取り直す
    st.session_state.pop("runs_loaded", None)


def load_selected_run_id(db_path: Optional[str] = None) -> Optional[str]:
    """前回選択した run ID（参考情報。状態はバックエンドから読み直す）。"""
    conn = db.get_connection(db_path)
    db.init_schema(conn)
    try:
        return repo_ui_state.get_selected_run_id(conn)
    finally:
        conn.close()


def save_selected_run_id(run_id: Optional[str], db_path: Optional[str] = None) -> None:
    conn = db.get_connection(db_path)
    db.init_schema(conn)
    try:
        repo_ui_state.save_selected_run_id(conn, run_id)
    finally:
        conn.close()

"""
Web UI 用サービス集約エントリポイント。
バックエンドの生成（セッション間で共有）とデータ整形の API を提供。
"""
from __future__ import annotations

import streamlit as st

from mailbox_dash.backend import get_backend
from mailbox_dash.config import load_config
from mailbox_dash.params import DashboardParams
from mailbox_dash.web_ui.data_queries import (
    get_breakdown_dataframe,
    get_mailboxes_dataframe,
    get_runs_dataframe,
    get_stats_summary,
)
from mailbox_dash.web_ui.run_tracking import (
    get_run_poller,
    load_selected_run_id,
    refresh_runs,
    save_selected_run_id,
    teardown_run_poller,
)


def get_params() -> DashboardParams:
    return DashboardParams.from_config(load_config())


@st.cache_resource
def get_dashboard_backend():
    """再実行をまたいで同じバックエンドを使う（モックの状態を保持するため）。"""
    return get_backend(get_params())


__all__ = [
    "get_params",
    "get_dashboard_backend",
    "get_runs_dataframe",
    "get_mailboxes_dataframe",
    "get_breakdown_dataframe",
    "get_stats_summary",
    "get_run_poller",
    "refresh_runs",
    "teardown_run_poller",
    "load_selected_run_id",
    "save_selected_run_id",
]

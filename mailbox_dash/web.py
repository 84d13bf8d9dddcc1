"""
Streamlit Web UI エントリーポイント。
集計・メールボックス一覧・クロール実行の3ページ。
"""
from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

# プロジェクトルートをパスに追加
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

load_dotenv()

from mailbox_dash.util.log import setup_logging
from mailbox_dash.web_ui.pages import render_analytics, render_crawler, render_mailboxes
from mailbox_dash.web_ui.services import get_dashboard_backend, teardown_run_poller

setup_logging()

# ページ設定
st.set_page_config(
    page_title="Mailbox Directory Dashboard",
    page_icon="📮",
    layout="wide",
    initial_sidebar_state="expanded",
)

_PAGES = ["📊 集計", "📮 メールボックス", "🕷️ クロール実行"]

# サイドバー
with st.sidebar:
    st.markdown("**📮 Mailbox Directory**")
    st.markdown("---")
    page = st.radio("ページ", _PAGES)
    st.markdown("---")
    backend = get_dashboard_backend()
    st.caption(f"バックエンド: {backend.mode}")

# クロール実行ページ以外ではポーリングを止める
if page != "🕷️ クロール実行":
    teardown_run_poller()

# ページルーティング
if page == "📊 集計":
    render_analytics()
elif page == "📮 メールボックス":
    render_mailboxes()
elif page == "🕷️ クロール実行":
    render_crawler()

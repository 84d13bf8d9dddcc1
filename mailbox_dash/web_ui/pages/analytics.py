"""集計ページ。"""
from __future__ import annotations

import streamlit as st

from mailbox_dash.errors import MailboxDashError
from mailbox_dash.web_ui.services import (
    get_breakdown_dataframe,
    get_dashboard_backend,
    get_stats_summary,
)


def render_analytics() -> None:
    """集計ページを描画。キャッシュ済みの集計を表示し、「再集計」でのみ更新する。"""
    backend = get_dashboard_backend()

    col_title, col_btn = st.columns([3, 1])
    with col_title:
        st.title("📊 集計")
    with col_btn:
        refresh = st.button("🔄 再集計", help="ディレクトリ全体から集計し直します", use_container_width=True)

    try:
        stats = backend.refresh_stats() if refresh else backend.get_stats()
    except MailboxDashError as e:
        st.error(f"集計の取得に失敗しました: {e}")
        return

    updated = stats.last_updated.strftime("%Y-%m-%d %H:%M:%S UTC") if stats.last_updated else "不明"
    st.caption(f"最終更新: {updated}")

    summary = get_stats_summary(stats)
    for col, (label, value) in zip(st.columns(len(summary)), summary.items()):
        col.metric(label, value)

    st.markdown("---")
    col_state, col_source = st.columns(2)
    with col_state:
        st.markdown("### 州別")
        df = get_breakdown_dataframe(stats.by_state, "州")
        if df.empty:
            st.info("データがありません。")
        else:
            st.bar_chart(df.set_index("州"))
    with col_source:
        st.markdown("### ソース別")
        df = get_breakdown_dataframe(stats.by_source, "ソース")
        if df.empty:
            st.info("ソース情報のあるレコードがありません。")
        else:
            st.dataframe(df, use_container_width=True, hide_index=True)

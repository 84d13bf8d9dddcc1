"""メールボックス一覧ページ。"""
from __future__ import annotations

from dataclasses import replace

import streamlit as st

from mailbox_dash.api.models import MailboxFilter
from mailbox_dash.constants import KNOWN_SOURCES
from mailbox_dash.directory.mock_data import STATES
from mailbox_dash.errors import MailboxDashError
from mailbox_dash.web_ui.services import get_dashboard_backend, get_mailboxes_dataframe, get_params

_FILTER_KEY = "mailbox_filter"


def render_mailboxes() -> None:
    """メールボックス一覧を描画。"""
    st.title("📮 メールボックス")
    backend = get_dashboard_backend()

    flt: MailboxFilter = st.session_state.get(_FILTER_KEY) or MailboxFilter(page_size=get_params().page_size)
    new_flt = _render_filter_form(flt)
    if new_flt != flt:
        # 条件が変わったら1ページ目に戻す
        new_flt = new_flt.with_page(1)
    st.session_state[_FILTER_KEY] = new_flt
    flt = new_flt

    if flt.search_term is not None and flt.exact_fields():
        st.caption("ℹ️ 検索語を指定している間は、州・CMRA・RDI・ソースの絞り込みは適用されません。")

    try:
        page = backend.query(flt)
    except MailboxDashError as e:
        st.error(f"一覧の取得に失敗しました: {e}")
        return

    df = get_mailboxes_dataframe(page)
    if df.empty:
        st.info("条件に一致するメールボックスがありません。")
    else:
        st.dataframe(
            df,
            column_config={
                "月額": st.column_config.NumberColumn("月額", format="$%.2f"),
                "リンク": st.column_config.LinkColumn("リンク", display_text="🔗 開く"),
            },
            use_container_width=True,
            hide_index=True,
        )

    start = (flt.page - 1) * flt.page_size + 1 if page.items else 0
    end = start + len(page.items) - 1 if page.items else 0
    st.caption(f"{page.total} 件中 {start}〜{end} 件目を表示")

    col_prev, col_page, col_next, col_export = st.columns([1, 1, 1, 2])
    with col_prev:
        if st.button("◀ 前へ", disabled=flt.page <= 1, use_container_width=True):
            st.session_state[_FILTER_KEY] = flt.with_page(max(1, flt.page - 1))
            st.rerun()
    with col_page:
        st.markdown(f"**{flt.page} / {max(page.page_count, 1)}**")
    with col_next:
        if st.button("次へ ▶", disabled=flt.page * flt.page_size >= page.total, use_container_width=True):
            st.session_state[_FILTER_KEY] = flt.with_page(flt.page + 1)
            st.rerun()
    with col_export:
        _render_export(backend)


def _render_filter_form(flt: MailboxFilter) -> MailboxFilter:
    col_search, col_state, col_cmra, col_rdi, col_source = st.columns([2, 1, 1, 1, 1])
    with col_search:
        search = st.text_input("検索（名称・市・番地）", value=flt.search or "")
    with col_state:
        states = [""] + STATES
        state = st.selectbox("州", states, index=states.index(flt.state) if flt.state in states else 0)
    with col_cmra:
        cmras = ["", "Y", "N"]
        cmra = st.selectbox("CMRA", cmras, index=cmras.index(flt.cmra) if flt.cmra in cmras else 0)
    with col_rdi:
        rdis = ["", "Commercial", "Residential"]
        rdi = st.selectbox("RDI", rdis, index=rdis.index(flt.rdi) if flt.rdi in rdis else 0)
    with col_source:
        sources = [""] + list(KNOWN_SOURCES)
        source = st.selectbox("ソース", sources, index=sources.index(flt.source) if flt.source in sources else 0)
    return replace(
        flt,
        search=search or None,
        state=state or None,
        cmra=cmra or None,
        rdi=rdi or None,
        source=source or None,
    )


def _render_export(backend) -> None:
    url = backend.export_url()
    if url:
        st.link_button("⬇️ CSV エクスポート", url, use_container_width=True)
        return
    csv_text = backend.export_csv()
    if csv_text is not None:
        st.download_button(
            "⬇️ CSV エクスポート",
            data=csv_text.encode("utf-8-sig"),
            file_name="mailboxes.csv",
            mime="text/csv",
            use_container_width=True,
        )

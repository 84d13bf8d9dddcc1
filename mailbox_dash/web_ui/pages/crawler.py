"""クロール実行ページ。"""
from __future__ import annotations

import time

import streamlit as st

from mailbox_dash.api.models import CrawlRun, RunStatus
from mailbox_dash.errors import Conflict, InvalidArgument, MailboxDashError, NotFound
from mailbox_dash.web_ui.presentation import status_badge, status_markdown
from mailbox_dash.web_ui.services import (
    get_dashboard_backend,
    get_params,
    get_run_poller,
    get_runs_dataframe,
    load_selected_run_id,
    refresh_runs,
    save_selected_run_id,
)


def render_crawler() -> None:
    """クロール実行ページを描画。実行中の run がある間だけ自動更新する。"""
    params = get_params()
    backend = get_dashboard_backend()
    poller = get_run_poller(backend, params.poll_interval_sec)

    st.title("🕷️ クロール実行")
    st.markdown("バックグラウンドのクロール・住所検証ジョブを管理します。")

    if "runs_loaded" not in st.session_state:
        # 前回選択していた run も追跡候補に入れる（状態はバックエンドから読み直す）
        selected = load_selected_run_id()
        if selected:
            backend.remember_run(selected)
        _refresh(poller, backend)
        st.session_state.runs_loaded = True
    else:
        poller.tick_if_due()

    if poller.last_error is not None:
        st.warning(f"状態の取得に失敗しました。次回の更新で再試行します: {poller.last_error}")

    _render_trigger_form(poller, backend, params.seed_links)

    runs = poller.view.runs
    running = [r for r in runs if r.status is RunStatus.RUNNING]
    for run in running:
        _render_running_banner(run, backend)

    st.markdown("---")
    col_title, col_btn = st.columns([3, 1])
    with col_title:
        st.markdown("### 実行履歴")
    with col_btn:
        if st.button("🔄 更新", use_container_width=True):
            _refresh(poller, backend)
            st.rerun()

    if not runs:
        st.info("まだ実行履歴がありません。")
    else:
        st.dataframe(get_runs_dataframe(runs), use_container_width=True, hide_index=True)
        _render_run_detail(runs)

    if poller.view.updated_at:
        st.caption(f"最終取得: {poller.view.updated_at.strftime('%H:%M:%S')} UTC")

    remaining = poller.seconds_until_next_tick()
    if remaining is not None:
        time.sleep(remaining)
        st.rerun()


def _refresh(poller, backend) -> None:
    try:
        refresh_runs(poller, backend)
    except MailboxDashError as e:
        st.error(f"実行履歴の取得に失敗しました: {e}")


def _render_trigger_form(poller, backend, seed_links: tuple[str, ...]) -> None:
    with st.expander("🚀 新しいクロールを開始", expanded=False):
        links_text = st.text_area(
            "対象リンク（1行に1件）",
            value="\n".join(seed_links),
            height=100,
        )
        if st.button("▶️ 実行開始", type="primary"):
            links = [line for line in links_text.splitlines() if line.strip()]
            try:
                run_id = backend.trigger_run(links)
            except InvalidArgument:
                st.error("リンクを1件以上入力してください。")
                return
            except MailboxDashError as e:
                st.error(f"実行を開始できませんでした: {e}")
                return
            save_selected_run_id(run_id)
            poller.track(run_id)
            _refresh(poller, backend)
            st.success(f"実行 {run_id} を開始しました。完了まで自動で更新します。")
            st.rerun()


def _render_running_banner(run: CrawlRun, backend) -> None:
    s = run.stats
    col1, col2 = st.columns([3, 1])
    with col1:
        st.info(f"{status_markdown(run.status)} **{run.run_id}**: 発見 {s.found} 件 / 処理済み {s.processed} 件")
        if s.found > 0:
            # 実行中はカウンタがずれることがあるので 1.0 で頭打ち
            st.progress(min(1.0, s.processed / s.found))
    with col2:
        if st.button("⏹️ 中止", key=f"cancel_{run.run_id}", use_container_width=True):
            try:
                backend.cancel_run(run.run_id)
                st.info("中止リクエストを送信しました。反映まで数秒かかる場合があります。")
            except Conflict:
                st.warning("この実行はすでに終了しています。")
            except NotFound:
                st.warning("この実行は見つかりませんでした。")
            except MailboxDashError as e:
                st.error(f"中止できませんでした: {e}")


def _render_run_detail(runs: list[CrawlRun]) -> None:
    ids = [r.run_id for r in runs]
    saved = st.session_state.get("selected_run_id") or load_selected_run_id()
    index = ids.index(saved) if saved in ids else 0
    selected = st.selectbox("詳細を表示する実行", ids, index=index)
    if selected != saved:
        st.session_state.selected_run_id = selected
        save_selected_run_id(selected)

    run = next(r for r in runs if r.run_id == selected)
    badge = status_badge(run.status)
    getattr(st, badge.level)(f"{badge.icon} {badge.label}: {run.run_id}")
    s = run.stats
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("発見", s.found)
    c2.metric("検証済", s.validated)
    c3.metric("スキップ", s.skipped)
    c4.metric("失敗", s.failed)
    if run.errors_sample:
        with st.expander(f"エラー例（{len(run.errors_sample)} 件）", expanded=run.status is RunStatus.FAILED):
            for e in run.errors_sample:
                st.code(f"[{e.reason}] {e.link}", language=None)

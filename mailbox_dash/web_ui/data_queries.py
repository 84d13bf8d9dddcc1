"""Web UI 用データ整形（実行履歴・メールボックス一覧・集計内訳）。"""
from __future__ import annotations

from typing import Iterable

import pandas as pd

from mailbox_dash.api.models import CrawlRun, MailboxPage, Stats
from mailbox_dash.web_ui.presentation import status_badge


def get_runs_dataframe(runs: Iterable[CrawlRun]) -> pd.DataFrame:
    """実行履歴を DataFrame に。渡された順（新しい順）のまま。"""
    data = []
    for r in runs:
        badge = status_badge(r.status)
        data.append(
            {
                "実行ID": r.run_id,
                "状態": f"{badge.icon} {badge.label}",
                "開始時刻": r.started_at.strftime("%Y-%m-%d %H:%M:%S"),
                "終了時刻": r.finished_at.strftime("%Y-%m-%d %H:%M:%S") if r.finished_at else "実行中",
                "発見": r.stats.found,
                "検証済": r.stats.validated,
                "スキップ": r.stats.skipped,
                "失敗": r.stats.failed,
                "エラー例": len(r.errors_sample),
                "ソース": r.source or "",
            }
        )
    return pd.DataFrame(data)


def get_mailboxes_dataframe(page: MailboxPage) -> pd.DataFrame:
    if not page.items:
        return pd.DataFrame()
    data = [
        {
            "名称": m.name,
            "住所": ", ".join(p for p in (m.street, m.city, m.state, m.zip) if p),
            "月額": m.price,
            "CMRA": m.cmra,
            "RDI": m.rdi,
            "正規化住所": (
                f"{m.standardized_address.delivery_line1}, {m.standardized_address.last_line}"
                if m.standardized_address
                else ""
            ),
            "ソース": m.source or "",
            "リンク": m.link,
        }
        for m in page.items
    ]
    return pd.DataFrame(data)


def get_breakdown_dataframe(counts: dict[str, int], label: str) -> pd.DataFrame:
    """{キー: 件数} を件数の多い順の DataFrame に。"""
    if not counts:
        return pd.DataFrame(columns=[label, "件数"])
    df = pd.DataFrame(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])), columns=[label, "件数"])
    return df


def get_stats_summary(stats: Stats) -> dict[str, str]:
    return {
        "総メールボックス数": f"{stats.total_mailboxes:,}",
        "Commercial": f"{stats.commercial_count:,}",
        "Residential": f"{stats.residential_count:,}",
        "平均月額": f"${stats.avg_price:.2f}",
    }

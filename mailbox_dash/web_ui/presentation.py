"""実行ステータスごとの表示（ラベル・アイコン・色）。全ステータスを必ず網羅する。"""
from __future__ import annotations

from dataclasses import dataclass

from mailbox_dash.api.models import RunStatus


@dataclass(frozen=True)
class StatusBadge:
    label: str
    icon: str
    color: str  # st.badge / markdown の色名
    level: str  # info / success / warning / error（バナー用）


STATUS_BADGES: dict[RunStatus, StatusBadge] = {
    RunStatus.RUNNING: StatusBadge("実行中", "⏳", "blue", "info"),
    RunStatus.SUCCESS: StatusBadge("成功", "✅", "green", "success"),
    RunStatus.FAILED: StatusBadge("失敗", "❌", "red", "error"),
    RunStatus.PARTIAL_HALT: StatusBadge("途中停止", "⚠️", "orange", "warning"),
    RunStatus.TIMEOUT: StatusBadge("タイムアウト", "⌛", "orange", "warning"),
    RunStatus.CANCELLED: StatusBadge("中止", "⏹️", "gray", "warning"),
}

# ステータスを追加したのに表示を定義し忘れた場合は import 時に落とす
_missing = set(RunStatus) - set(STATUS_BADGES)
if _missing:
    raise RuntimeError(f"STATUS_BADGES に未定義のステータス: {sorted(s.value for s in _missing)}")


def status_badge(status: RunStatus) -> StatusBadge:
    return STATUS_BADGES[status]


def status_markdown(status: RunStatus) -> str:
    """:blue[⏳ 実行中] のような色付き markdown。"""
    b = STATUS_BADGES[status]
    return f":{b.color}[{b.icon} {b.label}]"

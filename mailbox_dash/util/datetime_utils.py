"""日時ユーティリティ。"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def run_id(now: Optional[datetime] = None) -> str:
    """クロール実行ID（UTC タイムスタンプ）。"""
    now = now or utc_now()
    return now.strftime("RUN_%Y%m%d%H%M%S")


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """UTC の ISO 形式文字列（末尾 Z）。None はそのまま。"""
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now_iso() -> str:
    return to_iso(utc_now()) or ""


def parse_iso(value: Any) -> Optional[datetime]:
    """
    API の日時文字列を aware datetime に変換。
    空文字・Go のゼロ値（0001-01-01）は None を返す。
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # Go はナノ秒まで出すので fromisoformat が読めるマイクロ秒に切り詰める
        if "." in text:
            head, _, rest = text.partition(".")
            frac = ""
            tz = ""
            for i, ch in enumerate(rest):
                if not ch.isdigit():
                    tz = rest[i:]
                    break
                frac += ch
            text = f"{head}.{frac[:6].ljust(6, '0')}{tz}"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    if dt.year <= 1:
        return None
    return dt

"""
ui_state テーブルの読み書き。
選択中の run ID をページ再読み込み後も復元するためだけに使う。
正しい状態は常にバックエンドから読み直すこと。
"""
from __future__ import annotations

import sqlite3
from typing import Optional

from mailbox_dash.util.datetime_utils import utc_now_iso

SELECTED_RUN_KEY = "selected_run_id"


def get_value(conn: sqlite3.Connection, key: str) -> Optional[str]:
    row = conn.execute("SELECT value FROM ui_state WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else None


def set_value(conn: sqlite3.Connection, key: str, value: Optional[str]) -> None:
    if value is None:
        conn.execute("DELETE FROM ui_state WHERE key = ?", (key,))
    else:
        conn.execute(
            "INSERT INTO ui_state (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (key, value, utc_now_iso()),
        )
    conn.commit()


def get_selected_run_id(conn: sqlite3.Connection) -> Optional[str]:
    return get_value(conn, SELECTED_RUN_KEY)


def save_selected_run_id(conn: sqlite3.Connection, run_id: Optional[str]) -> None:
    set_value(conn, SELECTED_RUN_KEY, run_id)

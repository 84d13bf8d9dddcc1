"""SQLite テーブル作成と接続。"""
import os
import sqlite3
from pathlib import Path
from typing import Optional


# デフォルトはプロジェクトルートの data/state.db
def _default_db_path() -> str:
    base = Path(__file__).resolve().parent.parent.parent
    return str(base / "data" / "state.db")


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or os.getenv("STATE_DB_PATH") or _default_db_path()
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS ui_state (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT NOT NULL
        );
    """)
    conn.commit()

"""アプリ全体で使う定数。"""
from __future__ import annotations

DEFAULT_API_BASE_URL = "http://localhost:8080"

# 実行中ジョブの再取得間隔（秒）
DEFAULT_POLL_INTERVAL_SEC = 5.0
MIN_POLL_INTERVAL_SEC = 1.0

# errorsSample は代表例のみ保持する
ERRORS_SAMPLE_MAX = 10

# これより長く running のままの実行は timeout とみなす（分）
DEFAULT_STALE_RUN_MINUTES = 45

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 500

DEFAULT_MOCK_MAILBOX_COUNT = 120
DEFAULT_MOCK_SEED = 42

UNKNOWN = "Unknown"
CMRA_VALUES = ("Y", "N", UNKNOWN)
RDI_COMMERCIAL = "Commercial"
RDI_RESIDENTIAL = "Residential"
RDI_VALUES = (RDI_RESIDENTIAL, RDI_COMMERCIAL, UNKNOWN)
KNOWN_SOURCES = ("ATMB", "iPost1")

"""ダッシュボード実行パラメータ。"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mailbox_dash.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_MOCK_MAILBOX_COUNT,
    DEFAULT_MOCK_SEED,
    DEFAULT_PAGE_SIZE,
    DEFAULT_POLL_INTERVAL_SEC,
    DEFAULT_STALE_RUN_MINUTES,
    MAX_PAGE_SIZE,
    MIN_POLL_INTERVAL_SEC,
)

logger = logging.getLogger(__name__)

BACKEND_MODES = ("mock", "live")


@dataclass(frozen=True)
class DashboardParams:
    """設定から組み立てた実行時パラメータ。"""

    backend_mode: str  # "mock" | "live"
    api_base_url: str
    poll_interval_sec: float
    stale_run_minutes: int
    page_size: int
    mock_mailbox_count: int
    mock_seed: int
    mock_listings_per_link: int
    seed_links: tuple[str, ...]

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> DashboardParams:
        backend_cfg = config.get("backend", {})
        api_cfg = config.get("api", {})
        poll_cfg = config.get("poll", {})
        dir_cfg = config.get("directory", {})
        mock_cfg = config.get("mock", {})
        crawl_cfg = config.get("crawl", {})

        mode = str(backend_cfg.get("mode", "mock")).strip().lower()
        if mode not in BACKEND_MODES:
            logger.warning("backend.mode=%s は不明です。mock を使います。", mode)
            mode = "mock"

        interval = float(poll_cfg.get("interval_sec", DEFAULT_POLL_INTERVAL_SEC))
        if interval < MIN_POLL_INTERVAL_SEC:
            logger.warning(
                "poll.interval_sec=%.2f は短すぎます。%.1f 秒に補正しました。",
                interval,
                MIN_POLL_INTERVAL_SEC,
            )
            interval = MIN_POLL_INTERVAL_SEC

        page_size = int(dir_cfg.get("page_size", DEFAULT_PAGE_SIZE))
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            logger.warning("directory.page_size=%d は範囲外です。%d に補正しました。", page_size, DEFAULT_PAGE_SIZE)
            page_size = DEFAULT_PAGE_SIZE

        return cls(
            backend_mode=mode,
            api_base_url=str(api_cfg.get("base_url") or DEFAULT_API_BASE_URL),
            poll_interval_sec=interval,
            stale_run_minutes=int(poll_cfg.get("stale_run_minutes", DEFAULT_STALE_RUN_MINUTES)),
            page_size=page_size,
            mock_mailbox_count=max(0, int(mock_cfg.get("mailbox_count", DEFAULT_MOCK_MAILBOX_COUNT))),
            mock_seed=int(mock_cfg.get("seed", DEFAULT_MOCK_SEED)),
            mock_listings_per_link=int(mock_cfg.get("listings_per_link", 20)),
            seed_links=tuple(crawl_cfg.get("seed_links") or ()),
        )

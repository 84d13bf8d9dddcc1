"""設定の読み込み・保存。main / web で共有。"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from mailbox_dash.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_MOCK_MAILBOX_COUNT,
    DEFAULT_MOCK_SEED,
    DEFAULT_PAGE_SIZE,
    DEFAULT_POLL_INTERVAL_SEC,
    DEFAULT_STALE_RUN_MINUTES,
)

load_dotenv()

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent.parent


def default_config() -> dict[str, Any]:
    """デフォルト設定を返す。"""
    return {
        "backend": {"mode": "mock"},  # mock / live
        "api": {"base_url": DEFAULT_API_BASE_URL},
        "poll": {
            "interval_sec": DEFAULT_POLL_INTERVAL_SEC,
            "stale_run_minutes": DEFAULT_STALE_RUN_MINUTES,
        },
        "directory": {"page_size": DEFAULT_PAGE_SIZE},
        "mock": {
            "mailbox_count": DEFAULT_MOCK_MAILBOX_COUNT,
            "seed": DEFAULT_MOCK_SEED,
            "listings_per_link": 20,
        },
        "crawl": {"seed_links": ["https://www.anytimemailbox.com/l/usa"]},
    }


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    config.yaml を読み込む。存在しなければデフォルトを返す。
    読み込みエラー時は警告を出してデフォルトを返す。
    環境変数 BACKEND_MODE / API_BASE_URL が設定ファイルより優先。
    """
    path = config_path or os.getenv("CONFIG_PATH") or str(ROOT / "config.yaml")
    config = default_config()
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("config.yaml の読み込みに失敗したためデフォルトを使います: %s", e)
            loaded = {}
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
    if os.getenv("BACKEND_MODE"):
        config["backend"]["mode"] = os.environ["BACKEND_MODE"].strip().lower()
    if os.getenv("API_BASE_URL"):
        config["api"]["base_url"] = os.environ["API_BASE_URL"].strip()
    return config


def save_config(config: dict[str, Any], config_path: Optional[str] = None) -> None:
    """config.yaml に保存する。"""
    path = config_path or str(ROOT / "config.yaml")
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, allow_unicode=True, default_flow_style=False)

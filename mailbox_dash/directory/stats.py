"""ディレクトリ全体の集計（件数・平均価格・内訳）。"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from datetime import datetime
from typing import Callable, Iterable, Optional

from mailbox_dash.api.models import MailboxRecord, Stats
from mailbox_dash.constants import RDI_COMMERCIAL, RDI_RESIDENTIAL, UNKNOWN
from mailbox_dash.util.datetime_utils import utc_now

logger = logging.getLogger(__name__)


def compute_stats(records: Iterable[MailboxRecord], now: Optional[datetime] = None) -> Stats:
    """
    全件を走査して Stats を作る（ページング前の全体が対象）。
    空のディレクトリの平均価格は 0.0。
    state の無いレコードは by_state の "Unknown" に数える。
    source の無いレコードは by_source に数えない。
    """
    total = 0
    commercial = 0
    residential = 0
    price_sum = 0.0
    by_state: Counter[str] = Counter()
    by_source: Counter[str] = Counter()
    for r in records:
        total += 1
        price_sum += r.price
        if r.rdi == RDI_COMMERCIAL:
            commercial += 1
        elif r.rdi == RDI_RESIDENTIAL:
            residential += 1
        by_state[r.state or UNKNOWN] += 1
        if r.source:
            by_source[r.source] += 1
    return Stats(
        total_mailboxes=total,
        commercial_count=commercial,
        residential_count=residential,
        avg_price=price_sum / total if total else 0.0,
        by_state=dict(by_state),
        by_source=dict(by_source),
        last_updated=now or utc_now(),
    )


class StatsAggregator:
    """
    Stats のキャッシュ。明示的に refresh() するまで同じスナップショットを返す。
    バックグラウンドでの無効化はしない。
    """

    def __init__(
        self,
        source: Callable[[], Stats],
        refresher: Optional[Callable[[], Stats]] = None,
    ) -> None:
        self._source = source
        self._refresher = refresher or source
        self._cached: Optional[Stats] = None
        self._lock = threading.Lock()

    @property
    def cached(self) -> Optional[Stats]:
        return self._cached

    def get_stats(self) -> Stats:
        """キャッシュを返す。未取得なら一度だけ取得する。"""
        if self._cached is None:
            stats = self._source()
            with self._lock:
                if self._cached is None:
                    self._cached = stats
        return self._cached

    def refresh(self) -> Stats:
        """再計算して差し替える。失敗時は例外を送出し、キャッシュは変えない。"""
        stats = self._refresher()
        with self._lock:
            self._cached = stats
        logger.info(
            "stats refreshed: total=%d commercial=%d residential=%d avg_price=%.2f",
            stats.total_mailboxes,
            stats.commercial_count,
            stats.residential_count,
            stats.avg_price,
        )
        return stats

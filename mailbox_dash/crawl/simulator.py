"""モックモードで外部クローラーの進捗を模擬する。"""
from __future__ import annotations

import logging
import random
from typing import Optional

from mailbox_dash.api.models import ErrorSample, RunStats, RunStatus
from mailbox_dash.crawl.registry import InMemoryRunRegistry

logger = logging.getLogger(__name__)

_FAILURE_REASONS = (
    "Smarty API 402 Payment Required",
    "fetch timeout",
    "address not parsed",
)


class CrawlSimulator:
    """
    1回の step() で実行中の各 run を1段階進める。
    1リンクあたり listings_per_link 件を見つけ、batch_size 件ずつ処理する。
    """

    def __init__(
        self,
        registry: InMemoryRunRegistry,
        listings_per_link: int = 20,
        batch_size: int = 15,
        failure_rate: float = 0.05,
        skip_rate: float = 0.1,
        seed: Optional[int] = None,
    ) -> None:
        self._registry = registry
        self._listings_per_link = max(1, listings_per_link)
        self._batch_size = max(1, batch_size)
        self._failure_rate = failure_rate
        self._skip_rate = skip_rate
        self._rng = random.Random(seed)

    def step(self) -> None:
        for run in self._registry.list_runs():
            if run.status is RunStatus.RUNNING:
                self.advance(run.run_id)

    def advance(self, run_id: str) -> None:
        run = self._registry.get_run(run_id)
        if run.is_terminal:
            return
        if self._registry.cancel_requested(run_id):
            self._registry.apply_update(run_id, status=RunStatus.CANCELLED)
            return

        links = self._registry.links_for(run_id) or ("",)
        target = len(links) * self._listings_per_link
        s = run.stats
        found = target
        validated, skipped, failed = s.validated, s.skipped, s.failed
        errors: list[ErrorSample] = []
        todo = min(self._batch_size, found - s.processed)
        for _ in range(max(todo, 0)):
            roll = self._rng.random()
            if roll < self._failure_rate:
                failed += 1
                errors.append(ErrorSample(link=self._rng.choice(links), reason=self._rng.choice(_FAILURE_REASONS)))
            elif roll < self._failure_rate + self._skip_rate:
                skipped += 1
            else:
                validated += 1
        stats = RunStats(found=found, validated=validated, skipped=skipped, failed=failed)

        status: Optional[RunStatus] = None
        if stats.processed >= found:
            # 1件も処理できなければ failed
            if validated == 0 and skipped == 0 and failed >= found:
                status = RunStatus.FAILED
            else:
                status = RunStatus.SUCCESS
        self._registry.apply_update(run_id, status=status, stats=stats, errors=errors)
        logger.debug("run %s progress %d/%d", run_id, stats.processed, found)

"""
バックエンドの切り替え。

MockBackend（インメモリ）と ApiBackend（HTTP API）は同じ操作を持つ:
query / get_stats / refresh_stats / list_runs / get_run / trigger_run / cancel_run /
export_url / export_csv
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional, Sequence

import pandas as pd

from mailbox_dash.api.client import DashboardApiClient
from mailbox_dash.api.models import CrawlRun, MailboxFilter, MailboxPage, Stats
from mailbox_dash.crawl.registry import InMemoryRunRegistry
from mailbox_dash.crawl.simulator import CrawlSimulator
from mailbox_dash.directory.mock_data import generate_crawl_runs, generate_mailboxes
from mailbox_dash.directory.query import MailboxDirectory
from mailbox_dash.directory.stats import StatsAggregator, compute_stats
from mailbox_dash.params import DashboardParams

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["name", "street", "city", "state", "zip", "price", "link", "cmra", "rdi"]


class MockBackend:
    """
    生成データで動くバックエンド。
    simulator があれば、実行状態を読むたびに実行中の run を1段階進める
    （外部クローラーが読み取りの合間に進んだことにする）。
    """

    mode = "mock"

    def __init__(
        self,
        directory: MailboxDirectory,
        registry: InMemoryRunRegistry,
        simulator: Optional[CrawlSimulator] = None,
    ) -> None:
        self.directory = directory
        self.registry = registry
        self.simulator = simulator
        self.stats = StatsAggregator(lambda: compute_stats(self.directory.records))

    @classmethod
    def from_params(cls, params: DashboardParams) -> MockBackend:
        directory = MailboxDirectory(generate_mailboxes(params.mock_mailbox_count, seed=params.mock_seed))
        registry = InMemoryRunRegistry(
            generate_crawl_runs(),
            stale_after=timedelta(minutes=params.stale_run_minutes),
        )
        simulator = CrawlSimulator(
            registry,
            listings_per_link=params.mock_listings_per_link,
            seed=params.mock_seed,
        )
        return cls(directory, registry, simulator)

    def query(self, flt: MailboxFilter) -> MailboxPage:
        return self.directory.query(flt)

    def get_stats(self) -> Stats:
        return self.stats.get_stats()

    def refresh_stats(self) -> Stats:
        return self.stats.refresh()

    def list_runs(self) -> list[CrawlRun]:
        if self.simulator is not None:
            self.simulator.step()
        return self.registry.list_runs()

    def get_run(self, run_id: str) -> CrawlRun:
        if self.simulator is not None:
            run = self.registry.get_run(run_id)
            if not run.is_terminal:
                self.simulator.advance(run_id)
        return self.registry.get_run(run_id)

    def trigger_run(self, links: Sequence[str]) -> str:
        return self.registry.trigger_run(links)

    def cancel_run(self, run_id: str) -> None:
        self.registry.cancel_run(run_id)

    def remember_run(self, run_id: str) -> None:
        pass

    def export_url(self) -> Optional[str]:
        return None

    def export_csv(self) -> str:
        rows = [r.to_row() for r in self.directory.records]
        df = pd.DataFrame(rows, columns=list(rows[0].keys()) if rows else EXPORT_COLUMNS)
        return df[EXPORT_COLUMNS].to_csv(index=False, float_format="%.2f")


class ApiBackend:
    """HTTP API を使うバックエンド。Stats はサーバーの集計をキャッシュする。"""

    mode = "live"

    def __init__(self, client: DashboardApiClient) -> None:
        self.client = client
        self.stats = StatsAggregator(client.get_stats, client.refresh_stats)

    @classmethod
    def from_params(cls, params: DashboardParams) -> ApiBackend:
        return cls(DashboardApiClient(params.api_base_url))

    def query(self, flt: MailboxFilter) -> MailboxPage:
        return self.client.get_mailboxes(flt)

    def get_stats(self) -> Stats:
        return self.stats.get_stats()

    def refresh_stats(self) -> Stats:
        return self.stats.refresh()

    def list_runs(self) -> list[CrawlRun]:
        return self.client.list_runs()

    def get_run(self, run_id: str) -> CrawlRun:
        return self.client.get_run(run_id)

    def trigger_run(self, links: Sequence[str]) -> str:
        return self.client.trigger_crawl(links)

    def cancel_run(self, run_id: str) -> None:
        self.client.cancel_run(run_id)

    def remember_run(self, run_id: str) -> None:
        self.client.remember_run(run_id)

    def export_url(self) -> Optional[str]:
        return self.client.export_url()

    def export_csv(self) -> Optional[str]:
        return None


def get_backend(params: DashboardParams):
    """設定に応じたバックエンドを作る。"""
    if params.backend_mode == "live":
        logger.info("backend: live (%s)", params.api_base_url)
        return ApiBackend.from_params(params)
    logger.info("backend: mock (%d mailboxes)", params.mock_mailbox_count)
    return MockBackend.from_params(params)

"""モックモード用のサンプルデータ生成。seed 固定で再現可能。"""
from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Optional

from mailbox_dash.api.models import (
    CrawlRun,
    ErrorSample,
    MailboxRecord,
    RunStats,
    RunStatus,
    StandardizedAddress,
)
from mailbox_dash.constants import KNOWN_SOURCES, RDI_COMMERCIAL, RDI_RESIDENTIAL
from mailbox_dash.util.datetime_utils import utc_now

STATES = ["CA", "NY", "TX", "FL", "WA", "NV", "DE"]
CITIES: dict[str, list[str]] = {
    "CA": ["San Francisco", "Los Angeles", "San Diego", "Sacramento"],
    "NY": ["New York", "Brooklyn", "Albany", "Buffalo"],
    "TX": ["Austin", "Houston", "Dallas", "San Antonio"],
    "FL": ["Miami", "Orlando", "Tampa", "Jacksonville"],
    "WA": ["Seattle", "Bellevue", "Tacoma", "Spokane"],
    "NV": ["Las Vegas", "Reno", "Henderson", "Carson City"],
    "DE": ["Wilmington", "Dover", "Newark", "Middletown"],
}
MOCK_RUN_ID = "RUN_20250101000001"


def generate_mailboxes(count: int, seed: int = 42, run_id: str = MOCK_RUN_ID) -> list[MailboxRecord]:
    rng = random.Random(seed)
    now = utc_now()
    result: list[MailboxRecord] = []
    for i in range(count):
        state = rng.choice(STATES)
        city = rng.choice(CITIES[state])
        is_commercial = rng.random() > 0.3
        number = rng.randint(100, 9099)
        zip_code = str(rng.randint(10000, 99998))
        source = rng.choice(KNOWN_SOURCES)
        slug = city.lower().replace(" ", "-")
        host = "anytimemailbox.com" if source == "ATMB" else "ipostal1.com"
        result.append(
            MailboxRecord(
                mailbox_id=f"mb_{i + 1000}",
                name=f"{city} Mail Center #{i + 1}",
                street=f"{number} Main St",
                city=city,
                state=state,
                zip=zip_code,
                price=round(rng.random() * 50 + 9.99, 2),
                link=f"https://{host}/l/{slug}/{i + 1}",
                cmra="Y" if is_commercial else "N",
                rdi=RDI_COMMERCIAL if is_commercial else RDI_RESIDENTIAL,
                standardized_address=StandardizedAddress(
                    delivery_line1=f"{number} MAIN ST",
                    last_line=f"{city.upper()} {state} {zip_code}",
                ),
                last_validated_at=now - timedelta(seconds=rng.randint(0, 1_000_000)),
                crawl_run_id=run_id,
                source=source,
            )
        )
    return result


def generate_crawl_runs(now: Optional[datetime] = None) -> list[CrawlRun]:
    """終了済みの実行履歴（実行中のものは含めない）。"""
    now = now or utc_now()
    return [
        CrawlRun(
            run_id="RUN_20250520000002",
            started_at=now - timedelta(days=1),
            finished_at=now - timedelta(hours=23),
            status=RunStatus.SUCCESS,
            stats=RunStats(found=2300, validated=2285, skipped=0, failed=15),
            source="ATMB",
        ),
        CrawlRun(
            run_id="RUN_20250519000001",
            started_at=now - timedelta(days=2),
            finished_at=now - timedelta(days=2) + timedelta(minutes=13),
            status=RunStatus.FAILED,
            stats=RunStats(found=500, validated=100, skipped=0, failed=400),
            errors_sample=(
                ErrorSample(link="https://anytimemailbox.com/l/usa", reason="Smarty API 402 Payment Required"),
            ),
            source="ATMB",
        ),
    ]

"""ダッシュボード API のレスポンス・クエリ用モデル（dataclass）。"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from mailbox_dash.constants import (
    CMRA_VALUES,
    DEFAULT_PAGE_SIZE,
    ERRORS_SAMPLE_MAX,
    RDI_VALUES,
    UNKNOWN,
)
from mailbox_dash.errors import InvalidArgument
from mailbox_dash.util.datetime_utils import parse_iso, to_iso
from mailbox_dash.util.hashing import mailbox_id as derive_mailbox_id


class RunStatus(str, Enum):
    """クロール実行の状態。running 以外はすべて終端。"""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL_HALT = "partial_halt"  # 途中停止だが部分結果は利用可能
    TIMEOUT = "timeout"  # 外部の時間制限超過で放棄
    CANCELLED = "cancelled"  # オペレーターによる中止

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING

    @classmethod
    def parse(cls, value: Any) -> RunStatus:
        """API の文字列を RunStatus に変換。未知の値は ValueError。"""
        return cls(str(value or "").strip().lower())


TERMINAL_STATUSES = frozenset(s for s in RunStatus if s.is_terminal)


def _choice(value: Any, allowed: tuple[str, ...]) -> str:
    """許可値に大文字小文字を無視して合わせる。空や未知の値は Unknown。"""
    text = str(value or "").strip().lower()
    for v in allowed:
        if v.lower() == text:
            return v
    return UNKNOWN


def _count(d: dict[str, Any], key: str) -> int:
    """API のカウンタ値。負の値は壊れたレスポンスとして ValueError。"""
    n = int(d.get(key, 0) or 0)
    if n < 0:
        raise ValueError(f"{key} must be >= 0 (got {n})")
    return n


def _opt_str(value: Any) -> Optional[str]:
    text = str(value).strip() if value is not None else ""
    return text or None


@dataclass(frozen=True)
class StandardizedAddress:
    """住所検証後の正規化住所。"""

    delivery_line1: str
    last_line: str

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> Optional[StandardizedAddress]:
        if not d:
            return None
        line1 = (d.get("deliveryLine1") or "").strip()
        last = (d.get("lastLine") or "").strip()
        if not line1 and not last:
            return None
        return cls(delivery_line1=line1, last_line=last)


@dataclass(frozen=True)
class MailboxRecord:
    mailbox_id: str
    name: str
    link: str
    price: float = 0.0
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    cmra: str = UNKNOWN  # Y / N / Unknown
    rdi: str = UNKNOWN  # Residential / Commercial / Unknown
    standardized_address: Optional[StandardizedAddress] = None
    last_validated_at: Optional[datetime] = None
    crawl_run_id: Optional[str] = None
    source: Optional[str] = None  # ATMB / iPost1 など上流の識別子

    def __post_init__(self) -> None:
        if not math.isfinite(self.price) or self.price < 0:
            raise InvalidArgument(f"price must be a finite number >= 0 (mailbox {self.mailbox_id}: {self.price})")

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> MailboxRecord:
        # 住所は addressRaw のネスト形式とフラット形式の両方を受け付ける
        addr = d.get("addressRaw") or {}
        street = _opt_str(addr.get("street", d.get("street")))
        city = _opt_str(addr.get("city", d.get("city")))
        state = _opt_str(addr.get("state", d.get("state")))
        zip_code = _opt_str(addr.get("zip", d.get("zip")))
        name = (d.get("name") or "").strip()
        link = (d.get("link") or "").strip()
        mid = _opt_str(d.get("id")) or derive_mailbox_id(link, name, street, city, state, zip_code)
        try:
            price = float(d.get("price") or 0)
            if not math.isfinite(price):
                price = 0.0
        except (TypeError, ValueError):
            price = 0.0
        return cls(
            mailbox_id=mid,
            name=name,
            link=link,
            price=max(price, 0.0),
            street=street,
            city=city,
            state=state,
            zip=zip_code,
            cmra=_choice(d.get("cmra"), CMRA_VALUES),
            rdi=_choice(d.get("rdi"), RDI_VALUES),
            standardized_address=StandardizedAddress.from_api(d.get("standardizedAddress")),
            last_validated_at=parse_iso(d.get("lastValidatedAt")),
            crawl_run_id=_opt_str(d.get("crawlRunId")),
            source=_opt_str(d.get("source")),
        )

    def to_row(self) -> dict[str, Any]:
        """表示・CSV 用の1行。"""
        std = self.standardized_address
        return {
            "id": self.mailbox_id,
            "name": self.name,
            "street": self.street or "",
            "city": self.city or "",
            "state": self.state or "",
            "zip": self.zip or "",
            "price": round(self.price, 2),
            "link": self.link,
            "cmra": self.cmra,
            "rdi": self.rdi,
            "standardized": f"{std.delivery_line1}, {std.last_line}" if std else "",
            "source": self.source or "",
            "last_validated_at": to_iso(self.last_validated_at) or "",
            "crawl_run_id": self.crawl_run_id or "",
        }


@dataclass(frozen=True)
class RunStats:
    found: int = 0
    validated: int = 0
    skipped: int = 0
    failed: int = 0

    def __post_init__(self) -> None:
        for name in ("found", "validated", "skipped", "failed"):
            if getattr(self, name) < 0:
                raise InvalidArgument(f"run stats {name} must be >= 0")

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> RunStats:
        d = d or {}
        return cls(
            found=_count(d, "found"),
            validated=_count(d, "validated"),
            skipped=_count(d, "skipped"),
            failed=_count(d, "failed"),
        )

    @property
    def processed(self) -> int:
        return self.validated + self.skipped + self.failed

    def is_consistent(self) -> bool:
        """validated + skipped + failed <= found。実行中は一時的に崩れることがある（表示用）。"""
        return self.processed <= self.found

    def covers(self, other: RunStats) -> bool:
        """全カウンタが other 以上か（実行中は単調非減少）。"""
        return (
            self.found >= other.found
            and self.validated >= other.validated
            and self.skipped >= other.skipped
            and self.failed >= other.failed
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "found": self.found,
            "validated": self.validated,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class ErrorSample:
    link: str
    reason: str

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> ErrorSample:
        return cls(link=str(d.get("link") or ""), reason=str(d.get("reason") or ""))


@dataclass(frozen=True)
class CrawlRun:
    run_id: str
    started_at: datetime
    status: RunStatus
    stats: RunStats = field(default_factory=RunStats)
    finished_at: Optional[datetime] = None
    errors_sample: tuple[ErrorSample, ...] = ()
    source: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> CrawlRun:
        """
        runs 一覧・status 単体のどちらの形式も受け付ける。
        stats が無い古い形式（totalFound / totalValidated / totalFailed）も読む。
        """
        rid = _opt_str(d.get("runId") or d.get("id"))
        if not rid:
            raise ValueError("run record has no runId")
        started_at = parse_iso(d.get("startedAt"))
        if started_at is None:
            raise ValueError(f"run {rid} has no startedAt")
        if d.get("stats") is not None:
            stats = RunStats.from_api(d.get("stats"))
        else:
            stats = RunStats(
                found=_count(d, "totalFound"),
                validated=_count(d, "totalValidated"),
                failed=_count(d, "totalFailed"),
            )
        errors = [ErrorSample.from_api(e) for e in (d.get("errorsSample") or []) if e]
        status = RunStatus.parse(d.get("status"))
        finished_at = parse_iso(d.get("finishedAt")) if status.is_terminal else None
        return cls(
            run_id=rid,
            started_at=started_at,
            status=status,
            stats=stats,
            finished_at=finished_at,
            errors_sample=tuple(errors[:ERRORS_SAMPLE_MAX]),
            source=_opt_str(d.get("source")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "started_at": to_iso(self.started_at),
            "finished_at": to_iso(self.finished_at) or "",
            **self.stats.to_dict(),
            "errors": len(self.errors_sample),
            "source": self.source or "",
        }


@dataclass(frozen=True)
class MailboxFilter:
    """一覧取得のクエリ条件。永続化しない。呼び出し側が保持して渡す。"""

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    state: Optional[str] = None
    cmra: Optional[str] = None
    rdi: Optional[str] = None
    source: Optional[str] = None
    search: Optional[str] = None

    @property
    def search_term(self) -> Optional[str]:
        term = (self.search or "").strip()
        return term or None

    def validate(self) -> None:
        if not isinstance(self.page, int) or self.page < 1:
            raise InvalidArgument(f"page must be >= 1 (got {self.page!r})")
        if not isinstance(self.page_size, int) or self.page_size < 1:
            raise InvalidArgument(f"page_size must be >= 1 (got {self.page_size!r})")

    def with_page(self, page: int) -> MailboxFilter:
        return replace(self, page=page)

    def exact_fields(self) -> dict[str, str]:
        """指定されている完全一致条件だけを返す。"""
        fields = {
            "state": self.state,
            "cmra": self.cmra,
            "rdi": self.rdi,
            "source": self.source,
        }
        return {k: v for k, v in fields.items() if v}


@dataclass
class MailboxPage:
    items: list[MailboxRecord]
    total: int  # ページング前の一致件数
    page: int
    page_size: int

    @property
    def page_count(self) -> int:
        if self.total <= 0:
            return 0
        return math.ceil(self.total / self.page_size)


@dataclass(frozen=True)
class Stats:
    total_mailboxes: int
    commercial_count: int
    residential_count: int
    avg_price: float
    by_state: dict[str, int] = field(default_factory=dict)
    by_source: dict[str, int] = field(default_factory=dict)
    last_updated: Optional[datetime] = None

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> Stats:
        return cls(
            total_mailboxes=int(d.get("totalMailboxes", 0) or 0),
            commercial_count=int(d.get("totalCommercial", 0) or 0),
            residential_count=int(d.get("totalResidential", 0) or 0),
            avg_price=float(d.get("avgPrice", 0) or 0),
            by_state={str(k): int(v) for k, v in (d.get("byState") or {}).items()},
            by_source={str(k): int(v) for k, v in (d.get("bySource") or {}).items()},
            last_updated=parse_iso(d.get("lastUpdated")),
        )

"""メールボックスディレクトリのフィルタ・ページング。"""
from __future__ import annotations

from typing import Iterable, Iterator, Optional

from mailbox_dash.api.models import MailboxFilter, MailboxPage, MailboxRecord


def matches_filter(record: MailboxRecord, flt: MailboxFilter) -> bool:
    """
    レコードが条件に一致するか。
    search 指定時は名称・市・番地の部分一致（大文字小文字無視）だけで判定し、
    完全一致条件（state / cmra / rdi / source）は同時には適用しない。
    """
    term = flt.search_term
    if term is not None:
        term = term.lower()
        return any(term in (v or "").lower() for v in (record.name, record.city, record.street))
    for key, expected in flt.exact_fields().items():
        if getattr(record, key) != expected:
            return False
    return True


def query_mailboxes(records: Iterable[MailboxRecord], flt: MailboxFilter) -> MailboxPage:
    """
    絞り込み → オフセットページング。records の並び順をそのまま保つ。
    範囲外のページは items が空になるだけでエラーにしない。
    """
    flt.validate()
    matched = [r for r in records if matches_filter(r, flt)]
    start = (flt.page - 1) * flt.page_size
    return MailboxPage(
        items=matched[start:start + flt.page_size],
        total=len(matched),
        page=flt.page,
        page_size=flt.page_size,
    )


class MailboxDirectory:
    """読み取り専用のメールボックス集合。挿入順を保持する。"""

    def __init__(self, records: Iterable[MailboxRecord] = ()) -> None:
        self._records: dict[str, MailboxRecord] = {}
        for r in records:
            # 同一IDは後勝ちだが位置は最初の挿入位置のまま
            self._records[r.mailbox_id] = r

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[MailboxRecord]:
        return iter(self.records)

    @property
    def records(self) -> tuple[MailboxRecord, ...]:
        return tuple(self._records.values())

    def get(self, mailbox_id: str) -> Optional[MailboxRecord]:
        return self._records.get(mailbox_id)

    def query(self, flt: MailboxFilter) -> MailboxPage:
        return query_mailboxes(self._records.values(), flt)

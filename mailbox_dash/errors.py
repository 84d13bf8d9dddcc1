"""
エラー階層。

MailboxDashError
├── InvalidArgument   不正なフィルタ・ページング・実行開始の入力
├── NotFound          未知の実行ID
├── Conflict          終了済みの実行へのキャンセルなど
└── TransportError    ネットワーク・バックエンドの失敗
"""
from __future__ import annotations

from typing import Optional


class MailboxDashError(Exception):
    """プロジェクト共通の基底例外。"""


class InvalidArgument(MailboxDashError):
    pass


class NotFound(MailboxDashError):
    pass


class Conflict(MailboxDashError):
    pass


class TransportError(MailboxDashError):
    """HTTP ステータス（取れた場合）とメッセージを保持する。"""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.status_code}] {self.message}"
        return self.message

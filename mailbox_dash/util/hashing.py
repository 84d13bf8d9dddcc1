"""メールボックスID用のハッシュ。"""
import hashlib
from typing import Optional


def md5_hex(text: str) -> str:
    """文字列の MD5 を16進文字列で返す。"""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def mailbox_id(
    link: Optional[str],
    name: Optional[str] = None,
    street: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    zip_code: Optional[str] = None,
) -> str:
    """
    明示IDが無いメールボックスの安定ID。
    リンクがあればリンクから、無ければ名称＋住所から作る。
    """
    if _norm(link):
        return md5_hex(_norm(link))
    key = "|".join(_norm(v) for v in (name, street, city, state, zip_code))
    return md5_hex(key)

"""HTTP クライアント：タイムアウト付き JSON 送受信。リトライは行わない。"""
import os
from typing import Any, Optional

import requests


def get_timeout_sec() -> int:
    return int(os.getenv("HTTP_TIMEOUT_SEC", "30"))


def get_json(
    url: str,
    params: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
    timeout_sec: Optional[int] = None,
    session: Optional[requests.Session] = None,
) -> Any:
    """GET で JSON を取得。"""
    timeout_sec = timeout_sec or get_timeout_sec()
    use_session = session or requests
    h = {"Accept": "application/json", "Cache-Control": "no-store"}
    h.update(headers or {})
    r = use_session.get(url, params=params, headers=h, timeout=timeout_sec)
    r.raise_for_status()
    return r.json() if r.content else {}


def post_json(
    url: str,
    json_body: Any,
    headers: Optional[dict[str, str]] = None,
    timeout_sec: Optional[int] = None,
    session: Optional[requests.Session] = None,
) -> Any:
    """POST application/json。"""
    timeout_sec = timeout_sec or get_timeout_sec()
    use_session = session or requests
    h = {"Accept": "application/json"}
    h.update(headers or {})
    if "Content-Type" not in h:
        h["Content-Type"] = "application/json"
    r = use_session.post(url, json=json_body, headers=h, timeout=timeout_sec)
    r.raise_for_status()
    return r.json() if r.content else {}

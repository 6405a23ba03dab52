from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from app.errors import RelayError

_logger = logging.getLogger(__name__)


def _error_text(resp: requests.Response) -> tuple[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}", None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"]), body
    return f"HTTP {resp.status_code}", body


def request_json(
    http: requests.Session,
    method: str,
    url: str,
    payload: Optional[dict[str, Any]] = None,
    token: Optional[str] = None,
    timeout: Optional[float] = None,
) -> requests.Response:
    """发送 JSON 请求；网络错误和非 2xx 统一转成 RelayError"""
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        resp = http.request(method, url, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        # 只记录 URL，请求体里可能有密钥
        _logger.warning("[HTTP] %s %s 请求失败: %s", method, url, type(exc).__name__)
        raise RelayError(f"Request to {url} failed: {type(exc).__name__}") from exc
    if not resp.ok:
        message, body = _error_text(resp)
        raise RelayError(message, status=resp.status_code, body=body)
    return resp


def parse_json(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError as exc:
        raise RelayError("Relay returned invalid JSON", status=resp.status_code) from exc

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from api.http import parse_json, request_json

REDACTED = "***REDACTED***"


@dataclass
class GenerationResult:
    text: str
    raw_response: Any


def build_generation_request(text: str, endpoint: str, token: str) -> dict[str, str]:
    return {"text": text, "endpoint": endpoint, "token": token}


def redact_request(request: dict[str, str]) -> dict[str, str]:
    """调试面板用：隐藏 token"""
    return {**request, "token": REDACTED}


def generate_reply(http: requests.Session, relay_url: str, text: str, endpoint: str, token: str) -> GenerationResult:
    payload = build_generation_request(text, endpoint, token)
    resp = request_json(http, "POST", f"{relay_url}/functions/generate", payload)
    data = parse_json(resp)
    if not isinstance(data, dict):
        return GenerationResult(text="", raw_response=data)
    reply = data.get("response") or ""
    return GenerationResult(text=str(reply).strip(), raw_response=data)

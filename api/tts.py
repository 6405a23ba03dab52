from __future__ import annotations

import requests

from api.http import request_json
from app.errors import SynthesisFailed


def synthesize_speech(http: requests.Session, relay_url: str, text: str, endpoint: str, api_key: str) -> bytes:
    if not text:
        return b""
    payload = {"text": text, "endpoint": endpoint, "apiKey": api_key}
    resp = request_json(http, "POST", f"{relay_url}/functions/text-to-speech", payload)
    content_type = resp.headers.get("Content-Type", "")
    if not content_type.startswith("audio/"):
        raise SynthesisFailed(f"Unexpected content type from synthesis relay: {content_type or 'none'}")
    return resp.content

from __future__ import annotations

import base64
import re

import requests

from api.http import parse_json, request_json
from app.errors import RelayError
from audio.recorder import AudioUnit


def transcribe_audio(http: requests.Session, relay_url: str, audio: AudioUnit, api_key: str) -> str:
    if not audio.data:
        raise RelayError("Recorded audio is empty")
    payload = {
        "audioData": base64.b64encode(audio.data).decode("ascii"),
        "apiKey": api_key,
    }
    resp = request_json(http, "POST", f"{relay_url}/functions/speech-to-text", payload)
    data = parse_json(resp)
    text = data.get("transcript", "") if isinstance(data, dict) else ""
    return _clean_transcript(text or "")


def _clean_transcript(text: str) -> str:
    if not text:
        return ""
    text = re.sub(r"\s+", " ", text)
    return text.strip()

from __future__ import annotations

import logging
from typing import Any

import requests

from audio.recorder import SAMPLE_RATE
from relay.extract import extract_reply

logger = logging.getLogger(__name__)

GOOGLE_SPEECH_URL = "https://speech.googleapis.com/v1/speech:recognize"

# 与录音端输出的单声道 WAV (PCM_16) 一致
RECOGNITION_CONFIG = {
    "encoding": "LINEAR16",
    "sampleRateHertz": SAMPLE_RATE,
    "languageCode": "en-US",
}

VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.5,
}


class UpstreamError(RuntimeError):
    pass


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _upstream_message(data: Any, fallback: str) -> str:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return fallback


def recognize_speech(audio_base64: str, api_key: str, timeout: float) -> str:
    try:
        response = requests.post(
            GOOGLE_SPEECH_URL,
            params={"key": api_key},
            json={"config": RECOGNITION_CONFIG, "audio": {"content": audio_base64}},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise UpstreamError(f"Speech service unreachable: {type(exc).__name__}") from exc

    data = _json_or_none(response)
    if not response.ok:
        raise UpstreamError(_upstream_message(data, "Failed to convert speech to text"))

    try:
        return data["results"][0]["alternatives"][0]["transcript"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


def generate_text(text: str, endpoint: str, token: str, max_tokens: int, timeout: float) -> tuple[str, Any]:
    """返回 (回复文本, 上游原始响应)"""
    body = {
        "messages": [{"role": "user", "content": text}],
        "max_tokens": max_tokens,
    }
    try:
        response = requests.post(
            endpoint,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            json=body,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise UpstreamError(f"Generation service unreachable: {type(exc).__name__}") from exc

    data = _json_or_none(response)
    if not response.ok:
        raise UpstreamError(_upstream_message(data, "Failed to process with generation API"))
    if data is None:
        raise UpstreamError("Generation service returned invalid JSON")
    return extract_reply(data), data


def synthesize_speech(text: str, endpoint: str, api_key: str, timeout: float) -> bytes:
    try:
        response = requests.post(
            endpoint,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            json={"text": text, "voice_settings": VOICE_SETTINGS},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise UpstreamError(f"Speech synthesis service unreachable: {type(exc).__name__}") from exc

    if not response.ok:
        raise UpstreamError(_upstream_message(_json_or_none(response), "Failed to convert text to speech"))
    return response.content

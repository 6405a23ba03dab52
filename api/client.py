from __future__ import annotations

from typing import Optional

import requests

from api.llm import GenerationResult, generate_reply
from api.stt import transcribe_audio
from api.tts import synthesize_speech
from audio.recorder import AudioUnit


class RelayClient:
    """客户端侧的三个中继调用；不设超时、不重试"""

    def __init__(self, relay_url: str, http: Optional[requests.Session] = None) -> None:
        self.relay_url = relay_url.rstrip("/")
        self.http = http or requests.Session()

    def transcribe(self, audio: AudioUnit, api_key: str) -> str:
        return transcribe_audio(self.http, self.relay_url, audio, api_key)

    def generate(self, text: str, endpoint: str, token: str) -> GenerationResult:
        return generate_reply(self.http, self.relay_url, text, endpoint, token)

    def synthesize(self, text: str, endpoint: str, api_key: str) -> bytes:
        return synthesize_speech(self.http, self.relay_url, text, endpoint, api_key)

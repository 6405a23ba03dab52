from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from audio.recorder import RecordingState
from store.credentials import ApiConfig
from utils.config import AppConfig

STAGES = ("transcription", "generation", "synthesis", "playback")


@dataclass(frozen=True)
class Message:
    id: int
    text: str
    is_user: bool


@dataclass
class DebugSnapshot:
    transcription_result: Optional[str] = None
    generation_input: Optional[str] = None
    generation_raw_request: Optional[dict[str, Any]] = None
    generation_raw_response: Any = None
    generation_response: Optional[str] = None
    synthesis_input: Optional[str] = None
    errors: dict[str, str] = field(default_factory=dict)

    def reset(self) -> None:
        self.transcription_result = None
        self.generation_input = None
        self.generation_raw_request = None
        self.generation_raw_response = None
        self.generation_response = None
        self.synthesis_input = None
        self.errors = {}

    def record_error(self, stage: str, message: str) -> None:
        if stage not in STAGES:
            raise ValueError(f"unknown stage: {stage}")
        self.errors[stage] = message

    def as_dict(self) -> dict[str, Any]:
        return {
            "transcriptionResult": self.transcription_result,
            "generationInput": self.generation_input,
            "generationRawRequest": self.generation_raw_request,
            "generationRawResponse": self.generation_raw_response,
            "generationResponse": self.generation_response,
            "synthesisInput": self.synthesis_input,
            "errors": dict(self.errors),
        }


@dataclass
class AppState:
    """每个会话一份，显式传给各组件"""

    config: AppConfig
    api_config: ApiConfig = field(default_factory=ApiConfig)
    recording_state: RecordingState = RecordingState.IDLE
    is_processing: bool = False
    is_playing: bool = False
    messages: list[Message] = field(default_factory=list)
    debug: DebugSnapshot = field(default_factory=DebugSnapshot)
    _ids: Any = field(default_factory=lambda: itertools.count(1), repr=False)
    _lock: Any = field(default_factory=threading.Lock, repr=False)

    @property
    def is_busy(self) -> bool:
        return self.is_processing or self.is_playing

    def add_message(self, text: str, is_user: bool) -> Message:
        with self._lock:
            message = Message(id=next(self._ids), text=text, is_user=is_user)
            self.messages.append(message)
            return message

    def snapshot_messages(self) -> list[Message]:
        with self._lock:
            return list(self.messages)

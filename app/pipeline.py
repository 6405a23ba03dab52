from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from api.auth import Session
from api.llm import GenerationResult, build_generation_request, redact_request
from app.errors import (
    ConfigurationMissing,
    GenerationFailed,
    PersistenceFailed,
    RelayError,
    SynthesisFailed,
    TranscriptionFailed,
)
from app.state import AppState, Message
from audio.recorder import AudioUnit
from store.credentials import is_configured

_logger = logging.getLogger(__name__)


class Relay(Protocol):
    def transcribe(self, audio: AudioUnit, api_key: str) -> str: ...

    def generate(self, text: str, endpoint: str, token: str) -> GenerationResult: ...

    def synthesize(self, text: str, endpoint: str, api_key: str) -> bytes: ...


class History(Protocol):
    def record_exchange(self, session: Session, user_message: str, bot_response: str) -> None: ...


@dataclass
class UtteranceResult:
    user_message: Message
    bot_message: Message
    audio: Optional[bytes]


class Pipeline:
    """一次发言：转写 -> 生成 -> 合成，严格顺序执行，同一时间只允许一个"""

    def __init__(
        self,
        state: AppState,
        relay: Relay,
        on_audio: Optional[Callable[[bytes], None]] = None,
        on_change: Optional[Callable[[], None]] = None,
        history: Optional[History] = None,
        current_session: Callable[[], Optional[Session]] = lambda: None,
    ) -> None:
        self.state = state
        self.relay = relay
        self.on_audio = on_audio
        self.on_change = on_change
        self.history = history
        self.current_session = current_session
        self._in_flight = threading.Lock()

    def handle_utterance(self, audio: AudioUnit) -> Optional[UtteranceResult]:
        if self.state.is_busy or not self._in_flight.acquire(blocking=False):
            _logger.warning("[Pipeline] 已有请求在处理中，忽略本次录音")
            return None
        try:
            config = self.state.api_config
            if not is_configured(config):
                raise ConfigurationMissing("Please configure the API settings first")

            self.state.is_processing = True
            self.state.debug.reset()
            self._changed()
            try:
                return self._run(audio)
            finally:
                self.state.is_processing = False
                self._changed()
        finally:
            self._in_flight.release()

    def _run(self, audio: AudioUnit) -> UtteranceResult:
        config = self.state.api_config
        debug = self.state.debug

        # 1. 语音转文字
        try:
            transcript = self.relay.transcribe(audio, config.transcription_api_key)
        except RelayError as exc:
            debug.record_error("transcription", str(exc))
            _logger.warning("[Pipeline] 转写失败: %s", exc)
            raise TranscriptionFailed(str(exc)) from exc
        debug.transcription_result = transcript
        if not transcript:
            debug.record_error("transcription", "empty transcript")
            raise TranscriptionFailed("Could not transcribe audio. Please try again.")
        _logger.info("[Pipeline] 转写完成: %s", transcript[:200])

        user_message = self.state.add_message(transcript, is_user=True)
        self._changed()

        # 2. 生成回复；原始请求/响应无论成败都记录
        debug.generation_input = transcript
        debug.generation_raw_request = redact_request(
            build_generation_request(transcript, config.generation_endpoint, config.generation_token)
        )
        try:
            result = self.relay.generate(transcript, config.generation_endpoint, config.generation_token)
        except RelayError as exc:
            debug.generation_raw_response = exc.body
            debug.record_error("generation", str(exc))
            _logger.warning("[Pipeline] 生成失败: %s", exc)
            raise GenerationFailed(str(exc)) from exc
        debug.generation_raw_response = result.raw_response
        debug.generation_response = result.text
        _logger.info("[Pipeline] 生成完成: %s", result.text[:200])

        self._record_exchange(transcript, result.text)
        bot_message = self.state.add_message(result.text, is_user=False)
        self._changed()

        # 3. 文字转语音，失败不影响本轮对话
        audio_bytes = self._synthesize(result.text)
        return UtteranceResult(user_message=user_message, bot_message=bot_message, audio=audio_bytes)

    def _synthesize(self, text: str) -> Optional[bytes]:
        config = self.state.api_config
        debug = self.state.debug
        debug.synthesis_input = text
        if not text:
            return None
        try:
            audio_bytes = self.relay.synthesize(text, config.synthesis_endpoint, config.synthesis_api_key)
        except (RelayError, SynthesisFailed) as exc:
            debug.record_error("synthesis", str(exc))
            _logger.warning("[Pipeline] 语音合成失败: %s", exc)
            return None
        if not audio_bytes:
            debug.record_error("synthesis", "empty audio")
            return None
        if self.on_audio:
            try:
                self.on_audio(audio_bytes)
            except Exception as exc:
                debug.record_error("playback", str(exc))
                _logger.exception("[Pipeline] 播放失败")
        return audio_bytes

    def _record_exchange(self, user_message: str, bot_response: str) -> None:
        session = self.current_session()
        if session is None or self.history is None or not bot_response:
            return
        try:
            self.history.record_exchange(session, user_message, bot_response)
        except PersistenceFailed as exc:
            _logger.warning("[Pipeline] 保存对话记录失败: %s", exc)

    def _changed(self) -> None:
        if self.on_change:
            try:
                self.on_change()
            except Exception:
                _logger.exception("[Pipeline] on_change 回调异常")

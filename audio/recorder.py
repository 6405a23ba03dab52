from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Callable, Optional

import numpy as np
import soundfile as sf

from app.errors import PermissionDenied

_logger = logging.getLogger(__name__)

AUDIO_MIME_TYPE = "audio/wav"
# 识别中继按同一采样率声明音频，不可配置
SAMPLE_RATE = 16000


class RecordingState(enum.Enum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    RECORDING = "recording"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class AudioUnit:
    data: bytes
    sample_rate: int = SAMPLE_RATE
    mime_type: str = AUDIO_MIME_TYPE


StreamFactory = Callable[..., Any]


def _default_stream_factory(**kwargs: Any) -> Any:
    # 延迟导入：没有 PortAudio 的环境也能加载本模块
    import sounddevice as sd

    return sd.InputStream(**kwargs)


class Recorder:
    """麦克风录音状态机

    同一时间最多持有一个输入流；权限探测后立即释放，停止录音后立即释放。
    """

    def __init__(
        self,
        max_seconds: int,
        on_audio: Optional[Callable[[AudioUnit], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        on_state_change: Optional[Callable[[RecordingState], None]] = None,
        stream_factory: StreamFactory = _default_stream_factory,
    ) -> None:
        self.max_seconds = max_seconds
        self.sample_rate = SAMPLE_RATE
        self.on_audio = on_audio
        self.on_error = on_error
        self.on_state_change = on_state_change
        self._stream_factory = stream_factory
        self._lock = threading.RLock()
        self._state = RecordingState.IDLE
        self._stream: Any = None
        self._chunks: list[bytes] = []
        self._max_frames = int(self.sample_rate * self.max_seconds)
        self._frames_written = 0

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecordingState.RECORDING

    def _set_state(self, state: RecordingState) -> None:
        self._state = state
        if self.on_state_change:
            self.on_state_change(state)

    def _open_stream(self, callback: Optional[Callable[..., None]] = None) -> Any:
        return self._stream_factory(
            samplerate=self.sample_rate,
            channels=1,
            dtype="int16",
            callback=callback,
            finished_callback=self._on_stream_finished if callback else None,
        )

    def _on_stream_finished(self) -> None:
        # stop() 先切到 IDLE 再释放流，这里只处理设备意外中断；
        # 不能在 PortAudio 回调线程里关闭流
        if not self.is_recording:
            return
        exc = RuntimeError("Input device stopped unexpectedly")
        threading.Thread(target=self.fail, args=(exc,), daemon=True).start()

    def probe_permission(self) -> bool:
        """打开一次输入设备确认可用，然后立即关闭"""
        with self._lock:
            if self._state is RecordingState.RECORDING:
                return True
            self._set_state(RecordingState.REQUESTING_PERMISSION)
            try:
                stream = self._open_stream()
                stream.close()
            except Exception as exc:
                _logger.warning("[Recorder] 麦克风不可用: %s", exc)
                self._set_state(RecordingState.PERMISSION_DENIED)
                self._report(PermissionDenied(f"Microphone access denied: {exc}"))
                return False
            self._set_state(RecordingState.IDLE)
            return True

    def _callback(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        if status:
            _logger.debug("[Recorder] 输入流状态: %s", status)
        if not self.is_recording or self._frames_written >= self._max_frames:
            return
        self._chunks.append(indata.copy().tobytes())
        self._frames_written += frames

    def start(self) -> bool:
        with self._lock:
            if self._state is RecordingState.RECORDING:
                return False
            if self._state is RecordingState.PERMISSION_DENIED and not self.probe_permission():
                return False

            self._chunks = []
            self._frames_written = 0
            try:
                self._stream = self._open_stream(self._callback)
                self._set_state(RecordingState.RECORDING)
                self._stream.start()
            except Exception as exc:
                _logger.exception("[Recorder] 启动录音失败")
                self._release_stream()
                self._chunks = []
                self._set_state(RecordingState.PERMISSION_DENIED)
                self._report(PermissionDenied(f"Failed to start recording: {exc}"))
                return False
            _logger.info("[Recorder] 开始录音")
            return True

    def stop(self) -> Optional[AudioUnit]:
        with self._lock:
            if self._state is not RecordingState.RECORDING:
                return None
            self._set_state(RecordingState.IDLE)
            try:
                self._release_stream()
            except Exception as exc:
                _logger.exception("[Recorder] 关闭输入流失败，丢弃本次录音")
                self._chunks = []
                self._report(exc)
                return None

            pcm_bytes = b"".join(self._chunks)
            self._chunks = []

        if not pcm_bytes:
            _logger.info("[Recorder] 未录到音频")
            return None
        unit = AudioUnit(data=self._pcm_to_wav(pcm_bytes), sample_rate=self.sample_rate)
        _logger.info("[Recorder] 录音结束, %d 字节", len(unit.data))
        if self.on_audio:
            self.on_audio(unit)
        return unit

    def fail(self, exc: Exception) -> None:
        """设备出错：丢弃缓冲并回到空闲"""
        with self._lock:
            if self._state is not RecordingState.RECORDING:
                return
            self._chunks = []
            try:
                self._release_stream()
            except Exception:
                _logger.exception("[Recorder] 释放输入流失败")
            self._set_state(RecordingState.IDLE)
        self._report(exc)

    def close(self) -> None:
        with self._lock:
            self._chunks = []
            try:
                self._release_stream()
            finally:
                if self._state is RecordingState.RECORDING:
                    self._set_state(RecordingState.IDLE)

    def _release_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
            finally:
                stream.close()

    def _report(self, exc: Exception) -> None:
        if self.on_error:
            self.on_error(exc)

    def _pcm_to_wav(self, pcm_bytes: bytes) -> bytes:
        audio = np.frombuffer(pcm_bytes, dtype=np.int16)
        audio = audio.reshape(-1, 1)
        buffer = BytesIO()
        sf.write(buffer, audio, self.sample_rate, subtype="PCM_16", format="WAV")
        return buffer.getvalue()

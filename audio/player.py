from __future__ import annotations

import logging
import threading
from io import BytesIO
from typing import Any, Callable, Optional

import numpy as np
import soundfile as sf

_logger = logging.getLogger(__name__)


def _default_output_stream(**kwargs: Any) -> Any:
    # 延迟导入：没有 PortAudio 的环境也能加载本模块
    import sounddevice as sd

    return sd.OutputStream(**kwargs)


class SoundDeviceOutput:
    """回复播放专用的输出流

    不经过 sd.play() 的全局流，提示音的 sd.play() 不会打断正在播放的回复。
    """

    def __init__(self, stream_factory: Callable[..., Any] = _default_output_stream) -> None:
        self._stream_factory = stream_factory
        self._lock = threading.Lock()
        self._stream: Any = None
        self._done = threading.Event()
        self._done.set()

    def play(self, data: np.ndarray, sample_rate: int) -> None:
        self.stop()
        frames = data.reshape(len(data), -1)
        done = threading.Event()
        position = 0

        def callback(outdata: np.ndarray, frame_count: int, time_info: Any, status: Any) -> None:
            nonlocal position
            chunk = frames[position:position + frame_count]
            outdata[:len(chunk)] = chunk
            outdata[len(chunk):] = 0
            position += len(chunk)
            if position >= len(frames):
                done.set()

        stream = self._stream_factory(
            samplerate=sample_rate,
            channels=frames.shape[1],
            dtype="float32",
            callback=callback,
        )
        with self._lock:
            self._stream, self._done = stream, done
        try:
            stream.start()
        except Exception:
            self._release(stream, abort=True)
            raise

    def wait(self) -> None:
        with self._lock:
            stream, done = self._stream, self._done
        done.wait()
        # 自然结束：stop() 会等缓冲区播完
        self._release(stream, abort=False)

    def stop(self) -> None:
        with self._lock:
            stream, done = self._stream, self._done
        done.set()
        self._release(stream, abort=True)

    def _release(self, stream: Any, abort: bool) -> None:
        with self._lock:
            if stream is None or stream is not self._stream:
                return
            self._stream = None
        try:
            if abort:
                stream.abort()
            else:
                stream.stop()
        finally:
            stream.close()


def decode_audio(audio_bytes: bytes) -> tuple[np.ndarray, int]:
    data, sample_rate = sf.read(BytesIO(audio_bytes), dtype="float32")
    return data, sample_rate


class Player:
    """单一播放会话；新的 play 会顶替旧的，stop 立即停止输出"""

    def __init__(
        self,
        on_state_change: Optional[Callable[[bool], None]] = None,
        output: Any = None,
    ) -> None:
        self.on_state_change = on_state_change
        self._output = output or SoundDeviceOutput()
        self._lock = threading.Lock()
        self._token = 0
        self._is_playing = False

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    def play(self, audio_bytes: bytes) -> None:
        data, sample_rate = decode_audio(audio_bytes)
        with self._lock:
            self._token += 1
            token = self._token
            self._output.play(data, sample_rate)
            self._set_playing(True)
        waiter = threading.Thread(target=self._wait_for_end, args=(token,), daemon=True)
        waiter.start()
        _logger.info("[Player] 开始播放, %.1f 秒", len(data) / sample_rate if sample_rate else 0.0)

    def stop(self) -> None:
        with self._lock:
            self._token += 1
            if not self._is_playing:
                return
            try:
                self._output.stop()
            finally:
                self._set_playing(False)
        _logger.info("[Player] 播放已停止")

    def _wait_for_end(self, token: int) -> None:
        try:
            self._output.wait()
        except Exception:
            _logger.exception("[Player] 等待播放结束失败")
        with self._lock:
            # 已被 stop 或新的 play 取代
            if token != self._token:
                return
            self._set_playing(False)

    def _set_playing(self, value: bool) -> None:
        self._is_playing = value
        if self.on_state_change:
            self.on_state_change(value)

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from app.state import AppState
from audio.recorder import AudioUnit, Recorder
from utils.sounds import play_busy_sound, play_start_sound, play_stop_sound


class RecordingToggle:
    """热键/菜单的录音开关

    停止总是允许；开始要求没有处理中、播放中或已交给工作线程但尚未开始处理的录音。
    """

    def __init__(
        self,
        state: AppState,
        recorder: Recorder,
        on_utterance: Callable[[AudioUnit], None],
        on_empty: Optional[Callable[[], None]] = None,
    ) -> None:
        self.state = state
        self.recorder = recorder
        self.on_utterance = on_utterance
        self.on_empty = on_empty
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def toggle(self) -> None:
        with self._lock:
            if self.recorder.is_recording:
                self._stop_and_dispatch()
                return
            if self._pending or self.state.is_busy:
                logging.info("[TrayApp] 正在处理或播放，忽略")
                play_busy_sound()
                return
            self._start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None

    def _start(self) -> None:
        if not self.recorder.start():
            return
        play_start_sound()
        max_seconds = self.state.config.max_seconds
        self._timer = threading.Timer(max_seconds, self._auto_stop)
        self._timer.daemon = True
        self._timer.start()
        logging.info("[TrayApp] 录音已开始，最长 %ds", max_seconds)

    def _stop_and_dispatch(self) -> None:
        if self._timer:
            self._timer.cancel()
            self._timer = None
        unit = self.recorder.stop()
        play_stop_sound()
        if unit is None:
            if self.on_empty:
                self.on_empty()
            return
        # 工作线程启动前就标记忙碌，避免 is_processing 置位前又开始新录音
        self._pending = True
        threading.Thread(target=self._run, args=(unit,), daemon=True).start()

    def _run(self, unit: AudioUnit) -> None:
        try:
            self.on_utterance(unit)
        finally:
            with self._lock:
                self._pending = False

    def _auto_stop(self) -> None:
        logging.info("[TrayApp] 录音达到最长时长，自动停止")
        with self._lock:
            if self.recorder.is_recording:
                self._stop_and_dispatch()

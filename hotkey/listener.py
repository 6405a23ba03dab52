from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

import keyboard

_logger = logging.getLogger(__name__)


class HotkeyListener:
    """全局快捷键：按一次开始录音，再按一次停止"""

    def __init__(self, on_toggle: Callable[[], None]) -> None:
        self._on_toggle = on_toggle
        self._hotkey_id: Optional[object] = None

    def start(self, hotkey: str) -> None:
        self.stop()
        _logger.info("[Hotkey] 注册快捷键: %s", hotkey)
        self._hotkey_id = keyboard.add_hotkey(hotkey, self._fire, suppress=True)

    def stop(self) -> None:
        if self._hotkey_id is not None:
            _logger.info("[Hotkey] 移除快捷键")
            keyboard.remove_hotkey(self._hotkey_id)
            self._hotkey_id = None

    def _fire(self) -> None:
        try:
            self._on_toggle()
        except Exception:
            # keyboard 的回调线程里抛出的异常会被吞掉，这里记录下来
            _logger.exception("[Hotkey] 回调异常")

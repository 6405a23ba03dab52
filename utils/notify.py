from __future__ import annotations

import logging
import threading

from app.errors import (
    ConfigurationMissing,
    GenerationFailed,
    PermissionDenied,
    TranscriptionFailed,
    VoiceBotError,
)

APP_ID = "VoiceBot"

_ERROR_TITLES = [
    (ConfigurationMissing, "需要配置"),
    (PermissionDenied, "无法使用麦克风"),
    (TranscriptionFailed, "转写失败"),
    (GenerationFailed, "生成失败"),
]

_toast_available = True

try:
    from win11toast import toast as _win11toast
except ImportError:  # pragma: no cover - optional dependency
    _win11toast = None
    _toast_available = False


def _send_toast(title: str, message: str) -> None:
    global _toast_available
    try:
        _win11toast(title, message, app_id=APP_ID, duration="short")
    except Exception as e:
        # COM 出错一次后本次运行不再尝试
        logging.debug("Toast 通知失败，已禁用: %s", e)
        _toast_available = False


def notify(title: str, message: str) -> None:
    """写日志；有 Toast 时在后台线程弹出"""
    logging.info("[Notify] %s - %s", title, message)
    if not _toast_available or _win11toast is None:
        return
    threading.Thread(target=_send_toast, args=(title, message), daemon=True).start()


def error_title(exc: BaseException) -> str:
    for error_type, title in _ERROR_TITLES:
        if isinstance(exc, error_type):
            return title
    return "出错了" if isinstance(exc, VoiceBotError) else "处理失败"


def notify_error(exc: BaseException) -> None:
    notify(error_title(exc), str(exc) or type(exc).__name__)

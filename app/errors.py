from __future__ import annotations

from typing import Any


class VoiceBotError(RuntimeError):
    """用户可见或需要记录的错误基类"""


class ConfigurationMissing(VoiceBotError):
    pass


class PermissionDenied(VoiceBotError):
    pass


class TranscriptionFailed(VoiceBotError):
    pass


class GenerationFailed(VoiceBotError):
    pass


class SynthesisFailed(VoiceBotError):
    pass


class PersistenceFailed(VoiceBotError):
    pass


class RelayError(VoiceBotError):
    """中继返回非 2xx 或网络失败"""

    def __init__(self, message: str, status: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body

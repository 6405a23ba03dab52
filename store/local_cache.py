from __future__ import annotations

import json
import logging
from pathlib import Path

from store.credentials import ApiConfig, from_wire, to_wire

LOCAL_CACHE_KEY = "voice-bot-api-config"

_logger = logging.getLogger(__name__)


class LocalCache:
    """本机 JSON 缓存：未登录时的唯一存储，登录后作为写穿缓存"""

    def __init__(self, data_dir: str | Path) -> None:
        self.path = Path(data_dir) / f"{LOCAL_CACHE_KEY}.json"

    def read(self) -> ApiConfig:
        if not self.path.exists():
            return ApiConfig()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            _logger.warning("[LocalCache] 读取缓存失败，使用空配置: %s", exc)
            return ApiConfig()
        if not isinstance(data, dict):
            return ApiConfig()
        return from_wire(data)

    def write(self, config: ApiConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(to_wire(config), ensure_ascii=False, indent=2), encoding="utf-8")

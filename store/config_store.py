from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping, Optional

from api.auth import Session
from app.errors import PersistenceFailed
from store.credentials import ApiConfig, ConfigPatch, merge
from store.local_cache import LocalCache
from store.remote import RemoteStore

_logger = logging.getLogger(__name__)


class ConfigStore:
    """API 凭据存储：本地缓存 + 登录用户的远端记录

    登录状态在每次 load/save 开始时解析一次，远端失败一律回退本地缓存，
    不向用户报错。
    """

    def __init__(
        self,
        local: LocalCache,
        remote: RemoteStore,
        current_session: Callable[[], Optional[Session]],
    ) -> None:
        self._local = local
        self._remote = remote
        self._current_session = current_session
        self._lock = threading.Lock()
        self._value = ApiConfig()

    @property
    def current(self) -> ApiConfig:
        return self._value

    def load(self) -> ApiConfig:
        session = self._current_session()
        if session is not None:
            try:
                remote_value = self._remote.fetch_config(session)
            except PersistenceFailed as exc:
                _logger.warning("[ConfigStore] 读取远端配置失败，回退本地缓存: %s", exc)
            else:
                if remote_value is not None:
                    with self._lock:
                        self._value = remote_value
                        self._local.write(remote_value)
                    return remote_value
                _logger.info("[ConfigStore] 远端无配置记录，使用本地缓存")

        with self._lock:
            self._value = self._local.read()
            return self._value

    def save(self, patch: ConfigPatch | Mapping[str, Any]) -> ApiConfig:
        session = self._current_session()
        with self._lock:
            self._value = merge(self._value, patch)
            value = self._value
            self._local.write(value)

        if session is not None:
            try:
                self._remote.upsert_config(session, value)
            except PersistenceFailed as exc:
                _logger.warning("[ConfigStore] 远端保存失败，仅保留本地缓存: %s", exc)
        return value

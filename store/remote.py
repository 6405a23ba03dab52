from __future__ import annotations

from typing import Any, Optional

import requests

from api.auth import Session
from api.http import parse_json, request_json
from app.errors import PersistenceFailed, RelayError
from store.credentials import ApiConfig, from_record, to_record


class RemoteStore:
    """后端持久化：每个用户一条配置记录，外加对话历史"""

    def __init__(self, base_url: str, http: Optional[requests.Session] = None, timeout: float = 15.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout

    def fetch_config(self, session: Session) -> Optional[ApiConfig]:
        """返回远端配置；记录不存在时返回 None"""
        try:
            resp = self._call("GET", "/api/configurations/me", session)
        except PersistenceFailed as exc:
            if isinstance(exc.__cause__, RelayError) and exc.__cause__.status == 404:
                return None
            raise
        record = self._json(resp)
        if not isinstance(record, dict):
            raise PersistenceFailed("Configuration record is malformed")
        return from_record(record)

    def upsert_config(self, session: Session, config: ApiConfig) -> None:
        self._call("PUT", "/api/configurations/me", session, to_record(config))

    def record_exchange(self, session: Session, user_message: str, bot_response: str) -> None:
        self._call(
            "POST",
            "/api/conversations",
            session,
            {"userMessage": user_message, "botResponse": bot_response},
        )

    def list_exchanges(self, session: Session) -> list[dict[str, Any]]:
        data = self._json(self._call("GET", "/api/conversations", session))
        return list(data.get("conversations", [])) if isinstance(data, dict) else []

    def _call(
        self,
        method: str,
        path: str,
        session: Session,
        payload: Optional[dict[str, Any]] = None,
    ) -> requests.Response:
        try:
            return request_json(
                self.http,
                method,
                f"{self.base_url}{path}",
                payload,
                token=session.access_token,
                timeout=self.timeout,
            )
        except RelayError as exc:
            raise PersistenceFailed(str(exc)) from exc

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        try:
            return parse_json(resp)
        except RelayError as exc:
            raise PersistenceFailed(str(exc)) from exc

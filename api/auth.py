from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

import requests

from api.http import parse_json, request_json

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    user_id: str
    email: str
    access_token: str


class AuthClient:
    """登录状态持有者；current() 每次操作解析一次"""

    def __init__(self, base_url: str, http: Optional[requests.Session] = None, timeout: float = 15.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout
        self._lock = threading.Lock()
        self._session: Optional[Session] = None

    def current(self) -> Optional[Session]:
        with self._lock:
            return self._session

    def sign_up(self, email: str, password: str) -> Session:
        return self._authenticate("signup", email, password)

    def sign_in(self, email: str, password: str) -> Session:
        return self._authenticate("signin", email, password)

    def sign_out(self) -> None:
        with self._lock:
            self._session = None
        _logger.info("[Auth] 已退出登录")

    def _authenticate(self, action: str, email: str, password: str) -> Session:
        if not email or not password:
            raise ValueError("Please provide both email and password")
        resp = request_json(
            self.http,
            "POST",
            f"{self.base_url}/auth/{action}",
            {"email": email, "password": password},
            timeout=self.timeout,
        )
        data = parse_json(resp)
        session = Session(
            user_id=str(data["user"]["id"]),
            email=data["user"]["email"],
            access_token=data["accessToken"],
        )
        with self._lock:
            self._session = session
        _logger.info("[Auth] %s 成功: %s", action, session.email)
        return session

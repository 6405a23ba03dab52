from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional

from flask import current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

_SALT = "voicebot-access-token"


class TokenIssuer:
    def __init__(self, secret_key: str, max_age: int) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key, salt=_SALT)
        self.max_age = max_age

    def issue(self, user_id: str) -> str:
        return self._serializer.dumps({"uid": user_id})

    def verify(self, token: str) -> Optional[str]:
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except (SignatureExpired, BadSignature):
            return None
        return data.get("uid") if isinstance(data, dict) else None


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def require_auth(f: Callable[..., Any]) -> Callable[..., Any]:
    """要求 Bearer access token；通过后 g.user_id 为当前用户"""

    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        token = _bearer_token()
        issuer: TokenIssuer = current_app.extensions["voicebot.tokens"]
        user_id = issuer.verify(token) if token else None
        if user_id is None or current_app.extensions["voicebot.db"].find_user(user_id) is None:
            return jsonify({"error": "Unauthorized"}), 401
        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

CONFIG_COLUMNS = (
    "transcription_api_key",
    "generation_endpoint",
    "generation_token",
    "synthesis_api_key",
    "synthesis_endpoint",
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS api_configurations (
    user_id TEXT PRIMARY KEY REFERENCES users(id),
    transcription_api_key TEXT NOT NULL DEFAULT '',
    generation_endpoint TEXT NOT NULL DEFAULT '',
    generation_token TEXT NOT NULL DEFAULT '',
    synthesis_api_key TEXT NOT NULL DEFAULT '',
    synthesis_endpoint TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS conversations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES users(id),
    user_message TEXT NOT NULL,
    bot_response TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """用户、每用户一条的 API 配置、对话历史"""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    # ---------- users ----------
    def create_user(self, email: str, password_hash: str) -> dict[str, Any]:
        user_id = str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO users (id, email, password_hash, created_at) VALUES (?,?,?,?)",
                (user_id, email, password_hash, _now()),
            )
        return {"id": user_id, "email": email}

    def find_user_by_email(self, email: str) -> Optional[sqlite3.Row]:
        with self._connect() as conn:
            return conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()

    def find_user(self, user_id: str) -> Optional[sqlite3.Row]:
        with self._connect() as conn:
            return conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

    # ---------- api_configurations ----------
    def get_configuration(self, user_id: str) -> Optional[dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM api_configurations WHERE user_id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

    def upsert_configuration(self, user_id: str, values: dict[str, str]) -> dict[str, Any]:
        """存在则更新，否则插入"""
        fields = {column: str(values.get(column) or "") for column in CONFIG_COLUMNS}
        now = _now()
        with self._connect() as conn:
            assignments = ", ".join(f"{column} = ?" for column in CONFIG_COLUMNS)
            cursor = conn.execute(
                f"UPDATE api_configurations SET {assignments}, updated_at = ? WHERE user_id = ?",
                (*fields.values(), now, user_id),
            )
            if cursor.rowcount == 0:
                columns = ", ".join(CONFIG_COLUMNS)
                placeholders = ", ".join("?" for _ in CONFIG_COLUMNS)
                conn.execute(
                    f"INSERT INTO api_configurations (user_id, {columns}, updated_at) VALUES (?, {placeholders}, ?)",
                    (user_id, *fields.values(), now),
                )
        return {"user_id": user_id, **fields, "updated_at": now}

    # ---------- conversations ----------
    def add_conversation(self, user_id: str, user_message: str, bot_response: str) -> dict[str, Any]:
        created_at = _now()
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO conversations (user_id, user_message, bot_response, created_at) VALUES (?,?,?,?)",
                (user_id, user_message, bot_response, created_at),
            )
            row_id = cursor.lastrowid
        return {
            "id": row_id,
            "user_id": user_id,
            "user_message": user_message,
            "bot_response": bot_response,
            "created_at": created_at,
        }

    def list_conversations(self, user_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM conversations WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
        return [dict(row) for row in rows]

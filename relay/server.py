"""
VoiceBot relay backend.

Forwards the three external calls (speech-to-text, text generation,
text-to-speech) so the desktop client never talks to those services
directly, and persists per-user API configuration and conversation
history.
"""

from __future__ import annotations

import logging
import os
import secrets
import sqlite3
from dataclasses import dataclass, field
from typing import Any

from dotenv import load_dotenv
from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS
from werkzeug.security import check_password_hash, generate_password_hash

from relay import upstream
from relay.auth import TokenIssuer, require_auth
from relay.db import CONFIG_COLUMNS, Database
from relay.upstream import UpstreamError

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


@dataclass
class RelaySettings:
    database_path: str = field(default_factory=lambda: os.environ.get("VOICEBOT_DB", "voicebot.db"))
    secret_key: str = field(default_factory=lambda: os.environ.get("VOICEBOT_SECRET_KEY") or secrets.token_hex(32))
    token_max_age: int = field(default_factory=lambda: _env_int("VOICEBOT_TOKEN_MAX_AGE", 30 * 24 * 3600))
    upstream_timeout: float = field(default_factory=lambda: float(os.environ.get("VOICEBOT_UPSTREAM_TIMEOUT", "60")))
    max_tokens: int = field(default_factory=lambda: _env_int("VOICEBOT_MAX_TOKENS", 500))


def redact(message: str, *credentials: Any) -> str:
    """错误信息中绝不回显凭据"""
    for value in credentials:
        if isinstance(value, str) and value:
            message = message.replace(value, "***")
    return message


def _error(message: str, status: int = 500) -> tuple[Response, int]:
    return jsonify({"error": message}), status


def _json_body() -> dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def create_app(settings: RelaySettings | None = None) -> Flask:
    settings = settings or RelaySettings()
    app = Flask(__name__)
    app.config["RELAY_SETTINGS"] = settings
    CORS(app, origins="*", allow_headers=CORS_ALLOW_HEADERS)

    db = Database(settings.database_path)
    tokens = TokenIssuer(settings.secret_key, settings.token_max_age)
    app.extensions["voicebot.db"] = db
    app.extensions["voicebot.tokens"] = tokens

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    # ======================================================================
    # RELAYS
    # ======================================================================

    @app.route("/functions/speech-to-text", methods=["POST"])
    def speech_to_text():
        data = _json_body()
        audio_data = data.get("audioData")
        api_key = data.get("apiKey")
        try:
            if not audio_data or not api_key:
                raise UpstreamError("Missing required parameters: audioData and apiKey are required")
            transcript = upstream.recognize_speech(audio_data, api_key, settings.upstream_timeout)
        except UpstreamError as e:
            message = redact(str(e), api_key)
            logger.error("Speech to text error: %s", message)
            return _error(message)
        logger.info("Transcribed %d chars", len(transcript))
        return jsonify({"transcript": transcript})

    @app.route("/functions/generate", methods=["POST"])
    def generate():
        data = _json_body()
        text = data.get("text")
        endpoint = data.get("endpoint")
        token = data.get("token")
        try:
            if not text or not endpoint or not token:
                raise UpstreamError("Missing required parameters: text, endpoint and token are required")
            reply, raw = upstream.generate_text(text, endpoint, token, settings.max_tokens, settings.upstream_timeout)
        except UpstreamError as e:
            message = redact(str(e), token)
            logger.error("Generation error: %s", message)
            return _error(message)
        logger.info("Generated %d chars", len(reply))
        return jsonify({"response": reply, "rawUpstreamResponse": raw})

    @app.route("/functions/text-to-speech", methods=["POST"])
    def text_to_speech():
        data = _json_body()
        text = data.get("text")
        endpoint = data.get("endpoint")
        api_key = data.get("apiKey")
        try:
            if not text or not endpoint or not api_key:
                raise UpstreamError("Missing required parameters: text, endpoint and apiKey are required")
            audio = upstream.synthesize_speech(text, endpoint, api_key, settings.upstream_timeout)
        except UpstreamError as e:
            message = redact(str(e), api_key)
            logger.error("Text to speech error: %s", message)
            return _error(message)
        return Response(
            audio,
            mimetype="audio/mpeg",
            headers={"Content-Disposition": 'attachment; filename="speech.mp3"'},
        )

    # ======================================================================
    # IDENTITY
    # ======================================================================

    def _credentials() -> tuple[str, str]:
        data = _json_body()
        return str(data.get("email") or "").strip().lower(), str(data.get("password") or "")

    def _session_payload(user_id: str, email: str) -> dict[str, Any]:
        return {"user": {"id": user_id, "email": email}, "accessToken": tokens.issue(user_id)}

    @app.route("/auth/signup", methods=["POST"])
    def signup():
        email, password = _credentials()
        if not email or not password:
            return _error("Please provide both email and password", 400)
        try:
            user = db.create_user(email, generate_password_hash(password))
        except sqlite3.IntegrityError:
            return _error("An account with this email already exists", 409)
        logger.info("New account: %s", user["id"])
        return jsonify(_session_payload(user["id"], user["email"])), 201

    @app.route("/auth/signin", methods=["POST"])
    def signin():
        email, password = _credentials()
        row = db.find_user_by_email(email) if email else None
        if row is None or not check_password_hash(row["password_hash"], password):
            return _error("Invalid email or password", 401)
        return jsonify(_session_payload(row["id"], row["email"]))

    # ======================================================================
    # PERSISTENCE
    # ======================================================================

    @app.route("/api/configurations/me", methods=["GET"])
    @require_auth
    def get_configuration():
        record = db.get_configuration(g.user_id)
        if record is None:
            return _error("No configuration stored", 404)
        return jsonify(record)

    @app.route("/api/configurations/me", methods=["PUT"])
    @require_auth
    def put_configuration():
        data = _json_body()
        values = {column: data.get(column) for column in CONFIG_COLUMNS}
        if any(value is not None and not isinstance(value, str) for value in values.values()):
            return _error("Configuration fields must be strings", 400)
        return jsonify(db.upsert_configuration(g.user_id, values))

    @app.route("/api/conversations", methods=["POST"])
    @require_auth
    def add_conversation():
        data = _json_body()
        user_message = data.get("userMessage")
        bot_response = data.get("botResponse")
        if not isinstance(user_message, str) or not isinstance(bot_response, str) or not bot_response:
            return _error("userMessage and botResponse are required", 400)
        return jsonify(db.add_conversation(g.user_id, user_message, bot_response)), 201

    @app.route("/api/conversations", methods=["GET"])
    @require_auth
    def list_conversations():
        return jsonify({"conversations": db.list_conversations(g.user_id)})

    return app


def main() -> None:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="[RELAY] %(message)s")
    app = create_app()
    host = os.environ.get("VOICEBOT_RELAY_HOST", "127.0.0.1")
    port = int(os.environ.get("VOICEBOT_RELAY_PORT", "8787"))
    logger.info("Starting relay on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=False)


if __name__ == "__main__":
    main()

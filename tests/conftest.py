from __future__ import annotations

import pytest

from api.auth import Session
from store.credentials import ApiConfig
from utils.config import AppConfig

_FULL_CONFIG = ApiConfig(
    transcription_api_key="stt-key",
    generation_endpoint="https://gen.example.com/invocations",
    generation_token="gen-token",
    synthesis_api_key="tts-key",
    synthesis_endpoint="https://tts.example.com/speak",
)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(data_dir=str(tmp_path), temp_dir=str(tmp_path / "temp"))


@pytest.fixture
def full_config() -> ApiConfig:
    return _FULL_CONFIG


@pytest.fixture
def session() -> Session:
    return Session(user_id="u-1", email="alice@example.com", access_token="token-1")

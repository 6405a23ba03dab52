from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from utils.paths import get_data_dir, get_temp_dir, require_writable_dir


def _get_config_path() -> Path:
    return get_data_dir() / "config.json"


@dataclass
class AppConfig:
    hotkey: str = "ctrl+shift+space"
    max_seconds: int = 120
    relay_url: str = "http://127.0.0.1:8787"
    data_dir: str = ""
    temp_dir: str = ""


def load_config() -> AppConfig:
    config_path = _get_config_path()
    if not config_path.exists():
        config = AppConfig()
        save_config(config)
    else:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        valid_keys = {f.name for f in fields(AppConfig)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        config = AppConfig(**filtered)
    # 环境变量覆盖中继地址（.env 由 main 预先加载）
    relay_url = os.getenv("VOICEBOT_RELAY_URL")
    if relay_url:
        config.relay_url = relay_url
    config.relay_url = config.relay_url.rstrip("/")
    config.data_dir = _resolve_dir(config.data_dir, get_data_dir(), "Data")
    config.temp_dir = _resolve_dir(config.temp_dir, get_temp_dir(), "Temp")
    return config


def _resolve_dir(value: str, fallback: Path, label: str) -> str:
    if not value:
        return str(fallback)
    path = Path(value)
    if not path.is_absolute():
        path = fallback.parent / path
    require_writable_dir(path, label)
    return str(path)


def save_config(config: AppConfig) -> None:
    config_path = _get_config_path()
    config_path.write_text(json.dumps(asdict(config), ensure_ascii=False, indent=2), encoding="utf-8")

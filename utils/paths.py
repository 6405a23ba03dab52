from __future__ import annotations

import os
import tempfile
from pathlib import Path

DEFAULT_DATA_DIR = Path.home() / ".voicebot"


class PathAccessError(RuntimeError):
    pass


def _probe_write(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryFile(dir=path):
            pass
    except OSError:
        return False
    return True


def require_writable_dir(path: Path, label: str) -> Path:
    if not _probe_write(path):
        raise PathAccessError(
            f"{label} directory is not writable: {path}. "
            "Set VOICEBOT_DATA_DIR to a writable location."
        )
    return path


def get_data_dir() -> Path:
    """VOICEBOT_DATA_DIR 优先，否则 ~/.voicebot"""
    override = os.getenv("VOICEBOT_DATA_DIR")
    return require_writable_dir(Path(override) if override else DEFAULT_DATA_DIR, "Data")


def get_temp_dir() -> Path:
    return require_writable_dir(get_data_dir() / "temp", "Temp")

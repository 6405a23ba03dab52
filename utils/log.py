from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from utils.paths import PathAccessError, get_data_dir

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """控制台 + 数据目录下的滚动日志文件"""
    root = logging.getLogger()
    if root.handlers:
        return
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(console)

    try:
        log_path = get_data_dir() / "voicebot.log"
    except PathAccessError:
        logging.warning("数据目录不可写，仅输出控制台日志")
        return
    file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(file_handler)

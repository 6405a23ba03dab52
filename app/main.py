from __future__ import annotations

import functools
import logging

from dotenv import load_dotenv

from api.auth import AuthClient
from api.client import RelayClient
from app.pipeline import Pipeline
from app.state import AppState
from store.config_store import ConfigStore
from store.local_cache import LocalCache
from store.remote import RemoteStore
from utils.config import load_config
from utils.log import setup_logging
from utils.notify import notify
from utils.paths import PathAccessError


def main() -> None:
    load_dotenv()
    setup_logging()

    try:
        config = load_config()
    except PathAccessError as exc:
        notify("数据目录不可写", str(exc))
        return
    logging.info("[Main] 中继地址: %s", config.relay_url)

    auth = AuthClient(config.relay_url)
    remote = RemoteStore(config.relay_url)
    store = ConfigStore(LocalCache(config.data_dir), remote, auth.current)
    state = AppState(config=config, api_config=store.load())

    pipeline_factory = functools.partial(
        Pipeline,
        relay=RelayClient(config.relay_url),
        history=remote,
    )

    from tray.tray_app import TrayApp

    TrayApp(state, store, auth, pipeline_factory).run()


if __name__ == "__main__":
    main()

from __future__ import annotations

from app.errors import PersistenceFailed
from store.config_store import ConfigStore
from store.credentials import ApiConfig, ConfigPatch
from store.local_cache import LocalCache


class FakeRemote:
    def __init__(self, stored=None, fail_fetch=False, fail_upsert=False):
        self.stored = stored
        self.fail_fetch = fail_fetch
        self.fail_upsert = fail_upsert
        self.upserts = []

    def fetch_config(self, session):
        if self.fail_fetch:
            raise PersistenceFailed("backend down")
        return self.stored

    def upsert_config(self, session, config):
        if self.fail_upsert:
            raise PersistenceFailed("backend down")
        self.upserts.append((session, config))
        self.stored = config


def test_signed_out_round_trip(tmp_path):
    remote = FakeRemote()
    store = ConfigStore(LocalCache(tmp_path), remote, lambda: None)
    saved = store.save(ConfigPatch(transcription_api_key="k1", generation_token="t1"))

    fresh = ConfigStore(LocalCache(tmp_path), remote, lambda: None)
    assert fresh.load() == saved
    assert saved.transcription_api_key == "k1"
    assert remote.upserts == []


def test_signed_in_prefers_remote_and_refreshes_cache(tmp_path, session, full_config):
    local = LocalCache(tmp_path)
    local.write(ApiConfig(transcription_api_key="stale"))
    store = ConfigStore(local, FakeRemote(stored=full_config), lambda: session)

    assert store.load() == full_config
    assert store.current == full_config
    assert local.read() == full_config


def test_remote_without_record_falls_back_to_cache(tmp_path, session):
    local = LocalCache(tmp_path)
    local.write(ApiConfig(generation_token="cached"))
    store = ConfigStore(local, FakeRemote(stored=None), lambda: session)
    assert store.load().generation_token == "cached"


def test_remote_failure_falls_back_to_cache(tmp_path, session):
    local = LocalCache(tmp_path)
    local.write(ApiConfig(generation_token="cached"))
    store = ConfigStore(local, FakeRemote(fail_fetch=True), lambda: session)
    assert store.load().generation_token == "cached"


def test_save_signed_in_upserts_full_record(tmp_path, session, full_config):
    remote = FakeRemote(stored=full_config)
    store = ConfigStore(LocalCache(tmp_path), remote, lambda: session)
    store.load()

    saved = store.save(ConfigPatch(generation_token="rotated"))

    assert remote.upserts == [(session, saved)]
    assert saved.transcription_api_key == full_config.transcription_api_key
    assert saved.generation_token == "rotated"


def test_save_keeps_local_copy_when_upsert_fails(tmp_path, session):
    local = LocalCache(tmp_path)
    store = ConfigStore(local, FakeRemote(fail_upsert=True), lambda: session)
    saved = store.save({"synthesis_api_key": "s"})
    assert local.read() == saved
    assert store.current.synthesis_api_key == "s"

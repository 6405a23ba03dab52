from __future__ import annotations

import json

from store.credentials import ApiConfig
from store.local_cache import LOCAL_CACHE_KEY, LocalCache


def test_missing_file_reads_empty(tmp_path):
    assert LocalCache(tmp_path).read() == ApiConfig()


def test_write_then_read(tmp_path, full_config):
    cache = LocalCache(tmp_path)
    cache.write(full_config)
    assert cache.path.name == f"{LOCAL_CACHE_KEY}.json"
    assert json.loads(cache.path.read_text(encoding="utf-8"))["transcriptionApiKey"] == "stt-key"
    assert LocalCache(tmp_path).read() == full_config


def test_corrupt_file_reads_empty(tmp_path):
    cache = LocalCache(tmp_path)
    cache.path.write_text("{not json", encoding="utf-8")
    assert cache.read() == ApiConfig()


def test_non_object_reads_empty(tmp_path):
    cache = LocalCache(tmp_path)
    cache.path.write_text("[1, 2]", encoding="utf-8")
    assert cache.read() == ApiConfig()

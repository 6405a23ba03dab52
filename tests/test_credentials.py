from __future__ import annotations

from store.credentials import ApiConfig, ConfigPatch, from_record, from_wire, is_configured, merge, to_record, to_wire


def test_merge_keeps_fields_not_in_patch(full_config):
    merged = merge(full_config, ConfigPatch(generation_token="new-token"))
    assert merged.generation_token == "new-token"
    assert merged.transcription_api_key == "stt-key"
    assert merged.synthesis_endpoint == full_config.synthesis_endpoint


def test_merge_empty_string_clears_field(full_config):
    merged = merge(full_config, {"synthesis_api_key": ""})
    assert merged.synthesis_api_key == ""
    assert not is_configured(merged)


def test_merge_mapping_ignores_unknown_keys():
    merged = merge(ApiConfig(), {"transcription_api_key": "k", "unknown": "x"})
    assert merged == ApiConfig(transcription_api_key="k")


def test_is_configured_requires_all_fields(full_config):
    assert is_configured(full_config)
    assert not is_configured(ApiConfig())
    assert not is_configured(merge(full_config, ConfigPatch(generation_endpoint="   ")))


def test_record_uses_snake_case_columns(full_config):
    record = to_record(full_config)
    assert record["transcription_api_key"] == "stt-key"
    assert from_record(record) == full_config


def test_from_record_treats_null_as_empty():
    config = from_record({"transcription_api_key": None, "generation_token": "t"})
    assert config.transcription_api_key == ""
    assert config.generation_token == "t"


def test_wire_format_uses_camel_case(full_config):
    wire = to_wire(full_config)
    assert set(wire) == {
        "transcriptionApiKey",
        "generationEndpoint",
        "generationToken",
        "synthesisApiKey",
        "synthesisEndpoint",
    }
    assert from_wire(wire) == full_config

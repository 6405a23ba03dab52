from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Mapping, Optional

# 本地缓存使用的字段名（与远端 snake_case 记录一一对应）
WIRE_NAMES = {
    "transcription_api_key": "transcriptionApiKey",
    "generation_endpoint": "generationEndpoint",
    "generation_token": "generationToken",
    "synthesis_api_key": "synthesisApiKey",
    "synthesis_endpoint": "synthesisEndpoint",
}


@dataclass(frozen=True)
class ApiConfig:
    transcription_api_key: str = ""
    generation_endpoint: str = ""
    generation_token: str = ""
    synthesis_api_key: str = ""
    synthesis_endpoint: str = ""


@dataclass(frozen=True)
class ConfigPatch:
    """部分更新；None 表示未提供该字段"""

    transcription_api_key: Optional[str] = None
    generation_endpoint: Optional[str] = None
    generation_token: Optional[str] = None
    synthesis_api_key: Optional[str] = None
    synthesis_endpoint: Optional[str] = None


def field_names() -> list[str]:
    return [f.name for f in fields(ApiConfig)]


def merge(base: ApiConfig, patch: ConfigPatch | Mapping[str, Any]) -> ApiConfig:
    """patch 中非 None 的字段覆盖 base，空字符串也会覆盖（即清空该项）"""
    if isinstance(patch, ConfigPatch):
        values = asdict(patch)
    else:
        values = {name: patch.get(name) for name in field_names()}
    updates = {name: str(value) for name, value in values.items() if value is not None}
    return replace(base, **updates)


def is_configured(config: ApiConfig) -> bool:
    return all(getattr(config, name).strip() for name in field_names())


def to_record(config: ApiConfig) -> dict[str, str]:
    return asdict(config)


def from_record(record: Mapping[str, Any]) -> ApiConfig:
    """远端记录 -> ApiConfig，缺失或为 null 的字段按空字符串处理"""
    return ApiConfig(**{name: str(record.get(name) or "") for name in field_names()})


def to_wire(config: ApiConfig) -> dict[str, str]:
    return {WIRE_NAMES[name]: value for name, value in asdict(config).items()}


def from_wire(data: Mapping[str, Any]) -> ApiConfig:
    return ApiConfig(**{name: str(data.get(wire) or "") for name, wire in WIRE_NAMES.items()})

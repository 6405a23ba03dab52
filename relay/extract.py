"""
Reply extraction for the generation relay.

Upstream generation services answer in different shapes. Each extractor
probes one shape; they are tried in order and the first non-empty string
wins.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

Extractor = Callable[[Any], Optional[str]]


def _field(name: str) -> Extractor:
    def extract(data: Any) -> Optional[str]:
        if isinstance(data, dict):
            value = data.get(name)
            if isinstance(value, str):
                return value
        return None

    extract.__name__ = f"field_{name}"
    return extract


def _first_choice(data: Any) -> Optional[dict]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


def choice_message_content(data: Any) -> Optional[str]:
    choice = _first_choice(data)
    if choice is None:
        return None
    message = choice.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    return None


def choice_text(data: Any) -> Optional[str]:
    choice = _first_choice(data)
    if choice is not None and isinstance(choice.get("text"), str):
        return choice["text"]
    return None


EXTRACTORS: list[Extractor] = [
    _field("response"),
    _field("result"),
    _field("output"),
    _field("answer"),
    _field("message"),
    choice_message_content,
    choice_text,
]


def extract_reply(data: Any, extractors: list[Extractor] = EXTRACTORS) -> str:
    for extractor in extractors:
        value = extractor(data)
        if value:
            return value
    return ""

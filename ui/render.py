from __future__ import annotations

import json
from typing import Iterable

from app.state import AppState, DebugSnapshot, Message
from audio.recorder import RecordingState


def format_transcript(messages: Iterable[Message]) -> str:
    blocks = []
    for message in messages:
        speaker = "You" if message.is_user else "Bot"
        blocks.append(f"{speaker}:\n{message.text}")
    return "\n\n".join(blocks)


def format_debug(snapshot: DebugSnapshot) -> str:
    return json.dumps(snapshot.as_dict(), ensure_ascii=False, indent=2, default=str)


def status_text(state: AppState) -> str:
    """与录音按钮下方的提示一致"""
    if state.recording_state is RecordingState.RECORDING:
        return "Listening..."
    if state.is_processing:
        return "Processing..."
    if state.is_playing:
        return "Speaking..."
    if state.recording_state is RecordingState.REQUESTING_PERMISSION:
        return "Requesting microphone access..."
    if state.recording_state is RecordingState.PERMISSION_DENIED:
        return "Microphone access denied. Click to retry."
    return "Tap to speak"

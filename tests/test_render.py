from __future__ import annotations

import json

from app.state import AppState
from audio.recorder import RecordingState
from ui.render import format_debug, format_transcript, status_text


def test_transcript_labels_speakers(app_config):
    state = AppState(config=app_config)
    state.add_message("hi", is_user=True)
    state.add_message("hello", is_user=False)
    assert format_transcript(state.snapshot_messages()) == "You:\nhi\n\nBot:\nhello"


def test_debug_uses_camel_case_keys(app_config):
    state = AppState(config=app_config)
    state.debug.transcription_result = "hi"
    state.debug.record_error("synthesis", "tts down")
    data = json.loads(format_debug(state.debug))
    assert data["transcriptionResult"] == "hi"
    assert data["errors"] == {"synthesis": "tts down"}


def test_status_text_follows_state(app_config):
    state = AppState(config=app_config)
    assert status_text(state) == "Tap to speak"
    state.recording_state = RecordingState.RECORDING
    assert status_text(state) == "Listening..."
    state.recording_state = RecordingState.IDLE
    state.is_processing = True
    assert status_text(state) == "Processing..."
    state.is_processing = False
    state.is_playing = True
    assert status_text(state) == "Speaking..."
    state.is_playing = False
    state.recording_state = RecordingState.PERMISSION_DENIED
    assert "denied" in status_text(state)

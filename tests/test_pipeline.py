from __future__ import annotations

import threading

import pytest

from api.llm import REDACTED, GenerationResult
from app.errors import ConfigurationMissing, GenerationFailed, PersistenceFailed, RelayError, TranscriptionFailed
from app.pipeline import Pipeline
from app.state import AppState
from audio.recorder import AudioUnit

AUDIO = AudioUnit(data=b"RIFF....", sample_rate=16000)


class FakeRelay:
    def __init__(self, transcript="hello there", reply="general kenobi", audio=b"mp3-bytes"):
        self.transcript = transcript
        self.reply = reply
        self.audio = audio
        self.calls = []

    def transcribe(self, audio, api_key):
        self.calls.append("transcribe")
        if isinstance(self.transcript, Exception):
            raise self.transcript
        return self.transcript

    def generate(self, text, endpoint, token):
        self.calls.append("generate")
        if isinstance(self.reply, Exception):
            raise self.reply
        return GenerationResult(text=self.reply, raw_response={"response": self.reply})

    def synthesize(self, text, endpoint, api_key):
        self.calls.append("synthesize")
        if isinstance(self.audio, Exception):
            raise self.audio
        return self.audio


class FakeHistory:
    def __init__(self, fail=False):
        self.fail = fail
        self.exchanges = []

    def record_exchange(self, session, user_message, bot_response):
        if self.fail:
            raise PersistenceFailed("backend down")
        self.exchanges.append((session.user_id, user_message, bot_response))


@pytest.fixture
def state(app_config, full_config):
    return AppState(config=app_config, api_config=full_config)


def test_full_exchange(state):
    played = []
    relay = FakeRelay()
    result = Pipeline(state, relay, on_audio=played.append).handle_utterance(AUDIO)

    assert relay.calls == ["transcribe", "generate", "synthesize"]
    messages = state.snapshot_messages()
    assert [(m.text, m.is_user) for m in messages] == [("hello there", True), ("general kenobi", False)]
    assert messages[0].id < messages[1].id
    assert result.audio == b"mp3-bytes"
    assert played == [b"mp3-bytes"]
    assert not state.is_processing
    assert state.debug.transcription_result == "hello there"
    assert state.debug.generation_response == "general kenobi"
    assert state.debug.generation_raw_request["token"] == REDACTED
    assert state.debug.errors == {}


def test_missing_configuration_fails_fast(app_config):
    state = AppState(config=app_config)
    relay = FakeRelay()
    with pytest.raises(ConfigurationMissing):
        Pipeline(state, relay).handle_utterance(AUDIO)
    assert relay.calls == []
    assert not state.is_processing


def test_empty_transcript_adds_no_messages(state):
    relay = FakeRelay(transcript="")
    with pytest.raises(TranscriptionFailed):
        Pipeline(state, relay).handle_utterance(AUDIO)
    assert state.snapshot_messages() == []
    assert relay.calls == ["transcribe"]
    assert not state.is_processing
    assert "transcription" in state.debug.errors


def test_transcription_relay_error(state):
    relay = FakeRelay(transcript=RelayError("quota exceeded", status=500))
    with pytest.raises(TranscriptionFailed, match="quota exceeded"):
        Pipeline(state, relay).handle_utterance(AUDIO)
    assert state.snapshot_messages() == []


def test_generation_failure_keeps_user_message(state):
    relay = FakeRelay(reply=RelayError("bad gateway", status=500, body={"error": "bad gateway"}))
    with pytest.raises(GenerationFailed):
        Pipeline(state, relay).handle_utterance(AUDIO)

    messages = state.snapshot_messages()
    assert [(m.text, m.is_user) for m in messages] == [("hello there", True)]
    assert state.debug.generation_raw_response == {"error": "bad gateway"}
    assert state.debug.generation_raw_request is not None
    assert not state.is_processing


def test_synthesis_failure_keeps_bot_message(state):
    played = []
    relay = FakeRelay(audio=RelayError("tts down", status=500))
    result = Pipeline(state, relay, on_audio=played.append).handle_utterance(AUDIO)

    assert [m.is_user for m in state.snapshot_messages()] == [True, False]
    assert result.audio is None
    assert played == []
    assert state.debug.errors["synthesis"] == "tts down"
    assert not state.is_processing


def test_playback_failure_is_recorded(state):
    def broken_output(audio):
        raise RuntimeError("no output device")

    Pipeline(state, FakeRelay(), on_audio=broken_output).handle_utterance(AUDIO)
    assert state.debug.errors["playback"] == "no output device"
    assert len(state.snapshot_messages()) == 2


def test_busy_state_rejects_new_utterance(state):
    state.is_playing = True
    relay = FakeRelay()
    assert Pipeline(state, relay).handle_utterance(AUDIO) is None
    assert relay.calls == []


def test_reentrant_call_is_rejected(state):
    release = threading.Event()
    entered = threading.Event()

    class SlowRelay(FakeRelay):
        def transcribe(self, audio, api_key):
            entered.set()
            release.wait(timeout=5)
            return super().transcribe(audio, api_key)

    pipeline = Pipeline(state, SlowRelay())
    worker = threading.Thread(target=pipeline.handle_utterance, args=(AUDIO,))
    worker.start()
    assert entered.wait(timeout=5)

    assert pipeline.handle_utterance(AUDIO) is None

    release.set()
    worker.join(timeout=5)
    assert [m.is_user for m in state.snapshot_messages()] == [True, False]


def test_history_recorded_when_signed_in(state, session):
    history = FakeHistory()
    Pipeline(state, FakeRelay(), history=history, current_session=lambda: session).handle_utterance(AUDIO)
    assert history.exchanges == [("u-1", "hello there", "general kenobi")]


def test_history_skipped_when_signed_out(state):
    history = FakeHistory()
    Pipeline(state, FakeRelay(), history=history).handle_utterance(AUDIO)
    assert history.exchanges == []


def test_history_failure_does_not_break_exchange(state, session):
    history = FakeHistory(fail=True)
    result = Pipeline(state, FakeRelay(), history=history, current_session=lambda: session).handle_utterance(AUDIO)
    assert result.bot_message.text == "general kenobi"


def test_debug_resets_between_utterances(state):
    pipeline = Pipeline(state, FakeRelay(audio=RelayError("tts down")))
    pipeline.handle_utterance(AUDIO)
    assert "synthesis" in state.debug.errors

    pipeline.relay = FakeRelay()
    pipeline.handle_utterance(AUDIO)
    assert state.debug.errors == {}
    assert len(state.snapshot_messages()) == 4

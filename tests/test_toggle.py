from __future__ import annotations

import threading
import time

from app.state import AppState
from audio.recorder import AudioUnit
from tray.toggle import RecordingToggle


class FakeRecorder:
    def __init__(self):
        self.is_recording = False
        self.starts = 0

    def start(self):
        self.starts += 1
        self.is_recording = True
        return True

    def stop(self):
        if not self.is_recording:
            return None
        self.is_recording = False
        return AudioUnit(data=b"RIFF")


class BlockingHandler:
    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.units = []

    def __call__(self, unit):
        self.units.append(unit)
        self.entered.set()
        self.release.wait(timeout=5)


def _toggle(app_config, handler, recorder=None):
    state = AppState(config=app_config)
    recorder = recorder or FakeRecorder()
    toggle = RecordingToggle(state, recorder, on_utterance=handler)
    return toggle, state, recorder


def test_start_and_stop_dispatches_utterance(app_config):
    handler = BlockingHandler()
    toggle, _, recorder = _toggle(app_config, handler)

    toggle.toggle()
    assert recorder.is_recording
    toggle.toggle()

    assert handler.entered.wait(timeout=5)
    assert not recorder.is_recording
    assert handler.units == [AudioUnit(data=b"RIFF")]
    handler.release.set()
    toggle.cancel()


def test_no_new_recording_before_pipeline_marks_processing(app_config):
    handler = BlockingHandler()
    toggle, state, recorder = _toggle(app_config, handler)
    toggle.toggle()
    toggle.toggle()
    assert handler.entered.wait(timeout=5)
    assert not state.is_processing

    toggle.toggle()

    assert recorder.starts == 1
    assert not recorder.is_recording
    assert toggle.pending

    handler.release.set()
    for _ in range(100):
        if not toggle.pending:
            break
        time.sleep(0.01)
    assert not toggle.pending

    toggle.toggle()
    assert recorder.starts == 2
    toggle.cancel()


def test_busy_rejects_start(app_config):
    toggle, state, recorder = _toggle(app_config, BlockingHandler())
    state.is_playing = True
    toggle.toggle()
    assert recorder.starts == 0


def test_stop_allowed_while_busy(app_config):
    handler = BlockingHandler()
    toggle, state, recorder = _toggle(app_config, handler)
    toggle.toggle()
    state.is_processing = True

    toggle.toggle()

    assert not recorder.is_recording
    assert handler.entered.wait(timeout=5)
    handler.release.set()


def test_empty_recording_is_not_dispatched(app_config):
    empties = []
    recorder = FakeRecorder()
    recorder.stop = lambda: setattr(recorder, "is_recording", False)
    state = AppState(config=app_config)
    toggle = RecordingToggle(state, recorder, on_utterance=lambda unit: None, on_empty=lambda: empties.append(1))

    toggle.toggle()
    toggle.toggle()

    assert empties == [1]
    assert not toggle.pending

from __future__ import annotations

import threading
from io import BytesIO

import numpy as np
import pytest
import soundfile as sf

from audio.player import Player, SoundDeviceOutput
from utils import sounds


class FakeOutput:
    def __init__(self):
        self.played = []
        self.stopped = 0
        self.finish = threading.Event()

    def play(self, data, sample_rate):
        self.played.append((len(data), sample_rate))

    def wait(self):
        self.finish.wait(timeout=5)

    def stop(self):
        self.stopped += 1
        self.finish.set()


def _wav_bytes(frames=1600, rate=16000):
    buffer = BytesIO()
    sf.write(buffer, np.zeros(frames, dtype=np.int16), rate, subtype="PCM_16", format="WAV")
    return buffer.getvalue()


def test_play_and_natural_end():
    output = FakeOutput()
    ended = threading.Event()
    states = []

    def on_state(playing):
        states.append(playing)
        if not playing:
            ended.set()

    player = Player(on_state_change=on_state, output=output)
    player.play(_wav_bytes())
    assert player.is_playing
    assert output.played == [(1600, 16000)]

    output.finish.set()
    assert ended.wait(timeout=5)
    assert not player.is_playing
    assert states == [True, False]


def test_stop_ends_playback_immediately():
    output = FakeOutput()
    player = Player(output=output)
    player.play(_wav_bytes())

    player.stop()

    assert not player.is_playing
    assert output.stopped == 1


def test_stop_when_idle_does_nothing():
    output = FakeOutput()
    Player(output=output).stop()
    assert output.stopped == 0


def test_undecodable_audio_raises():
    player = Player(output=FakeOutput())
    with pytest.raises(RuntimeError):
        player.play(b"not audio")
    assert not player.is_playing


class FakeOutputStream:
    def __init__(self, samplerate, channels, dtype, callback):
        self.samplerate = samplerate
        self.channels = channels
        self.callback = callback
        self.started = False
        self.stopped = False
        self.aborted = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def abort(self):
        self.aborted = True

    def close(self):
        self.closed = True

    def pull(self, frames):
        outdata = np.full((frames, self.channels), -1.0, dtype=np.float32)
        self.callback(outdata, frames, None, None)
        return outdata


class FakeOutputDevice:
    def __init__(self):
        self.streams = []

    def __call__(self, **kwargs):
        stream = FakeOutputStream(**kwargs)
        self.streams.append(stream)
        return stream


def test_output_stream_plays_to_the_end():
    device = FakeOutputDevice()
    output = SoundDeviceOutput(stream_factory=device)
    output.play(np.array([0.1, 0.2, 0.3], dtype=np.float32), 22050)
    stream = device.streams[-1]
    assert stream.started and stream.samplerate == 22050

    first = stream.pull(2)
    last = stream.pull(2)
    output.wait()

    assert first[:, 0].tolist() == pytest.approx([0.1, 0.2])
    assert last[:, 0].tolist() == pytest.approx([0.3, 0.0])
    assert stream.stopped and stream.closed
    assert not stream.aborted


def test_output_stop_aborts_stream():
    device = FakeOutputDevice()
    output = SoundDeviceOutput(stream_factory=device)
    output.play(np.zeros(16000, dtype=np.float32), 16000)

    output.stop()
    output.wait()

    stream = device.streams[-1]
    assert stream.aborted and stream.closed


def test_cue_does_not_interrupt_reply(monkeypatch):
    device = FakeOutputDevice()
    player = Player(output=SoundDeviceOutput(stream_factory=device))
    cues = []
    monkeypatch.setattr(sounds, "_sound_enabled", True)
    monkeypatch.setattr(sounds, "_play_cue", cues.append)

    player.play(_wav_bytes())
    sounds._beep_sequence([(500, 80), (500, 80)])

    reply = device.streams[-1]
    assert len(cues) == 1
    assert player.is_playing
    assert not reply.stopped and not reply.aborted and not reply.closed

    player.stop()
    assert reply.aborted
    assert not player.is_playing

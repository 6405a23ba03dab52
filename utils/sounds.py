from __future__ import annotations

import logging
import threading

import numpy as np

_sound_enabled = True
_SAMPLE_RATE = 44100


def _tone(freq: int, duration_ms: int, volume: float = 0.3) -> np.ndarray:
    t = np.linspace(0, duration_ms / 1000, int(_SAMPLE_RATE * duration_ms / 1000), False)
    return (np.sin(freq * t * 2 * np.pi) * volume).astype(np.float32)


def _play_cue(samples: np.ndarray) -> None:
    # 提示音走 sd.play 的全局流；回复播放用 audio.player 自己的输出流
    import sounddevice as sd

    sd.play(samples, _SAMPLE_RATE, blocking=True)


def _beep_sequence(pattern: list[tuple[int, int]]) -> None:
    """播放提示音序列，在后台线程执行避免阻塞"""
    global _sound_enabled
    if not _sound_enabled:
        return

    gap = np.zeros(int(_SAMPLE_RATE * 0.05), dtype=np.float32)
    parts: list[np.ndarray] = []
    for freq, duration in pattern:
        parts.extend([_tone(freq, duration), gap])
    try:
        _play_cue(np.concatenate(parts))
    except Exception as e:
        # 无输出设备或 PortAudio 不可用时静默降级
        logging.debug("提示音播放失败，已禁用: %s", e)
        _sound_enabled = False


def _play_async(pattern: list[tuple[int, int]]) -> None:
    t = threading.Thread(target=_beep_sequence, args=(pattern,), daemon=True)
    t.start()


def play_start_sound() -> None:
    """开始录音 - 单声短促"""
    _play_async([(1000, 120)])


def play_stop_sound() -> None:
    """停止录音 - 双声"""
    _play_async([(900, 100), (900, 100)])


def play_busy_sound() -> None:
    """忙碌 - 三声低频"""
    _play_async([(500, 80), (500, 80), (500, 80)])


def play_processing_sound() -> None:
    _play_async([(750, 120)])

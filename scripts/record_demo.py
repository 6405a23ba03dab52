from __future__ import annotations

import time
from pathlib import Path

from dotenv import load_dotenv

from api.client import RelayClient
from audio.recorder import Recorder
from store.local_cache import LocalCache
from utils.config import load_config


def main() -> None:
    """录 3 秒，经中继转写并打印结果"""
    load_dotenv()
    config = load_config()
    api_config = LocalCache(config.data_dir).read()
    if not api_config.transcription_api_key:
        print("本地未配置 Speech-to-Text API Key")
        return

    recorder = Recorder(max_seconds=5)
    print("开始录音 3 秒...")
    if not recorder.start():
        print("无法打开麦克风")
        return
    time.sleep(3)
    unit = recorder.stop()

    if unit is None:
        print("未获取到音频数据")
        return

    wav_path = Path(config.temp_dir) / "record_demo.wav"
    wav_path.write_bytes(unit.data)
    print(f"录音已保存: {wav_path}")

    text = RelayClient(config.relay_url).transcribe(unit, api_config.transcription_api_key)
    print("识别结果:")
    print(text)


if __name__ == "__main__":
    main()

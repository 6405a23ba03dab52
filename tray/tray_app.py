from __future__ import annotations

import logging
import threading
from typing import Callable

import pystray
from PIL import Image, ImageDraw

from api.auth import AuthClient
from app.errors import PermissionDenied, VoiceBotError
from app.pipeline import Pipeline
from app.state import AppState
from audio.player import Player
from audio.recorder import AudioUnit, Recorder, RecordingState
from hotkey.listener import HotkeyListener
from store.config_store import ConfigStore
from store.credentials import is_configured
from tray.toggle import RecordingToggle
from ui.auth import show_auth_window
from ui.conversation import show_conversation_window
from ui.settings import show_settings_window
from utils.notify import notify, notify_error
from utils.sounds import play_processing_sound

_ICON_COLORS = {
    "idle": "#35a853",
    "recording": "#d93025",
    "processing": "#f9ab00",
    "playing": "#1a73e8",
    "denied": "#9e9e9e",
}


class TrayApp:
    def __init__(
        self,
        state: AppState,
        store: ConfigStore,
        auth: AuthClient,
        pipeline_factory: Callable[..., Pipeline],
    ) -> None:
        self.state = state
        self.store = store
        self.auth = auth
        self._window_open = False

        self._player = Player(on_state_change=self._on_playing_changed)
        self._recorder = Recorder(
            max_seconds=state.config.max_seconds,
            on_error=self._on_recorder_error,
            on_state_change=self._on_recording_state,
        )
        self.pipeline = pipeline_factory(
            state=state,
            on_audio=self._player.play,
            on_change=self._update_icon,
            current_session=auth.current,
        )
        self._toggle = RecordingToggle(
            state,
            self._recorder,
            on_utterance=self._process_recording,
            on_empty=lambda: notify("未录到声音", "请重试"),
        )
        self._hotkey = HotkeyListener(self.toggle_recording)

        self._icons = {name: _create_icon(color) for name, color in _ICON_COLORS.items()}
        self.icon = pystray.Icon(
            "voicebot",
            self._icons["idle"],
            "Voice Assistant",
            menu=pystray.Menu(
                pystray.MenuItem(
                    "开始/停止录音",
                    self._on_toggle,
                    default=True,
                    enabled=lambda item: self._can_toggle(),
                ),
                pystray.MenuItem(
                    "停止播放",
                    self._on_stop_audio,
                    enabled=lambda item: self.state.is_playing,
                ),
                pystray.MenuItem("对话记录", self._on_conversation),
                pystray.MenuItem("API 设置", self._on_settings),
                pystray.MenuItem(
                    lambda item: "退出登录" if self.auth.current() else "登录",
                    self._on_auth,
                ),
                pystray.MenuItem("退出", self._on_exit),
            ),
        )

    def run(self) -> None:
        logging.info("[TrayApp] 应用启动...")
        try:
            self._hotkey.start(self.state.config.hotkey)
        except Exception as exc:
            logging.exception("[TrayApp] 注册热键失败")
            notify("快捷键错误", f"注册热键失败: {exc}")

        # 启动时即请求麦克风权限，探测后立即释放设备
        threading.Thread(target=self._recorder.probe_permission, daemon=True).start()

        if not is_configured(self.state.api_config):
            notify("需要配置", "请在托盘菜单 -> API 设置 中填写各项 API 配置")

        self.icon.run()

    # ---------- recording ----------
    def toggle_recording(self) -> None:
        self._toggle.toggle()

    def _can_toggle(self) -> bool:
        if self._recorder.is_recording:
            return True
        return not (self.state.is_busy or self._toggle.pending)

    def _process_recording(self, unit: AudioUnit) -> None:
        play_processing_sound()
        try:
            if self.pipeline.handle_utterance(unit) is None:
                notify("正在处理", "上一条录音尚未处理完，本次录音已丢弃")
        except VoiceBotError as exc:
            notify_error(exc)
        except Exception as exc:
            logging.exception("[TrayApp] 处理录音失败")
            notify_error(exc)
        finally:
            self._update_icon()
            self._refresh_menu()

    def _on_recording_state(self, recording_state: RecordingState) -> None:
        self.state.recording_state = recording_state
        self._update_icon()

    def _on_recorder_error(self, exc: Exception) -> None:
        if isinstance(exc, PermissionDenied):
            notify("无法使用麦克风", "请在系统设置中允许麦克风访问，然后再次点击录音重试")
        else:
            notify_error(exc)

    def _on_playing_changed(self, playing: bool) -> None:
        self.state.is_playing = playing
        self._update_icon()
        self._refresh_menu()

    # ---------- menu ----------
    def _on_toggle(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        self.toggle_recording()

    def _on_stop_audio(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        self._player.stop()

    def _on_conversation(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        self._open_window(lambda: show_conversation_window(self.state, self._player.stop))

    def _on_settings(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        if self._recorder.is_recording or self.state.is_processing or self._toggle.pending:
            notify("无法设置", "正在录音或处理中")
            return
        self._open_window(self._run_settings)

    def _on_auth(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        if self.auth.current():
            self.auth.sign_out()
            self._reload_config()
            notify("已退出登录", "API 配置仅保存在本机")
            self._refresh_menu()
            return
        self._open_window(self._run_sign_in)

    def _on_exit(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        self._hotkey.stop()
        self._toggle.cancel()
        try:
            self._recorder.close()
        except Exception:
            logging.exception("[TrayApp] 释放麦克风失败")
        self._player.stop()
        icon.stop()

    # ---------- windows ----------
    def _open_window(self, show: Callable[[], None]) -> None:
        """同一时间只开一个 Tk 窗口"""
        if self._window_open:
            logging.info("[TrayApp] 已有窗口打开，跳过")
            return
        self._window_open = True

        def _runner() -> None:
            try:
                show()
            except Exception:
                logging.exception("[TrayApp] 窗口出错")
            finally:
                self._window_open = False

        threading.Thread(target=_runner, daemon=True).start()

    def _run_settings(self) -> None:
        current = self._reload_config()
        patch = show_settings_window(current, signed_in=self.auth.current() is not None)
        if patch is None:
            return
        self.state.api_config = self.store.save(patch)
        notify("已保存", "API 配置保存成功")
        if not is_configured(self.state.api_config):
            notify("配置不完整", "仍有 API 配置项为空")

    def _run_sign_in(self) -> None:
        session = show_auth_window(self.auth)
        if session is None:
            return
        notify("登录成功", session.email)
        self._reload_config()
        self._refresh_menu()

    def _reload_config(self):
        self.state.api_config = self.store.load()
        return self.state.api_config

    # ---------- icon ----------
    def _update_icon(self) -> None:
        """不获取锁，可能在锁内被调用"""
        if self.state.recording_state is RecordingState.RECORDING:
            name = "recording"
        elif self.state.is_processing:
            name = "processing"
        elif self.state.is_playing:
            name = "playing"
        elif self.state.recording_state is RecordingState.PERMISSION_DENIED:
            name = "denied"
        else:
            name = "idle"
        self.icon.icon = self._icons[name]

    def _refresh_menu(self) -> None:
        try:
            self.icon.update_menu()
        except Exception as e:
            logging.debug("[TrayApp] 刷新菜单失败: %s", e)


def _create_icon(color: str) -> Image.Image:
    """纯色圆形图标"""
    size = 64
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.ellipse((8, 8, size - 8, size - 8), fill=color)
    return image

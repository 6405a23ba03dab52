from __future__ import annotations

import logging
import tkinter as tk
from tkinter import scrolledtext
from typing import Callable

from app.state import AppState
from ui.render import format_debug, format_transcript, status_text
from ui.settings import center_window

_REFRESH_MS = 300


def show_conversation_window(state: AppState, on_stop_audio: Callable[[], None]) -> None:
    """对话记录 + 调试面板，定时刷新直到窗口关闭"""
    try:
        root = tk.Tk()
        root.title("Voice Assistant")
        root.geometry("560x640")
        _build_conversation_ui(root, state, on_stop_audio)
        center_window(root)
        root.mainloop()
    except tk.TclError:
        logging.exception("[Conversation] 对话窗口出错")


def _build_conversation_ui(root: tk.Tk, state: AppState, on_stop_audio: Callable[[], None]) -> None:
    status_var = tk.StringVar(value=status_text(state))
    tk.Label(root, textvariable=status_var, fg="#555555").pack(anchor="w", padx=10, pady=(10, 4))

    transcript = scrolledtext.ScrolledText(root, height=18, wrap="word", state="disabled")
    transcript.pack(fill="both", expand=True, padx=10)

    stop_button = tk.Button(root, text="停止播放", command=on_stop_audio, state="disabled")
    stop_button.pack(anchor="e", padx=10, pady=6)

    show_debug = tk.BooleanVar(value=False)
    debug_frame = tk.Frame(root)
    debug_text = scrolledtext.ScrolledText(debug_frame, height=12, wrap="none", state="disabled")
    debug_text.pack(fill="both", expand=True)

    def toggle_debug() -> None:
        if show_debug.get():
            debug_frame.pack(fill="both", expand=True, padx=10, pady=(0, 10))
        else:
            debug_frame.pack_forget()

    tk.Checkbutton(root, text="调试信息", variable=show_debug, command=toggle_debug).pack(anchor="w", padx=10)

    rendered = {"transcript": None, "debug": None}

    def _replace(widget: scrolledtext.ScrolledText, text: str) -> None:
        widget.configure(state="normal")
        widget.delete("1.0", "end")
        widget.insert("end", text)
        widget.configure(state="disabled")
        widget.see("end")

    def refresh() -> None:
        status_var.set(status_text(state))
        stop_button.configure(state="normal" if state.is_playing else "disabled")

        text = format_transcript(state.snapshot_messages())
        if text != rendered["transcript"]:
            rendered["transcript"] = text
            _replace(transcript, text)

        if show_debug.get():
            debug = format_debug(state.debug)
            if debug != rendered["debug"]:
                rendered["debug"] = debug
                _replace(debug_text, debug)

        root.after(_REFRESH_MS, refresh)

    refresh()

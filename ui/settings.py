from __future__ import annotations

import logging
import tkinter as tk
from tkinter import messagebox
from typing import Optional

from store.credentials import ApiConfig, ConfigPatch

_FIELDS = [
    ("transcription_api_key", "Speech-to-Text API Key", True),
    ("generation_endpoint", "Generation Endpoint", False),
    ("generation_token", "Generation API Token", True),
    ("synthesis_api_key", "Text-to-Speech API Key", True),
    ("synthesis_endpoint", "Text-to-Speech Endpoint", False),
]


def show_settings_window(config: ApiConfig, signed_in: bool) -> Optional[ConfigPatch]:
    """显示 API 配置窗口；保存返回 ConfigPatch，取消返回 None

    在工作线程中创建独立的 Tk 实例并运行 mainloop()。
    """
    logging.info("[Settings] 创建设置窗口...")
    result: dict[str, Optional[ConfigPatch]] = {"patch": None}

    try:
        root = tk.Tk()
        root.title("API Configuration")
        root.resizable(False, False)
        _build_settings_ui(root, config, signed_in, result)
        center_window(root)
        root.mainloop()
    except tk.TclError:
        logging.exception("[Settings] 设置窗口出错")

    return result["patch"]


def _build_settings_ui(root: tk.Tk, config: ApiConfig, signed_in: bool, result: dict) -> None:
    row = 0
    if not signed_in:
        tk.Label(
            root,
            text="未登录：API Key 仅保存在本机。登录后会同步到你的账户。",
            fg="#8a6d00",
            wraplength=420,
            justify="left",
        ).grid(row=row, column=0, columnspan=3, sticky="w", padx=10, pady=(10, 4))
        row += 1

    variables: dict[str, tk.StringVar] = {}
    entries: list[tk.Entry] = []
    for name, label, secret in _FIELDS:
        tk.Label(root, text=label).grid(row=row, column=0, sticky="w", padx=10, pady=6)
        var = tk.StringVar(value=getattr(config, name))
        entry = tk.Entry(root, textvariable=var, width=44, show="*" if secret else "")
        entry.grid(row=row, column=1, padx=10, pady=6)
        if secret:
            entries.append(entry)
        variables[name] = var
        row += 1

    show_keys_var = tk.BooleanVar(value=False)

    def toggle_key_visibility() -> None:
        for entry in entries:
            entry.configure(show="" if show_keys_var.get() else "*")

    tk.Checkbutton(root, text="显示密钥", variable=show_keys_var, command=toggle_key_visibility).grid(
        row=row, column=1, sticky="w", padx=10
    )
    row += 1

    def on_save() -> None:
        values = {name: var.get().strip() for name, var in variables.items()}
        for name in ("generation_endpoint", "synthesis_endpoint"):
            endpoint = values[name]
            if endpoint and not endpoint.startswith(("http://", "https://")):
                messagebox.showerror("错误", f"{name} 必须以 http:// 或 https:// 开头", parent=root)
                return
        result["patch"] = ConfigPatch(**values)
        root.destroy()

    def on_cancel() -> None:
        root.destroy()

    tk.Button(root, text="保存", command=on_save, width=10).grid(row=row, column=1, padx=10, pady=10, sticky="e")
    tk.Button(root, text="取消", command=on_cancel, width=10).grid(row=row, column=2, padx=10, pady=10, sticky="e")


def center_window(root: tk.Misc) -> None:
    root.update_idletasks()
    width = root.winfo_width()
    height = root.winfo_height()
    screen_width = root.winfo_screenwidth()
    screen_height = root.winfo_screenheight()
    x = max((screen_width - width) // 2, 0)
    y = max((screen_height - height) // 2, 0)
    root.geometry(f"{width}x{height}+{x}+{y}")

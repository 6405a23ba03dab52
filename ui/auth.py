from __future__ import annotations

import logging
import threading
import tkinter as tk
from tkinter import messagebox
from typing import Optional

from api.auth import AuthClient, Session
from app.errors import RelayError
from ui.settings import center_window


def show_auth_window(auth: AuthClient) -> Optional[Session]:
    """登录/注册窗口；成功返回 Session"""
    result: dict[str, Optional[Session]] = {"session": None}
    try:
        root = tk.Tk()
        root.title("Sign In")
        root.resizable(False, False)
        _build_auth_ui(root, auth, result)
        center_window(root)
        root.mainloop()
    except tk.TclError:
        logging.exception("[Auth] 登录窗口出错")
    return result["session"]


def _build_auth_ui(root: tk.Tk, auth: AuthClient, result: dict) -> None:
    is_sign_up = tk.BooleanVar(value=False)

    tk.Label(root, text="Email").grid(row=0, column=0, sticky="w", padx=10, pady=6)
    email_var = tk.StringVar()
    tk.Entry(root, textvariable=email_var, width=36).grid(row=0, column=1, padx=10, pady=6)

    tk.Label(root, text="Password").grid(row=1, column=0, sticky="w", padx=10, pady=6)
    password_var = tk.StringVar()
    tk.Entry(root, textvariable=password_var, width=36, show="*").grid(row=1, column=1, padx=10, pady=6)

    submit = tk.Button(root, text="登录", width=12)
    submit.grid(row=2, column=1, sticky="e", padx=10, pady=10)

    def toggle_mode() -> None:
        is_sign_up.set(not is_sign_up.get())
        root.title("Create Account" if is_sign_up.get() else "Sign In")
        submit.configure(text="注册" if is_sign_up.get() else "登录")
        switch.configure(text="已有账户？登录" if is_sign_up.get() else "没有账户？注册")

    switch = tk.Button(root, text="没有账户？注册", relief="flat", fg="#1a73e8", command=toggle_mode)
    switch.grid(row=2, column=0, sticky="w", padx=10, pady=10)

    def on_submit() -> None:
        email = email_var.get().strip()
        password = password_var.get()
        if not email or not password:
            messagebox.showerror("错误", "请填写邮箱和密码", parent=root)
            return
        submit.configure(state="disabled", text="处理中...")

        def _worker() -> None:
            try:
                if is_sign_up.get():
                    session = auth.sign_up(email, password)
                else:
                    session = auth.sign_in(email, password)
            except (RelayError, ValueError) as exc:
                message = str(exc)
                root.after(0, lambda: _failed(message))
                return
            result["session"] = session
            root.after(0, root.destroy)

        threading.Thread(target=_worker, daemon=True).start()

    def _failed(message: str) -> None:
        submit.configure(state="normal", text="注册" if is_sign_up.get() else "登录")
        messagebox.showerror("认证失败", message, parent=root)

    submit.configure(command=on_submit)

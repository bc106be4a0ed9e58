from __future__ import annotations

import logging
from tkinter import StringVar
from typing import Any, Callable

import customtkinter as ctk

from checkin_app.config.settings import Settings, save_kiosk_settings
from checkin_app.config.user_settings_store import DEFAULT_SETTINGS, UserSettingsStore
from checkin_app.ui.theme import (
    KIOSK_ACCENT,
    KIOSK_ACCENT_HOVER,
    KIOSK_BG,
    KIOSK_BORDER,
    KIOSK_CARD,
    KIOSK_ERROR,
    KIOSK_SURFACE,
    KIOSK_TEXT,
    KIOSK_TEXT_MUTED,
    TONE_COLORS,
)
from checkin_app.utils import FormValidationError, validate_kiosk_settings

logger = logging.getLogger(__name__)


class KioskSettingsView(ctk.CTkFrame):
    """Settings form for the API server, live updates, timeout and locale."""

    def __init__(
        self,
        master: Any,
        *,
        store: UserSettingsStore,
        on_settings_saved: Callable[[Settings], None] | None = None,
    ) -> None:
        super().__init__(master, fg_color=KIOSK_BG)
        self._store = store
        self._on_settings_saved = on_settings_saved

        self._api_url_var = StringVar()
        self._socket_url_var = StringVar()
        self._timeout_var = StringVar()
        self._locale_var = StringVar()
        self._field_errors: dict[str, ctk.CTkLabel] = {}
        self._status_label: ctk.CTkLabel | None = None

        self._build_layout()
        self.refresh()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def refresh(self) -> None:
        """Reload the form inputs from the underlying store."""

        data = self._store.data
        self._api_url_var.set(str(data.get("api_base_url") or DEFAULT_SETTINGS["api_base_url"]))
        self._socket_url_var.set(str(data.get("socket_url") or ""))
        self._timeout_var.set(f"{float(data.get('request_timeout_seconds') or 15.0):g}")
        self._locale_var.set(str(data.get("locale") or ""))
        self._clear_errors()
        self._set_status("")

    # ------------------------------------------------------------------
    # Layout helpers
    # ------------------------------------------------------------------
    def _build_layout(self) -> None:
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=1)

        container = ctk.CTkFrame(self, fg_color=KIOSK_CARD, corner_radius=16)
        container.grid(row=0, column=0, padx=40, pady=30, sticky="nsew")
        container.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(
            container,
            text="Kiosk settings",
            font=ctk.CTkFont(size=28, weight="bold"),
            text_color=KIOSK_TEXT,
        ).grid(row=0, column=0, sticky="w", padx=24, pady=(24, 4))
        ctk.CTkLabel(
            container,
            text=(
                "Point the kiosk at your church's check-in server. Environment variables such as "
                "CHECKIN_API_URL still take precedence over these values."
            ),
            justify="left",
            wraplength=560,
            text_color=KIOSK_TEXT_MUTED,
        ).grid(row=1, column=0, sticky="w", padx=24, pady=(0, 16))

        row = 2
        row = self._build_field(container, row, "api_base_url", "API URL", self._api_url_var)
        row = self._build_field(
            container, row, "socket_url", "Live update URL (blank: API host)", self._socket_url_var
        )
        row = self._build_field(
            container, row, "request_timeout_seconds", "Request timeout (seconds)", self._timeout_var
        )
        row = self._build_field(container, row, "locale", "Locale (blank: system)", self._locale_var)

        buttons = ctk.CTkFrame(container, fg_color=KIOSK_CARD)
        buttons.grid(row=row, column=0, sticky="ew", padx=24, pady=(12, 8))
        buttons.grid_columnconfigure(0, weight=1)
        ctk.CTkButton(
            buttons,
            text="Reset to defaults",
            width=160,
            fg_color=KIOSK_SURFACE,
            hover_color=KIOSK_BORDER,
            text_color=KIOSK_TEXT,
            command=self._handle_reset,
        ).grid(row=0, column=1, padx=(0, 8))
        ctk.CTkButton(
            buttons,
            text="Save changes",
            width=160,
            fg_color=KIOSK_ACCENT,
            hover_color=KIOSK_ACCENT_HOVER,
            text_color=KIOSK_TEXT,
            command=self._handle_save,
        ).grid(row=0, column=2)

        self._status_label = ctk.CTkLabel(container, text="", text_color=KIOSK_TEXT_MUTED, wraplength=560)
        self._status_label.grid(row=row + 1, column=0, sticky="w", padx=24, pady=(0, 24))

    def _build_field(self, parent: ctk.CTkFrame, row: int, key: str, label: str, variable: StringVar) -> int:
        ctk.CTkLabel(parent, text=label, text_color=KIOSK_TEXT).grid(
            row=row, column=0, sticky="w", padx=24, pady=(4, 2)
        )
        ctk.CTkEntry(
            parent,
            textvariable=variable,
            fg_color=KIOSK_BG,
            border_color=KIOSK_BORDER,
            text_color=KIOSK_TEXT,
        ).grid(row=row + 1, column=0, sticky="ew", padx=24)
        error_label = ctk.CTkLabel(parent, text="", text_color=KIOSK_ERROR, font=ctk.CTkFont(size=12))
        error_label.grid(row=row + 2, column=0, sticky="w", padx=24)
        self._field_errors[key] = error_label
        return row + 3

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def _handle_reset(self) -> None:
        self._api_url_var.set(str(DEFAULT_SETTINGS["api_base_url"]))
        self._socket_url_var.set("")
        self._timeout_var.set(f"{DEFAULT_SETTINGS['request_timeout_seconds']:g}")
        self._locale_var.set("")
        self._clear_errors()
        self._set_status("Fields reset. Save to persist the changes.")

    def _handle_save(self) -> None:
        self._clear_errors()
        try:
            values = validate_kiosk_settings(
                self._api_url_var.get(),
                self._socket_url_var.get(),
                self._timeout_var.get(),
                self._locale_var.get(),
            )
        except FormValidationError as exc:
            for key, message in exc.errors.items():
                self._field_errors[key].configure(text=message)
            self._set_status("Please fix the highlighted fields.", tone="warning")
            return

        try:
            updated = save_kiosk_settings(**values)
        except OSError as exc:
            logger.warning("Could not save kiosk settings: %s", exc)
            self._set_status(f"Could not save settings: {exc}", tone="error")
            return

        self.refresh()
        self._set_status("Settings saved.", tone="success")
        if self._on_settings_saved is not None:
            self._on_settings_saved(updated)

    def _clear_errors(self) -> None:
        for label in self._field_errors.values():
            label.configure(text="")

    def _set_status(self, message: str, *, tone: str = "info") -> None:
        if self._status_label is not None:
            self._status_label.configure(text=message, text_color=TONE_COLORS.get(tone, KIOSK_TEXT_MUTED))

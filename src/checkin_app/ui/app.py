from __future__ import annotations

import logging
import threading
from tkinter import StringVar
from typing import Any

import customtkinter as ctk
from PIL import Image

from checkin_app.config.settings import Settings, current_settings, user_settings_store
from checkin_app.models import ScanCountUpdate
from checkin_app.services import (
    CheckInSession,
    LiveUpdateChannel,
    LiveUpdateError,
    ProgramQRScanner,
    ScanApiClient,
    detect_environment,
)
from checkin_app.ui.checkin_view import CheckInView
from checkin_app.ui.settings_view import KioskSettingsView
from checkin_app.ui.theme import (
    KIOSK_ACCENT,
    KIOSK_ACCENT_HOVER,
    KIOSK_BG,
    KIOSK_SURFACE,
    KIOSK_TEXT,
    TONE_COLORS,
)
from checkin_app.utils import InvalidProgramLink, parse_program_link

logger = logging.getLogger(__name__)

PREVIEW_HEIGHT = 180


class CheckInApp:
    def __init__(self, program_link: str | None = None) -> None:
        ctk.set_appearance_mode("dark")

        self._root = ctk.CTk()
        self._root.title(current_settings().app_name)
        self._root.geometry("900x760")
        self._root.minsize(640, 560)
        self._root.configure(fg_color=KIOSK_BG)
        self._root.grid_rowconfigure(1, weight=1)
        self._root.grid_columnconfigure(0, weight=1)

        self._client, self._live_channel = self._connect(current_settings())
        self._live_program_id: str | None = None
        self._scanner = ProgramQRScanner(camera_index=current_settings().qr_camera_index)

        self._link_var = StringVar(value=program_link or "")
        self._status_var = StringVar(value="")
        self._live_count_var = StringVar(value="")

        self._build_header()
        self._view = CheckInView(self._root, self._create_session)
        self._view.grid(row=1, column=0, sticky="nsew")
        self._settings_view = KioskSettingsView(
            self._root,
            store=user_settings_store,
            on_settings_saved=self._handle_settings_saved,
        )
        self._settings_view.grid(row=1, column=0, sticky="nsew")
        self._settings_view.grid_remove()

        self._root.protocol("WM_DELETE_WINDOW", self._on_close)
        if program_link:
            self._root.after(0, self._handle_open)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _build_header(self) -> None:
        header = ctk.CTkFrame(self._root, fg_color=KIOSK_SURFACE, corner_radius=0)
        header.grid(row=0, column=0, sticky="ew")
        header.grid_columnconfigure(0, weight=1)

        ctk.CTkEntry(
            header,
            textvariable=self._link_var,
            placeholder_text="Program link or id",
        ).grid(row=0, column=0, padx=(16, 8), pady=12, sticky="ew")
        ctk.CTkButton(
            header,
            text="Open",
            width=90,
            command=self._handle_open,
            fg_color=KIOSK_ACCENT,
            hover_color=KIOSK_ACCENT_HOVER,
            text_color=KIOSK_TEXT,
        ).grid(row=0, column=1, padx=4, pady=12)
        self._scan_button = ctk.CTkButton(
            header,
            text="Scan QR",
            width=110,
            command=self._handle_toggle_scanner,
        )
        self._scan_button.grid(row=0, column=2, padx=4, pady=12)
        self._settings_button = ctk.CTkButton(
            header,
            text="Settings",
            width=100,
            command=self._handle_toggle_settings,
        )
        self._settings_button.grid(row=0, column=3, padx=(4, 16), pady=12)

        self._status_label = ctk.CTkLabel(header, textvariable=self._status_var, text_color=TONE_COLORS["info"])
        self._status_label.grid(row=1, column=0, padx=16, pady=(0, 8), sticky="w")
        ctk.CTkLabel(header, textvariable=self._live_count_var, text_color=KIOSK_TEXT).grid(
            row=1, column=1, columnspan=3, padx=16, pady=(0, 8), sticky="e"
        )

        self._preview_image: ctk.CTkImage | None = None
        self._preview_label = ctk.CTkLabel(header, text="Waiting for camera...", text_color=KIOSK_TEXT)
        self._preview_label.grid(row=2, column=0, columnspan=4, padx=16, pady=(0, 12))
        self._preview_label.grid_remove()

    def _set_status(self, message: str, tone: str = "info") -> None:
        self._status_var.set(message)
        self._status_label.configure(text_color=TONE_COLORS.get(tone, TONE_COLORS["info"]))

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    @staticmethod
    def _connect(config: Settings) -> tuple[ScanApiClient, LiveUpdateChannel]:
        client = ScanApiClient(config.api_base_url, timeout=config.request_timeout_seconds)
        return client, LiveUpdateChannel(config.socket_url)

    def _handle_toggle_settings(self) -> None:
        if self._settings_view.winfo_ismapped():
            self._settings_view.grid_remove()
            self._view.grid()
            self._settings_button.configure(text="Settings")
            return
        self._view.grid_remove()
        self._settings_view.refresh()
        self._settings_view.grid()
        self._settings_button.configure(text="Back")

    def _handle_settings_saved(self, new_settings: Settings) -> None:
        old_client, old_channel = self._client, self._live_channel
        self._client, self._live_channel = self._connect(new_settings)
        self._root.title(new_settings.app_name)
        logger.info("Reconnected to %s", new_settings.api_base_url)

        def _close_old() -> None:
            old_channel.close()
            old_client.close()

        threading.Thread(target=_close_old, daemon=True).start()

        # The new channel has no rooms yet, so nothing needs leaving.
        program_id, self._live_program_id = self._live_program_id, None
        if program_id is not None:
            self._follow_live_count(program_id)
        self._set_status(f"Using {new_settings.api_base_url}", tone="success")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def _create_session(self, program_id: str, on_change) -> CheckInSession:
        # Tk must only be queried from the UI thread; the session calls the provider from a worker.
        width = self._root.winfo_screenwidth()
        height = self._root.winfo_screenheight()

        def _environment():
            return detect_environment(
                width,
                height,
                app_name=current_settings().app_name,
                app_version=current_settings().app_version,
                locale=current_settings().locale,
            )

        return CheckInSession(program_id, self._client, _environment, on_change=on_change)

    def _handle_open(self) -> None:
        self._open_program(self._link_var.get())

    def _open_program(self, raw_link: str) -> None:
        try:
            program_id = parse_program_link(raw_link)
        except InvalidProgramLink as exc:
            self._set_status(str(exc), tone="warning")
            return

        self._set_status(f"Program {program_id}")
        self._view.open_program(program_id)
        self._follow_live_count(program_id)

    def _follow_live_count(self, program_id: str) -> None:
        previous = self._live_program_id
        self._live_program_id = program_id
        self._live_count_var.set("")

        def _on_update(update: ScanCountUpdate) -> None:
            self._root.after(0, lambda: self._show_live_count(update))

        def _subscribe() -> None:
            if previous is not None and previous != program_id:
                self._live_channel.unsubscribe(previous)
            try:
                self._live_channel.subscribe(program_id, _on_update)
            except LiveUpdateError as exc:
                logger.warning("Live count unavailable: %s", exc)
                self._root.after(0, lambda: self._live_count_var.set("Live count unavailable"))

        threading.Thread(target=_subscribe, daemon=True).start()

    def _show_live_count(self, update: ScanCountUpdate) -> None:
        if update.program_id == self._live_program_id:
            self._live_count_var.set(f"Checked in: {update.total_scans}")

    # ------------------------------------------------------------------
    # QR scanner
    # ------------------------------------------------------------------
    def _handle_toggle_scanner(self) -> None:
        if self._scanner.is_running:
            threading.Thread(target=self._scanner.stop, daemon=True).start()
            self._preview_label.grid_remove()
            self._scan_button.configure(text="Scan QR")
            self._set_status("Scanner stopped")
            return

        def _on_program(program_id: str) -> None:
            self._root.after(0, lambda: self._handle_scanned_program(program_id))

        def _on_error(message: str) -> None:
            self._root.after(0, lambda: self._set_status(message, tone="warning"))

        def _on_frame(frame: Any) -> None:
            self._root.after(0, lambda f=frame: self._show_preview(f))

        if self._scanner.start(_on_program, on_error=_on_error, on_frame=_on_frame):
            self._preview_label.grid()
            self._scan_button.configure(text="Stop scanner")
            self._set_status("Hold the program QR code up to the camera", tone="success")

    def _show_preview(self, frame: Any) -> None:
        if not self._scanner.is_running or frame is None:
            return
        image = Image.fromarray(frame)
        width, height = image.size
        scale = PREVIEW_HEIGHT / float(height)
        self._preview_image = ctk.CTkImage(
            light_image=image,
            dark_image=image,
            size=(max(1, int(width * scale)), PREVIEW_HEIGHT),
        )
        self._preview_label.configure(image=self._preview_image, text="")

    def _handle_scanned_program(self, program_id: str) -> None:
        self._link_var.set(program_id)
        self._open_program(program_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _on_close(self) -> None:
        self._scanner.stop()
        self._view.destroy()
        self._live_channel.close()
        self._client.close()
        self._root.destroy()

    def run(self) -> None:
        self._root.mainloop()

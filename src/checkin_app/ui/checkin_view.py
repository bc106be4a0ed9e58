from __future__ import annotations

import logging
import threading
import tkinter.messagebox as messagebox
from tkinter import BooleanVar, StringVar
from typing import Any, Callable, Optional

import customtkinter as ctk

from checkin_app.models import (
    DATA_FIELD_NAMES,
    RESETTABLE_STATES,
    RESULT_MESSAGES,
    STATE_MESSAGES,
    AttendeeFormData,
    ResultMessage,
    SessionState,
)
from checkin_app.services import (
    CheckInSession,
    TransientSubmissionError,
)
from checkin_app.ui.tasks import run_session_task
from checkin_app.ui.theme import (
    KIOSK_ACCENT,
    KIOSK_ACCENT_HOVER,
    KIOSK_BG,
    KIOSK_CARD,
    KIOSK_ERROR,
    KIOSK_TEXT,
    KIOSK_TEXT_MUTED,
    TONE_COLORS,
)
from checkin_app.utils import SEX_OPTIONS, FormValidationError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, Callable[[CheckInSession], None]], CheckInSession]

FIELD_LABELS: dict[str, tuple[str, str]] = {
    "full_name": ("Full Name *", "John Doe"),
    "phone_number": ("Phone Number *", "+234 800 000 0000"),
    "address": ("Address *", "Your address"),
    "department": ("Department *", "e.g., Youth, Men, Women, Choir"),
    "fellowship": ("Fellowship", "Your fellowship group"),
    "age": ("Age", "25"),
}
SEX_PLACEHOLDER = "Select Gender"


class CheckInView(ctk.CTkFrame):
    """Renders one check-in session and forwards visitor input to it.

    Session calls run on worker threads; every UI update is marshalled back
    with ``after(0, ...)``.
    """

    def __init__(self, master, session_factory: SessionFactory) -> None:
        super().__init__(master, fg_color=KIOSK_BG)
        self._session_factory = session_factory
        self._session: CheckInSession | None = None
        self._busy = False

        self._gender_var = StringVar(value="")
        self._first_timer_var = BooleanVar(value=False)
        self._field_vars: dict[str, StringVar] = {}
        self._field_errors: dict[str, ctk.CTkLabel] = {}
        self._submit_button: ctk.CTkButton | None = None
        self._alert_var = StringVar(value="")

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(0, weight=1)
        self._card = ctk.CTkFrame(self, corner_radius=16, fg_color=KIOSK_CARD)
        self._card.grid(row=0, column=0, padx=40, pady=30, sticky="nsew")
        self._card.grid_columnconfigure(0, weight=1)

        self._render_message(
            ResultMessage(title="Welcome", body="Scan or enter a program link to check in.", tone="info")
        )

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def open_program(self, program_id: str) -> None:
        self._close_session()
        self._busy = False
        self._session = self._session_factory(program_id, self._handle_session_change)
        self._render()
        session = self._session
        self._run_async(session.start)

    def destroy(self) -> None:
        self._close_session()
        super().destroy()

    def _close_session(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def _handle_session_change(self, session: CheckInSession) -> None:
        # Called from worker threads.
        self.after(0, lambda: self._render_if_current(session))

    def _render_if_current(self, session: CheckInSession) -> None:
        if session is self._session and self.winfo_exists():
            self._render()

    def _run_async(
        self,
        operation: Callable[[], Any],
        *,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        owner = self._session
        self._set_busy(True)

        def _finalize(error: Exception | None) -> None:
            if not self.winfo_exists() or owner is not self._session:
                return
            self._set_busy(False)
            if error is not None and on_error is not None:
                on_error(error)

        def _worker() -> None:
            error: Exception | None = None
            try:
                error = run_session_task(operation)
            finally:
                self.after(0, lambda: _finalize(error))

        threading.Thread(target=_worker, daemon=True).start()

    def _set_busy(self, busy: bool) -> None:
        self._busy = busy
        if self._submit_button is not None and self._submit_button.winfo_exists():
            self._submit_button.configure(
                state="disabled" if busy else "normal",
                text="Submitting..." if busy else "Submit",
            )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def _clear_card(self) -> None:
        for child in self._card.winfo_children():
            child.destroy()
        self._submit_button = None
        self._field_vars = {}
        self._field_errors = {}
        self._alert_var.set("")

    def _render(self) -> None:
        session = self._session
        if session is None:
            return

        state = session.state
        if state is SessionState.INITIALIZING:
            self._render_message(ResultMessage(title="Loading program...", body="", tone="info"))
        elif state is SessionState.AWAITING_SUPPLEMENTAL_FORM:
            self._render_gender_form(session)
        elif state is SessionState.AWAITING_DATA_FORM:
            self._render_data_form(session)
        elif state is SessionState.RESOLVED and session.result is not None:
            self._render_message(RESULT_MESSAGES[session.result], allow_reset=True)
        else:
            self._render_message(STATE_MESSAGES[state], allow_reset=state in RESETTABLE_STATES)

    def _render_header(self, session: CheckInSession, subtitle: str) -> int:
        program = session.program
        ctk.CTkLabel(
            self._card,
            text=program.church_name if program else "",
            font=ctk.CTkFont(size=24, weight="bold"),
            text_color=KIOSK_TEXT,
        ).grid(row=0, column=0, padx=24, pady=(24, 4), sticky="w")
        ctk.CTkLabel(
            self._card,
            text=program.title if program else "",
            font=ctk.CTkFont(size=18),
            text_color=KIOSK_TEXT,
        ).grid(row=1, column=0, padx=24, pady=(0, 4), sticky="w")
        ctk.CTkLabel(
            self._card,
            text=subtitle,
            font=ctk.CTkFont(size=14),
            text_color=KIOSK_TEXT_MUTED,
            wraplength=520,
            justify="left",
        ).grid(row=2, column=0, padx=24, pady=(0, 16), sticky="w")
        return 3

    def _render_message(self, message: ResultMessage, *, allow_reset: bool = False) -> None:
        self._clear_card()
        ctk.CTkLabel(
            self._card,
            text=message.title,
            font=ctk.CTkFont(size=28, weight="bold"),
            text_color=TONE_COLORS.get(message.tone, KIOSK_TEXT),
        ).grid(row=0, column=0, padx=24, pady=(48, 12))
        for row, text in enumerate((message.body, message.sub_message), start=1):
            if text:
                ctk.CTkLabel(
                    self._card,
                    text=text,
                    font=ctk.CTkFont(size=16),
                    text_color=KIOSK_TEXT if row == 1 else KIOSK_TEXT_MUTED,
                    wraplength=520,
                    justify="center",
                ).grid(row=row, column=0, padx=24, pady=(0, 12))

        if allow_reset:
            ctk.CTkButton(
                self._card,
                text="Start again",
                command=self._handle_reset,
                fg_color=KIOSK_ACCENT,
                hover_color=KIOSK_ACCENT_HOVER,
                text_color=KIOSK_TEXT,
            ).grid(row=3, column=0, padx=24, pady=(24, 24))

    def _render_gender_form(self, session: CheckInSession) -> None:
        self._clear_card()
        self._gender_var.set("")
        self._first_timer_var.set(False)
        row = self._render_header(session, "Please provide some basic information")

        ctk.CTkLabel(self._card, text="Select Your Gender *", text_color=KIOSK_TEXT).grid(
            row=row, column=0, padx=24, pady=(0, 8), sticky="w"
        )
        ctk.CTkSegmentedButton(
            self._card,
            values=["male", "female"],
            variable=self._gender_var,
            command=lambda _value: self._update_gender_submit_state(),
        ).grid(row=row + 1, column=0, padx=24, pady=(0, 16), sticky="ew")
        ctk.CTkCheckBox(
            self._card,
            text="I am a first-timer",
            variable=self._first_timer_var,
            onvalue=True,
            offvalue=False,
        ).grid(row=row + 2, column=0, padx=24, pady=(0, 16), sticky="w")
        self._render_alert(row + 3)
        self._submit_button = self._build_submit_button(row + 4, self._handle_gender_submit)
        self._update_gender_submit_state()

    def _render_data_form(self, session: CheckInSession) -> None:
        self._clear_card()
        program = session.program
        assert program is not None
        subtitle = (
            "Fill this form for a chance to win a special gift from the church!"
            if program.gifting_enabled
            else "Please fill in your details."
        )
        row = self._render_header(session, subtitle)
        data_fields = program.data_fields
        self._first_timer_var.set(False)

        for attribute in DATA_FIELD_NAMES.values():
            if not data_fields.is_enabled(attribute):
                continue
            if attribute == "first_timer":
                ctk.CTkCheckBox(
                    self._card,
                    text="I am a first-timer",
                    variable=self._first_timer_var,
                    onvalue=True,
                    offvalue=False,
                ).grid(row=row, column=0, padx=24, pady=(4, 8), sticky="w")
                row += 1
                continue

            variable = StringVar(value=SEX_PLACEHOLDER if attribute == "sex" else "")
            self._field_vars[attribute] = variable
            label_text, placeholder = FIELD_LABELS.get(attribute, ("Gender *", ""))
            ctk.CTkLabel(self._card, text=label_text, text_color=KIOSK_TEXT).grid(
                row=row, column=0, padx=24, pady=(4, 2), sticky="w"
            )
            if attribute == "sex":
                widget = ctk.CTkOptionMenu(self._card, values=list(SEX_OPTIONS), variable=variable)
            else:
                widget = ctk.CTkEntry(self._card, textvariable=variable, placeholder_text=placeholder)
            widget.grid(row=row + 1, column=0, padx=24, sticky="ew")
            error_label = ctk.CTkLabel(self._card, text="", text_color=KIOSK_ERROR, font=ctk.CTkFont(size=12))
            error_label.grid(row=row + 2, column=0, padx=24, sticky="w")
            self._field_errors[attribute] = error_label
            row += 3

        self._render_alert(row)
        self._submit_button = self._build_submit_button(row + 1, self._handle_form_submit)

    def _render_alert(self, row: int) -> None:
        ctk.CTkLabel(self._card, textvariable=self._alert_var, text_color=KIOSK_ERROR).grid(
            row=row, column=0, padx=24, sticky="w"
        )

    def _build_submit_button(self, row: int, command: Callable[[], None]) -> ctk.CTkButton:
        button = ctk.CTkButton(
            self._card,
            text="Submit",
            command=command,
            fg_color=KIOSK_ACCENT,
            hover_color=KIOSK_ACCENT_HOVER,
            text_color=KIOSK_TEXT,
        )
        button.grid(row=row, column=0, padx=24, pady=(16, 24), sticky="ew")
        return button

    def _update_gender_submit_state(self) -> None:
        if self._submit_button is not None and not self._busy:
            self._submit_button.configure(state="normal" if self._gender_var.get() else "disabled")

    # ------------------------------------------------------------------
    # Input handlers
    # ------------------------------------------------------------------
    def _handle_gender_submit(self) -> None:
        session = self._session
        if session is None or self._busy:
            return
        gender = self._gender_var.get()
        first_timer = bool(self._first_timer_var.get())
        self._alert_var.set("")
        self._run_async(
            lambda: session.submit_supplemental(gender, first_timer),
            on_error=self._show_submission_error,
        )

    def _handle_form_submit(self) -> None:
        session = self._session
        if session is None or self._busy:
            return

        values = {attribute: variable.get() for attribute, variable in self._field_vars.items()}
        if values.get("sex") == SEX_PLACEHOLDER:
            values["sex"] = ""
        form = AttendeeFormData(
            full_name=values.get("full_name"),
            address=values.get("address"),
            phone_number=values.get("phone_number"),
            department=values.get("department"),
            fellowship=values.get("fellowship"),
            age=values.get("age"),
            sex=values.get("sex"),
            first_timer=bool(self._first_timer_var.get()),
        )
        for label in self._field_errors.values():
            label.configure(text="")
        self._alert_var.set("")
        self._run_async(lambda: session.submit_form(form), on_error=self._show_submission_error)

    def _handle_reset(self) -> None:
        session = self._session
        if session is None or self._busy:
            return
        self._run_async(session.reset, on_error=self._show_submission_error)

    def _show_submission_error(self, error: Exception) -> None:
        if isinstance(error, FormValidationError):
            for attribute, message in error.errors.items():
                label = self._field_errors.get(attribute)
                if label is not None:
                    label.configure(text=message)
                else:
                    self._alert_var.set(message)
            return
        if isinstance(error, TransientSubmissionError):
            self._alert_var.set(str(error))
            return
        logger.warning("Check-in action failed: %s", error)
        messagebox.showwarning(title="Check-in", message=str(error))

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from checkin_app.models import (
    RESETTABLE_STATES,
    AttendeeFormData,
    DataFields,
    DeviceEnvironment,
    DeviceFingerprint,
    ProgramSnapshot,
    ResultKind,
    ScanRejection,
    SessionState,
    SubmissionResult,
    TrackingMode,
)
from checkin_app.services.fingerprint import derive_fingerprint
from checkin_app.services.http import ApiError
from checkin_app.services.scan_client import ScanRejectedError
from checkin_app.utils.forms import FormValidationError, validate_attendee_form, validate_gender

logger = logging.getLogger(__name__)


class CheckInError(RuntimeError):
    """Base class for check-in session errors surfaced to the kiosk."""


class InvalidTransitionError(CheckInError):
    """Raised when an operation is attempted from a state that does not allow it."""


class SessionClosedError(CheckInError):
    """Raised when an operation is attempted after the session was torn down."""


class TransientSubmissionError(CheckInError):
    """Raised when a supplemental or data form could not be delivered; safe to resubmit."""


class CheckInClient(Protocol):
    def get_program_info(self, program_id: str) -> ProgramSnapshot: ...

    def submit_scan(self, program_id: str, fingerprint: DeviceFingerprint) -> object: ...

    def update_scan(
        self, program_id: str, fingerprint: DeviceFingerprint, gender: str, first_timer: bool
    ) -> object: ...

    def submit_form(
        self,
        program_id: str,
        fingerprint: DeviceFingerprint,
        form: AttendeeFormData,
        data_fields: DataFields,
    ) -> SubmissionResult: ...


StateListener = Callable[["CheckInSession"], None]


def resolve_result_kind(first_timer: bool, result: SubmissionResult | None = None) -> ResultKind:
    """Pick the result screen after a successful supplemental or data submission.

    ``result`` is ``None`` for count-only programs. First-timers always get the
    welcome message, whatever the gifting outcome.
    """

    if first_timer:
        return ResultKind.FIRST_TIMER_WELCOME
    if result is None:
        return ResultKind.COUNT_ONLY_ACK
    if not result.gifting_enabled:
        return ResultKind.NO_GIFTING_ACK
    return ResultKind.WINNER if result.is_winner else ResultKind.NO_WIN


class CheckInSession:
    """One visitor's check-in attempt against a program.

    Network calls block the calling thread; the kiosk runs them off the UI
    thread. Only one call chain is in flight at a time. ``close()`` may be
    called from any thread: once it has run, results of calls still in
    flight are dropped and listeners are no longer notified.
    """

    def __init__(
        self,
        program_id: str,
        client: CheckInClient,
        environment_provider: Callable[[], DeviceEnvironment],
        *,
        on_change: Optional[StateListener] = None,
    ) -> None:
        self._program_id = program_id
        self._client = client
        self._environment_provider = environment_provider
        self._on_change = on_change

        self._lock = threading.Lock()
        self._generation = 0
        self._closed = False
        self._busy = False

        self._state = SessionState.INITIALIZING
        self._program: ProgramSnapshot | None = None
        self._fingerprint: DeviceFingerprint | None = None
        self._result: ResultKind | None = None
        self._failure: ScanRejection | None = None
        self._error_message: str | None = None

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------
    @property
    def program_id(self) -> str:
        return self._program_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def program(self) -> ProgramSnapshot | None:
        return self._program

    @property
    def fingerprint(self) -> DeviceFingerprint | None:
        return self._fingerprint

    @property
    def result(self) -> ResultKind | None:
        return self._result

    @property
    def failure(self) -> ScanRejection | None:
        return self._failure

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def start(self) -> SessionState:
        """Fetch the program, then submit this device's scan (at most once)."""

        generation = self._begin({SessionState.INITIALIZING}, "start")
        try:
            return self._run_start(generation)
        finally:
            self._finish(generation)

    def submit_supplemental(self, gender: str, first_timer: bool = False) -> SessionState:
        """Attach gender and first-timer status to the scan of a count-only program."""

        if self._state is not SessionState.AWAITING_SUPPLEMENTAL_FORM:
            self._ensure_open()
            raise InvalidTransitionError(f"Cannot submit gender details while {self._state.value}.")

        errors = validate_gender(gender)
        if errors:
            raise FormValidationError(errors)

        generation = self._begin({SessionState.AWAITING_SUPPLEMENTAL_FORM}, "submit_supplemental")
        try:
            try:
                self._client.update_scan(self._program_id, self._require_fingerprint(), gender, first_timer)
            except ApiError as exc:
                logger.warning("Supplemental submission for program %s failed: %s", self._program_id, exc)
                if self._is_current(generation):
                    self._error_message = str(exc)
                raise TransientSubmissionError("Failed to submit. Please try again.") from exc

            self._apply(
                generation,
                SessionState.RESOLVED,
                result=resolve_result_kind(first_timer),
            )
            return self._state
        finally:
            self._finish(generation)

    def submit_form(self, form: AttendeeFormData) -> SessionState:
        """Validate and deliver the attendee form of a collect-data program."""

        if self._state is not SessionState.AWAITING_DATA_FORM or self._program is None:
            self._ensure_open()
            raise InvalidTransitionError(f"Cannot submit a data form while {self._state.value}.")

        data_fields = self._program.data_fields
        form = form.restricted_to(data_fields)
        errors = validate_attendee_form(form, data_fields)
        if errors:
            raise FormValidationError(errors)

        generation = self._begin({SessionState.AWAITING_DATA_FORM}, "submit_form")
        try:
            try:
                outcome = self._client.submit_form(
                    self._program_id,
                    self._require_fingerprint(),
                    form,
                    data_fields,
                )
            except ApiError as exc:
                logger.warning("Form submission for program %s failed: %s", self._program_id, exc)
                if self._is_current(generation):
                    self._error_message = str(exc)
                raise TransientSubmissionError("Failed to submit form. Please try again.") from exc

            self._apply(
                generation,
                SessionState.RESOLVED,
                result=resolve_result_kind(form.first_timer, outcome),
            )
            return self._state
        finally:
            self._finish(generation)

    def reset(self) -> SessionState:
        """Start a fresh attempt from a terminal or failed state.

        The server still decides whether this device already counted.
        """

        with self._lock:
            if self._closed:
                raise SessionClosedError("Check-in session is closed.")
            if self._busy or self._state not in RESETTABLE_STATES:
                raise InvalidTransitionError(f"Cannot reset while {self._state.value}.")
            self._generation += 1
            self._state = SessionState.INITIALIZING
            self._program = None
            self._fingerprint = None
            self._result = None
            self._failure = None
            self._error_message = None

        logger.info("Resetting check-in for program %s", self._program_id)
        self._notify()
        return self.start()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._generation += 1
        logger.debug("Check-in session for program %s closed", self._program_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run_start(self, generation: int) -> SessionState:
        try:
            program = self._client.get_program_info(self._program_id)
        except ApiError as exc:
            logger.warning("Could not load program %s: %s", self._program_id, exc)
            self._apply(generation, SessionState.FAILED, failure=ScanRejection.OTHER, error_message=str(exc))
            return self._state

        if not program.is_active:
            logger.info("Program %s is closed; no scan submitted", self._program_id)
            self._apply(generation, SessionState.CLOSED, program=program, failure=ScanRejection.PROGRAM_INACTIVE)
            return self._state

        fingerprint = derive_fingerprint(self._environment_provider())
        with self._lock:
            if not self._is_current_locked(generation):
                return self._state
            self._program = program
            self._fingerprint = fingerprint

        try:
            self._client.submit_scan(self._program_id, fingerprint)
        except ScanRejectedError as exc:
            target = {
                ScanRejection.DUPLICATE_DEVICE: SessionState.DUPLICATE,
                ScanRejection.PROGRAM_INACTIVE: SessionState.CLOSED,
            }.get(exc.reason, SessionState.FAILED)
            self._apply(generation, target, failure=exc.reason, error_message=str(exc))
            return self._state
        except ApiError as exc:
            logger.warning("Scan for program %s failed: %s", self._program_id, exc)
            self._apply(generation, SessionState.FAILED, failure=ScanRejection.OTHER, error_message=str(exc))
            return self._state

        logger.info("Scan recorded for program %s", self._program_id)
        if program.tracking_mode is TrackingMode.COUNT_ONLY:
            self._apply(generation, SessionState.AWAITING_SUPPLEMENTAL_FORM)
        else:
            self._apply(generation, SessionState.AWAITING_DATA_FORM)
        return self._state

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Check-in session is closed.")

    def _begin(self, allowed: set[SessionState], operation: str) -> int:
        with self._lock:
            if self._closed:
                raise SessionClosedError("Check-in session is closed.")
            if self._busy:
                raise InvalidTransitionError(f"{operation} called while another request is in flight.")
            if self._state not in allowed:
                raise InvalidTransitionError(f"Cannot {operation} while {self._state.value}.")
            self._busy = True
            self._error_message = None
            return self._generation

    def _finish(self, generation: int) -> None:
        with self._lock:
            if generation == self._generation:
                self._busy = False

    def _is_current_locked(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return self._is_current_locked(generation)

    def _require_fingerprint(self) -> DeviceFingerprint:
        if self._fingerprint is None:
            raise InvalidTransitionError("No scan has been recorded for this session.")
        return self._fingerprint

    def _apply(
        self,
        generation: int,
        state: SessionState,
        *,
        program: ProgramSnapshot | None = None,
        result: ResultKind | None = None,
        failure: ScanRejection | None = None,
        error_message: str | None = None,
    ) -> bool:
        with self._lock:
            if not self._is_current_locked(generation):
                logger.debug("Dropping stale transition to %s for program %s", state.value, self._program_id)
                return False
            previous = self._state
            self._state = state
            if program is not None:
                self._program = program
            self._result = result
            self._failure = failure
            self._error_message = error_message

        logger.info("Check-in %s: %s -> %s", self._program_id, previous.value, state.value)
        self._notify()
        return True

    def _notify(self) -> None:
        if self._on_change is None or self._closed:
            return
        self._on_change(self)

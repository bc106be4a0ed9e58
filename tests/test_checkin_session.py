from __future__ import annotations

import pytest

from checkin_app.models import (
    AttendeeFormData,
    DataFields,
    ResultKind,
    ScanRejection,
    SessionState,
    SubmissionResult,
    TrackingMode,
)
from checkin_app.services import (
    CheckInSession,
    InvalidTransitionError,
    SessionClosedError,
    TransientSubmissionError,
    resolve_result_kind,
)
from checkin_app.services.http import ApiResponseError
from checkin_app.services.scan_client import ScanRejectedError
from checkin_app.utils import FormValidationError

from fakes import FakeCheckInClient, make_program

EXPECTED_FINGERPRINT = "ChurchCheck-inKiosk/0.1.0 (Linux 6.1; x86_64)-en-US-1920x1080"


def _session(client, environment, **kwargs) -> CheckInSession:
    return CheckInSession("prog-123456", client, lambda: environment, **kwargs)


def _collect_data_client(**program_kwargs) -> FakeCheckInClient:
    program_kwargs.setdefault("data_fields", DataFields(full_name=True, phone_number=True))
    program_kwargs.setdefault("gifting_enabled", True)
    return FakeCheckInClient(make_program(tracking_mode=TrackingMode.COLLECT_DATA, **program_kwargs))


def test_inactive_program_closes_without_scanning(environment):
    client = FakeCheckInClient(make_program(is_active=False))
    session = _session(client, environment)

    assert session.start() is SessionState.CLOSED
    assert client.count("submit_scan") == 0
    assert session.failure is ScanRejection.PROGRAM_INACTIVE
    assert session.program is not None and session.program.is_active is False


def test_count_only_scan_then_gender_acknowledged(environment):
    client = FakeCheckInClient(make_program(tracking_mode=TrackingMode.COUNT_ONLY))
    session = _session(client, environment)

    assert session.start() is SessionState.AWAITING_SUPPLEMENTAL_FORM
    assert session.fingerprint == EXPECTED_FINGERPRINT

    assert session.submit_supplemental("female", first_timer=False) is SessionState.RESOLVED
    assert session.result is ResultKind.COUNT_ONLY_ACK
    assert client.calls[-1] == ("update_scan", ("prog-123456", EXPECTED_FINGERPRINT, "female", False))
    assert client.count("submit_scan") == 1


def test_count_only_first_timer_gets_welcome(environment):
    client = FakeCheckInClient(make_program())
    session = _session(client, environment)
    session.start()

    session.submit_supplemental("male", first_timer=True)

    assert session.result is ResultKind.FIRST_TIMER_WELCOME


def test_count_only_never_shows_data_form(environment):
    client = FakeCheckInClient(make_program(data_fields=DataFields(full_name=True)))
    session = _session(client, environment)
    session.start()

    with pytest.raises(InvalidTransitionError):
        session.submit_form(AttendeeFormData(full_name="Jane"))
    assert session.state is SessionState.AWAITING_SUPPLEMENTAL_FORM


def test_gender_must_be_selected_before_update(environment):
    client = FakeCheckInClient(make_program())
    session = _session(client, environment)
    session.start()

    with pytest.raises(FormValidationError) as excinfo:
        session.submit_supplemental("")

    assert "gender" in excinfo.value.errors
    assert client.count("update_scan") == 0
    assert session.state is SessionState.AWAITING_SUPPLEMENTAL_FORM


def test_supplemental_failure_is_retryable(environment, transport_error):
    client = FakeCheckInClient(make_program())
    client.update_errors.append(transport_error)
    session = _session(client, environment)
    session.start()

    with pytest.raises(TransientSubmissionError):
        session.submit_supplemental("female")
    assert session.state is SessionState.AWAITING_SUPPLEMENTAL_FORM
    assert session.error_message

    session.submit_supplemental("female")

    assert session.result is ResultKind.COUNT_ONLY_ACK
    assert client.count("submit_scan") == 1
    assert client.count("update_scan") == 2


def test_collect_data_winner(environment):
    client = _collect_data_client()
    client.form_result = SubmissionResult(gifting_enabled=True, is_winner=True)
    session = _session(client, environment)

    assert session.start() is SessionState.AWAITING_DATA_FORM

    form = AttendeeFormData(full_name="Jane Doe", phone_number="+2348000000000", first_timer=False)
    assert session.submit_form(form) is SessionState.RESOLVED
    assert session.result is ResultKind.WINNER


def test_collect_data_no_win(environment):
    client = _collect_data_client()
    client.form_result = SubmissionResult(gifting_enabled=True, is_winner=False)
    session = _session(client, environment)
    session.start()

    session.submit_form(AttendeeFormData(full_name="Jane Doe", phone_number="+2348000000000"))

    assert session.result is ResultKind.NO_WIN


def test_collect_data_without_gifting(environment):
    client = _collect_data_client(gifting_enabled=False)
    client.form_result = SubmissionResult(gifting_enabled=False, is_winner=True)
    session = _session(client, environment)
    session.start()

    session.submit_form(AttendeeFormData(full_name="Jane Doe", phone_number="+2348000000000"))

    assert session.result is ResultKind.NO_GIFTING_ACK


def test_first_timer_overrides_winning(environment):
    client = _collect_data_client(data_fields=DataFields(full_name=True, first_timer=True))
    client.form_result = SubmissionResult(gifting_enabled=True, is_winner=True)
    session = _session(client, environment)
    session.start()

    session.submit_form(AttendeeFormData(full_name="Jane Doe", first_timer=True))

    assert session.result is ResultKind.FIRST_TIMER_WELCOME


def test_collect_data_never_shows_gender_form(environment):
    client = _collect_data_client()
    session = _session(client, environment)
    session.start()

    with pytest.raises(InvalidTransitionError):
        session.submit_supplemental("female")
    assert client.count("update_scan") == 0


def test_duplicate_scan_is_terminal(environment, duplicate_rejection):
    client = FakeCheckInClient(make_program())
    client.scan_error = duplicate_rejection
    session = _session(client, environment)

    assert session.start() is SessionState.DUPLICATE
    assert session.failure is ScanRejection.DUPLICATE_DEVICE
    with pytest.raises(InvalidTransitionError):
        session.submit_supplemental("male")


def test_scan_rejected_for_closed_program(environment):
    client = FakeCheckInClient(make_program())
    client.scan_error = ScanRejectedError(ScanRejection.PROGRAM_INACTIVE, "Program is not active", status_code=400)
    session = _session(client, environment)

    assert session.start() is SessionState.CLOSED


def test_unclassified_scan_failure(environment):
    client = FakeCheckInClient(make_program())
    client.scan_error = ScanRejectedError(ScanRejection.OTHER, "Bad request", status_code=422)
    session = _session(client, environment)

    assert session.start() is SessionState.FAILED
    assert session.failure is ScanRejection.OTHER
    assert session.error_message == "Bad request"


def test_program_fetch_failure_never_scans(environment, transport_error):
    client = FakeCheckInClient(make_program())
    client.program_error = transport_error
    session = _session(client, environment)

    assert session.start() is SessionState.FAILED
    assert client.count("submit_scan") == 0


def test_missing_required_field_blocks_submission(environment):
    client = _collect_data_client()
    session = _session(client, environment)
    session.start()

    with pytest.raises(FormValidationError) as excinfo:
        session.submit_form(AttendeeFormData(full_name="Jane Doe", phone_number="   "))

    assert excinfo.value.errors == {"phone_number": "Phone number is required"}
    assert client.count("submit_form") == 0
    assert session.state is SessionState.AWAITING_DATA_FORM


def test_form_retry_resolves_once(environment):
    client = _collect_data_client()
    client.form_errors.append(ApiResponseError("Internal error", status_code=500))
    client.form_result = SubmissionResult(gifting_enabled=True, is_winner=False)
    transitions: list[SessionState] = []
    session = _session(client, environment, on_change=lambda s: transitions.append(s.state))
    session.start()
    form = AttendeeFormData(full_name="Jane Doe", phone_number="+2348000000000")

    with pytest.raises(TransientSubmissionError):
        session.submit_form(form)
    assert session.state is SessionState.AWAITING_DATA_FORM

    session.submit_form(form)
    with pytest.raises(InvalidTransitionError):
        session.submit_form(form)

    assert transitions.count(SessionState.RESOLVED) == 1
    assert session.result is ResultKind.NO_WIN
    assert client.count("submit_form") == 2


def test_disabled_fields_are_not_sent(environment):
    client = _collect_data_client(data_fields=DataFields(full_name=True))
    session = _session(client, environment)
    session.start()

    session.submit_form(
        AttendeeFormData(full_name="Jane Doe", address="12 Church Road", first_timer=True)
    )

    _name, (_program_id, _fingerprint, sent_form, _fields) = client.calls[-1]
    assert sent_form.address is None
    assert sent_form.first_timer is False
    assert session.result is ResultKind.NO_GIFTING_ACK


def test_start_runs_once_per_activation(environment):
    client = FakeCheckInClient(make_program())
    session = _session(client, environment)
    session.start()

    with pytest.raises(InvalidTransitionError):
        session.start()
    assert client.count("submit_scan") == 1


def test_reset_performs_fresh_attempt(environment, duplicate_rejection):
    client = FakeCheckInClient(make_program())
    client.scan_error = duplicate_rejection
    session = _session(client, environment)
    session.start()

    client.scan_error = None
    assert session.reset() is SessionState.AWAITING_SUPPLEMENTAL_FORM
    assert client.count("get_program_info") == 2
    assert client.count("submit_scan") == 2
    assert session.failure is None


def test_reset_not_allowed_while_awaiting_form(environment):
    session = _session(FakeCheckInClient(make_program()), environment)
    session.start()

    with pytest.raises(InvalidTransitionError):
        session.reset()


def test_close_discards_in_flight_scan(environment):
    client = FakeCheckInClient(make_program())
    seen: list[SessionState] = []
    session = _session(client, environment, on_change=lambda s: seen.append(s.state))
    client.before_scan = session.close

    session.start()

    assert session.state is SessionState.INITIALIZING
    assert seen == []
    with pytest.raises(SessionClosedError):
        session.reset()


def test_operations_after_close_raise(environment):
    session = _session(FakeCheckInClient(make_program()), environment)
    session.start()
    session.close()

    with pytest.raises(SessionClosedError):
        session.submit_supplemental("female")


def test_listener_sees_every_transition(environment):
    seen: list[SessionState] = []
    session = _session(FakeCheckInClient(make_program()), environment, on_change=lambda s: seen.append(s.state))

    session.start()
    session.submit_supplemental("male")

    assert seen == [SessionState.AWAITING_SUPPLEMENTAL_FORM, SessionState.RESOLVED]


@pytest.mark.parametrize(
    ("first_timer", "result", "expected"),
    [
        (True, SubmissionResult(gifting_enabled=True, is_winner=True), ResultKind.FIRST_TIMER_WELCOME),
        (True, None, ResultKind.FIRST_TIMER_WELCOME),
        (False, None, ResultKind.COUNT_ONLY_ACK),
        (False, SubmissionResult(gifting_enabled=False, is_winner=True), ResultKind.NO_GIFTING_ACK),
        (False, SubmissionResult(gifting_enabled=True, is_winner=True), ResultKind.WINNER),
        (False, SubmissionResult(gifting_enabled=True, is_winner=False), ResultKind.NO_WIN),
    ],
)
def test_resolve_result_kind(first_timer, result, expected):
    assert resolve_result_kind(first_timer, result) is expected

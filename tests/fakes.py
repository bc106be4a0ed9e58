from __future__ import annotations

from typing import Any

from checkin_app.models import (
    DataFields,
    DeviceEnvironment,
    ProgramSnapshot,
    SubmissionResult,
    TrackingMode,
)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is not None:
            self.text = text
        elif payload is not None:
            self.text = "json"
        else:
            self.text = ""
        self.content = self.text.encode("utf-8")

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


class FakeHttpSession:
    """Stands in for ``requests.Session``; replies are queued per test."""

    def __init__(self, *responses: FakeResponse | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def queue(self, response: FakeResponse | Exception) -> None:
        self._responses.append(response)

    def request(self, method, url, *, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "headers": headers, "timeout": timeout})
        if not self._responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


class FakeCheckInClient:
    """In-memory stand-in for ``ScanApiClient`` that records every call."""

    def __init__(self, program: ProgramSnapshot) -> None:
        self.program = program
        self.calls: list[tuple[str, tuple]] = []
        self.program_error: Exception | None = None
        self.scan_error: Exception | None = None
        self.update_errors: list[Exception] = []
        self.form_errors: list[Exception] = []
        self.form_result = SubmissionResult()
        self.before_scan = None

    def get_program_info(self, program_id):
        self.calls.append(("get_program_info", (program_id,)))
        if self.program_error is not None:
            raise self.program_error
        return self.program

    def submit_scan(self, program_id, fingerprint):
        if self.before_scan is not None:
            self.before_scan()
        self.calls.append(("submit_scan", (program_id, fingerprint)))
        if self.scan_error is not None:
            raise self.scan_error
        return {"message": "Scan recorded"}

    def update_scan(self, program_id, fingerprint, gender, first_timer):
        self.calls.append(("update_scan", (program_id, fingerprint, gender, first_timer)))
        if self.update_errors:
            raise self.update_errors.pop(0)
        return {"message": "updated"}

    def submit_form(self, program_id, fingerprint, form, data_fields):
        self.calls.append(("submit_form", (program_id, fingerprint, form, data_fields)))
        if self.form_errors:
            raise self.form_errors.pop(0)
        return self.form_result

    def count(self, name: str) -> int:
        return sum(1 for call, _args in self.calls if call == name)


def make_program(
    *,
    is_active: bool = True,
    tracking_mode: TrackingMode = TrackingMode.COUNT_ONLY,
    data_fields: DataFields | None = None,
    gifting_enabled: bool = False,
) -> ProgramSnapshot:
    return ProgramSnapshot(
        identifier="prog-123456",
        title="Sunday Service",
        church_name="Grace Chapel",
        is_active=is_active,
        tracking_mode=tracking_mode,
        data_fields=data_fields or DataFields(),
        gifting_enabled=gifting_enabled,
    )


KIOSK_ENVIRONMENT = DeviceEnvironment(
    user_agent="ChurchCheck-inKiosk/0.1.0 (Linux 6.1; x86_64)",
    locale="en-US",
    screen_width=1920,
    screen_height=1080,
)

from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import quote

import requests

from checkin_app.models import (
    AttendeeFormData,
    DataFields,
    DeviceFingerprint,
    ProgramSnapshot,
    ScanRejection,
    SubmissionResult,
)
from checkin_app.services.http import (
    DEFAULT_TIMEOUT_SECONDS,
    ApiResponseError,
    JsonApi,
)

logger = logging.getLogger(__name__)

DUPLICATE_MARKERS = ("already scanned",)
INACTIVE_MARKERS = ("not active", "no longer active", "inactive", "closed", "has ended")


class ScanRejectedError(ApiResponseError):
    """Raised when the server refuses a scan submission."""

    def __init__(
        self,
        reason: ScanRejection,
        message: str,
        *,
        status_code: int | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, payload=payload)
        self.reason = reason


def classify_rejection(status_code: int | None, payload: Mapping[str, Any]) -> ScanRejection:
    """Map a failed scan response to a rejection reason.

    Structured flags win; the message text is only consulted when the
    backend sends a bare error string.
    """

    if status_code is None or not 400 <= status_code < 500:
        return ScanRejection.OTHER
    if payload.get("alreadyScanned"):
        return ScanRejection.DUPLICATE_DEVICE
    if payload.get("programInactive") or payload.get("isActive") is False:
        return ScanRejection.PROGRAM_INACTIVE

    message = str(payload.get("error") or payload.get("message") or "").lower()
    if status_code == 400 and any(marker in message for marker in DUPLICATE_MARKERS):
        return ScanRejection.DUPLICATE_DEVICE
    if any(marker in message for marker in INACTIVE_MARKERS):
        return ScanRejection.PROGRAM_INACTIVE
    return ScanRejection.OTHER


class ScanApiClient:
    """Client for the public ``/scan`` endpoints used during check-in."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self._api = JsonApi(base_url, timeout=timeout, session=session)

    @property
    def timeout(self) -> float:
        return self._api.timeout

    def close(self) -> None:
        self._api.close()

    @staticmethod
    def _program_path(program_id: str, suffix: str = "") -> str:
        return f"scan/program/{quote(program_id, safe='')}{suffix}"

    def get_program_info(self, program_id: str) -> ProgramSnapshot:
        payload = self._api.request("GET", self._program_path(program_id))
        try:
            return ProgramSnapshot.from_payload(program_id, payload)
        except ValueError as exc:
            raise ApiResponseError(f"Malformed program info for {program_id}: {exc}", payload=payload) from exc

    def submit_scan(self, program_id: str, fingerprint: DeviceFingerprint) -> Mapping[str, Any]:
        body = {
            "deviceFingerprint": fingerprint,
            "formData": None,
            "gender": None,
            "firstTimer": False,
        }
        try:
            return self._api.request("POST", self._program_path(program_id), json=body)
        except ApiResponseError as exc:
            reason = classify_rejection(exc.status_code, exc.payload)
            logger.info("Scan for program %s rejected (%s): %s", program_id, reason.value, exc)
            raise ScanRejectedError(
                reason,
                str(exc),
                status_code=exc.status_code,
                payload=exc.payload,
            ) from exc

    def update_scan(
        self,
        program_id: str,
        fingerprint: DeviceFingerprint,
        gender: str,
        first_timer: bool,
    ) -> Mapping[str, Any]:
        body = {
            "deviceFingerprint": fingerprint,
            "gender": gender,
            "firstTimer": bool(first_timer),
        }
        return self._api.request("PUT", self._program_path(program_id, "/update-scan"), json=body)

    def submit_form(
        self,
        program_id: str,
        fingerprint: DeviceFingerprint,
        form: AttendeeFormData,
        data_fields: DataFields,
    ) -> SubmissionResult:
        body = {
            "deviceFingerprint": fingerprint,
            "formData": form.to_payload(data_fields),
        }
        payload = self._api.request("POST", self._program_path(program_id, "/form"), json=body)
        return SubmissionResult.from_payload(payload)

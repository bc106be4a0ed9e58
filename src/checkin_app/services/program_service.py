from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import quote

import requests

from checkin_app.services.http import (
    DEFAULT_TIMEOUT_SECONDS,
    ApiResponseError,
    AuthenticationRequired,
    JsonApi,
)

logger = logging.getLogger(__name__)

# Fields the create-program form sends, in the dashboard's order.
PROGRAM_FIELDS: tuple[str, ...] = (
    "programTitle",
    "date",
    "startTime",
    "endTime",
    "trackingMode",
    "dataFields",
    "enableGifting",
    "numberOfWinners",
)


@dataclass(frozen=True, slots=True)
class AuthContext:
    token: str
    church: Mapping[str, Any] | None = None

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class AuthService:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self._api = JsonApi(base_url, timeout=timeout, session=session)

    def login(self, email: str, password: str) -> AuthContext:
        payload = self._api.request(
            "POST",
            "auth/login",
            json={"email": email.strip(), "password": password},
        )
        return self._context_from(payload, "Login")

    def register(
        self,
        *,
        church_name: str,
        branch_name: str,
        email: str,
        password: str,
        location: str,
        logo_url: str | None = None,
    ) -> AuthContext:
        """Create a church account; the server logs it in straight away."""

        payload = self._api.request(
            "POST",
            "auth/register",
            json={
                "churchName": church_name.strip(),
                "branchName": branch_name.strip(),
                "email": email.strip(),
                "password": password,
                "location": location.strip(),
                "logoUrl": logo_url,
            },
        )
        logger.info("Registered church %s", church_name.strip())
        return self._context_from(payload, "Registration")

    @staticmethod
    def _context_from(payload: Mapping[str, Any], action: str) -> AuthContext:
        token = payload.get("token")
        if not isinstance(token, str) or not token:
            raise ApiResponseError(f"{action} response did not include a token.", payload=payload)
        church = payload.get("church")
        return AuthContext(token=token, church=church if isinstance(church, Mapping) else None)

    def current_church(self, context: AuthContext) -> Mapping[str, Any]:
        return self._api.request("GET", "auth/me", headers=context.headers())


class ProgramService:
    """Church-side program endpoints; every call needs a logged-in context."""

    def __init__(
        self,
        base_url: str,
        context: AuthContext,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self._api = JsonApi(base_url, timeout=timeout, session=session)
        self._context = context

    def _get(self, path: str) -> Any:
        return self._api.request("GET", path, headers=self._context.headers())

    @staticmethod
    def _path(program_id: str, suffix: str = "") -> str:
        return f"programs/{quote(program_id, safe='')}{suffix}"

    def list_programs(self) -> list[dict[str, Any]]:
        payload = self._get("programs")
        programs = payload.get("programs", payload.get("data", []))
        return [dict(item) for item in programs if isinstance(item, Mapping)]

    def create_program(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a program from the dashboard form fields (camelCase wire names)."""

        body = {key: data[key] for key in PROGRAM_FIELDS if key in data}
        if not str(body.get("programTitle") or "").strip():
            raise ValueError("programTitle is required")
        payload = self._api.request("POST", "programs", json=body, headers=self._context.headers())
        program = dict(payload.get("program", payload))
        logger.info("Created program %s", program.get("id") or program.get("_id"))
        return program

    def get_program(self, program_id: str) -> dict[str, Any]:
        payload = self._get(self._path(program_id))
        return dict(payload.get("program", payload))

    def total_scans(self, program_id: str) -> int:
        return int(self.get_program(program_id).get("totalScans") or 0)

    def stop_program(self, program_id: str) -> dict[str, Any]:
        logger.info("Stopping program %s", program_id)
        return self._api.request("PUT", self._path(program_id, "/stop"), headers=self._context.headers())

    def get_attendees(self, program_id: str) -> list[dict[str, Any]]:
        payload = self._get(self._path(program_id, "/attendees"))
        return [dict(item) for item in payload.get("attendees", []) if isinstance(item, Mapping)]

    def get_attendance_data(self, program_id: str) -> list[dict[str, Any]]:
        payload = self._get(self._path(program_id, "/attendance-data"))
        return [dict(item) for item in payload.get("attendanceData", []) if isinstance(item, Mapping)]


__all__ = ["AuthContext", "AuthService", "AuthenticationRequired", "ProgramService"]

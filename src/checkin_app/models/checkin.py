from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Mapping, NewType, Optional

DeviceFingerprint = NewType("DeviceFingerprint", str)


class TrackingMode(str, Enum):
    COUNT_ONLY = "count-only"
    COLLECT_DATA = "collect-data"


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    CLOSED = "closed"
    DUPLICATE = "duplicate"
    AWAITING_SUPPLEMENTAL_FORM = "awaiting-supplemental-form"
    AWAITING_DATA_FORM = "awaiting-data-form"
    RESOLVED = "resolved"
    FAILED = "failed"


RESETTABLE_STATES = frozenset(
    {SessionState.DUPLICATE, SessionState.CLOSED, SessionState.RESOLVED, SessionState.FAILED}
)


class ResultKind(str, Enum):
    WINNER = "winner"
    NO_WIN = "no-win"
    NO_GIFTING_ACK = "no-gifting"
    FIRST_TIMER_WELCOME = "first-timer-message"
    COUNT_ONLY_ACK = "count-only-success"


class ScanRejection(str, Enum):
    DUPLICATE_DEVICE = "duplicate-device"
    PROGRAM_INACTIVE = "program-inactive"
    OTHER = "other"


# Wire name -> attribute name, in the order the data form shows them.
DATA_FIELD_NAMES: dict[str, str] = {
    "fullName": "full_name",
    "phoneNumber": "phone_number",
    "address": "address",
    "department": "department",
    "fellowship": "fellowship",
    "age": "age",
    "sex": "sex",
    "firstTimer": "first_timer",
}


@dataclass(frozen=True, slots=True)
class DataFields:
    full_name: bool = False
    address: bool = False
    first_timer: bool = False
    phone_number: bool = False
    department: bool = False
    fellowship: bool = False
    age: bool = False
    sex: bool = False

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "DataFields":
        payload = payload or {}
        flags = {
            attribute: bool(payload.get(wire_name, False))
            for wire_name, attribute in DATA_FIELD_NAMES.items()
        }
        return cls(**flags)

    def enabled(self) -> frozenset[str]:
        return frozenset(item.name for item in fields(self) if getattr(self, item.name))

    def is_enabled(self, attribute: str) -> bool:
        return bool(getattr(self, attribute))


@dataclass(frozen=True, slots=True)
class ProgramSnapshot:
    identifier: str
    title: str
    church_name: str
    is_active: bool
    tracking_mode: TrackingMode
    data_fields: DataFields = field(default_factory=DataFields)
    gifting_enabled: bool = False

    @classmethod
    def from_payload(cls, program_id: str, payload: Mapping[str, Any]) -> "ProgramSnapshot":
        """Build a snapshot from the program info response.

        Raises ``ValueError`` when an active program's tracking mode is
        missing or unknown. Inactive programs are never scanned, so their
        mode falls back to count-only.
        """

        is_active = bool(payload.get("isActive", False))
        raw_mode = payload.get("trackingMode")
        try:
            mode = TrackingMode(raw_mode)
        except ValueError as exc:
            if is_active:
                raise ValueError(f"Unknown tracking mode: {raw_mode!r}") from exc
            mode = TrackingMode.COUNT_ONLY

        identifier = payload.get("_id") or payload.get("id") or program_id
        return cls(
            identifier=str(identifier),
            title=str(payload.get("title") or ""),
            church_name=str(payload.get("churchName") or ""),
            is_active=is_active,
            tracking_mode=mode,
            data_fields=DataFields.from_payload(payload.get("dataFields")),
            gifting_enabled=bool(payload.get("giftingEnabled", False)),
        )


@dataclass(slots=True)
class AttendeeFormData:
    full_name: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    department: Optional[str] = None
    fellowship: Optional[str] = None
    age: Optional[str] = None
    sex: Optional[str] = None
    first_timer: bool = False

    def restricted_to(self, data_fields: DataFields) -> "AttendeeFormData":
        """Return a copy with every field the program does not collect left unset."""

        changes: dict[str, Any] = {}
        for attribute in DATA_FIELD_NAMES.values():
            if data_fields.is_enabled(attribute):
                continue
            changes[attribute] = False if attribute == "first_timer" else None
        return replace(self, **changes)

    def to_payload(self, data_fields: DataFields) -> dict[str, Any]:
        restricted = self.restricted_to(data_fields)
        payload: dict[str, Any] = {"firstTimer": restricted.first_timer}
        for wire_name, attribute in DATA_FIELD_NAMES.items():
            if attribute == "first_timer" or not data_fields.is_enabled(attribute):
                continue
            value = getattr(restricted, attribute)
            payload[wire_name] = value.strip() if isinstance(value, str) else value
        return payload


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    gifting_enabled: bool = False
    is_winner: bool = False

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "SubmissionResult":
        payload = payload or {}
        return cls(
            gifting_enabled=bool(payload.get("giftingEnabled", False)),
            is_winner=bool(payload.get("isWinner", False)),
        )


@dataclass(frozen=True, slots=True)
class DeviceEnvironment:
    user_agent: str
    locale: str
    screen_width: int
    screen_height: int


@dataclass(frozen=True, slots=True)
class ScanCountUpdate:
    program_id: str
    total_scans: int


@dataclass(frozen=True, slots=True)
class ResultMessage:
    title: str
    body: str
    sub_message: str = ""
    tone: str = "success"


RESULT_MESSAGES: dict[ResultKind, ResultMessage] = {
    ResultKind.WINNER: ResultMessage(
        title="Congratulations!",
        body=(
            "You have been selected to receive a gift from the church! "
            "Please proceed to the ushering stand to collect your gift."
        ),
        sub_message="Thank you for being here. Enjoy the service!",
    ),
    ResultKind.NO_WIN: ResultMessage(
        title="Thank You!",
        body="Your information has been submitted successfully.",
        sub_message="You didn't win this time, but we are glad you are here. Enjoy the service!",
    ),
    ResultKind.NO_GIFTING_ACK: ResultMessage(
        title="Thank You!",
        body="Your information has been submitted successfully.",
        sub_message="Thank you for coming to church today, do enjoy the rest of the service!",
    ),
    ResultKind.FIRST_TIMER_WELCOME: ResultMessage(
        title="Welcome First-Timer!",
        body="Thank you for joining us today! Please kindly wait behind at the close of service.",
        sub_message="We look forward to connecting with you!",
    ),
    ResultKind.COUNT_ONLY_ACK: ResultMessage(
        title="Thank You!",
        body="You have been checked in successfully.",
        sub_message="Enjoy the service!",
    ),
}

STATE_MESSAGES: dict[SessionState, ResultMessage] = {
    SessionState.CLOSED: ResultMessage(
        title="Program Already Closed",
        body="This program may have ended or is no longer active.",
        tone="warning",
    ),
    SessionState.DUPLICATE: ResultMessage(
        title="Already Checked In",
        body="You have already scanned this QR code. Each device can only scan once per program.",
        sub_message="If you believe this is an error, please contact an usher.",
        tone="warning",
    ),
    SessionState.FAILED: ResultMessage(
        title="Something Went Wrong",
        body="We could not check you in right now.",
        sub_message="Please try again, or contact an usher if the problem continues.",
        tone="warning",
    ),
}

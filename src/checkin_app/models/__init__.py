from .checkin import (
    DATA_FIELD_NAMES,
    RESETTABLE_STATES,
    RESULT_MESSAGES,
    STATE_MESSAGES,
    AttendeeFormData,
    DataFields,
    DeviceEnvironment,
    DeviceFingerprint,
    ProgramSnapshot,
    ResultKind,
    ResultMessage,
    ScanCountUpdate,
    ScanRejection,
    SessionState,
    SubmissionResult,
    TrackingMode,
)

__all__ = [
    "DATA_FIELD_NAMES",
    "RESETTABLE_STATES",
    "RESULT_MESSAGES",
    "STATE_MESSAGES",
    "AttendeeFormData",
    "DataFields",
    "DeviceEnvironment",
    "DeviceFingerprint",
    "ProgramSnapshot",
    "ResultKind",
    "ResultMessage",
    "ScanCountUpdate",
    "ScanRejection",
    "SessionState",
    "SubmissionResult",
    "TrackingMode",
]

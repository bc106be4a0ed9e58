from .checkin_session import (
    CheckInError,
    CheckInSession,
    InvalidTransitionError,
    SessionClosedError,
    TransientSubmissionError,
    resolve_result_kind,
)
from .fingerprint import derive_fingerprint, detect_environment
from .http import ApiError, ApiResponseError, ApiTransportError, AuthenticationRequired
from .live_updates import LiveUpdateChannel, LiveUpdateError
from .program_service import AuthContext, AuthService, ProgramService
from .qr_scanner import ProgramQRScanner
from .scan_client import ScanApiClient, ScanRejectedError, classify_rejection

__all__ = [
	"ApiError",
	"ApiResponseError",
	"ApiTransportError",
	"AuthContext",
	"AuthService",
	"AuthenticationRequired",
	"CheckInError",
	"CheckInSession",
	"InvalidTransitionError",
	"LiveUpdateChannel",
	"LiveUpdateError",
	"ProgramQRScanner",
	"ProgramService",
	"ScanApiClient",
	"ScanRejectedError",
	"SessionClosedError",
	"TransientSubmissionError",
	"classify_rejection",
	"derive_fingerprint",
	"detect_environment",
	"resolve_result_kind",
]

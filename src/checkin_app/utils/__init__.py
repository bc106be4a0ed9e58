from .forms import (
    GENDER_OPTIONS,
    SEX_OPTIONS,
    FormValidationError,
    validate_attendee_form,
    validate_gender,
    validate_kiosk_settings,
)
from .links import InvalidProgramLink, parse_program_link

__all__ = [
    "GENDER_OPTIONS",
    "SEX_OPTIONS",
    "FormValidationError",
    "InvalidProgramLink",
    "parse_program_link",
    "validate_attendee_form",
    "validate_gender",
    "validate_kiosk_settings",
]

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlsplit

from checkin_app.models import AttendeeFormData, DataFields

GENDER_OPTIONS: tuple[str, ...] = ("male", "female")
SEX_OPTIONS: tuple[str, ...] = ("Male", "Female")
AGE_RANGE: tuple[int, int] = (1, 120)

REQUIRED_TEXT_FIELDS: tuple[tuple[str, str], ...] = (
    ("full_name", "Full name is required"),
    ("phone_number", "Phone number is required"),
    ("address", "Address is required"),
    ("department", "Department is required"),
)


class FormValidationError(ValueError):
    """Raised when a check-in form fails client-side validation; nothing was sent."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{name}: {message}" for name, message in self.errors.items()))


def _blank(value: str | None) -> bool:
    return not value or not value.strip()


def validate_gender(value: str | None) -> dict[str, str]:
    if value not in GENDER_OPTIONS:
        return {"gender": "Please select your gender"}
    return {}


def validate_attendee_form(form: AttendeeFormData, data_fields: DataFields) -> dict[str, str]:
    errors: dict[str, str] = {}

    for attribute, message in REQUIRED_TEXT_FIELDS:
        if data_fields.is_enabled(attribute) and _blank(getattr(form, attribute)):
            errors[attribute] = message

    if data_fields.sex and form.sex not in SEX_OPTIONS:
        errors["sex"] = "Please select your gender"

    # Age is optional even when collected; only a supplied value is checked.
    if data_fields.age and not _blank(form.age):
        low, high = AGE_RANGE
        try:
            age = int(str(form.age).strip())
        except ValueError:
            errors["age"] = "Age must be a whole number"
        else:
            if not low <= age <= high:
                errors["age"] = f"Age must be between {low} and {high}"

    return errors


def _http_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def validate_kiosk_settings(
    api_base_url: str,
    socket_url: str,
    request_timeout: str,
    locale: str,
) -> dict[str, Any]:
    """Check the kiosk settings form and return the values to store.

    Blank socket URL and locale mean "derive it"; they are stored as ``None``.
    Raises ``FormValidationError`` keyed by setting name.
    """

    errors: dict[str, str] = {}
    values: dict[str, Any] = {}

    api_base_url = (api_base_url or "").strip().rstrip("/")
    if not api_base_url:
        errors["api_base_url"] = "API URL is required"
    elif not _http_url(api_base_url):
        errors["api_base_url"] = "API URL must start with http:// or https://"
    values["api_base_url"] = api_base_url

    socket_url = (socket_url or "").strip().rstrip("/")
    if socket_url and not _http_url(socket_url):
        errors["socket_url"] = "Live update URL must start with http:// or https://"
    values["socket_url"] = socket_url or None

    try:
        timeout = float((request_timeout or "").strip())
    except ValueError:
        errors["request_timeout_seconds"] = "Timeout must be a number of seconds"
    else:
        if not timeout > 0:
            errors["request_timeout_seconds"] = "Timeout must be greater than zero"
        values["request_timeout_seconds"] = timeout

    values["locale"] = (locale or "").strip() or None

    if errors:
        raise FormValidationError(errors)
    return values

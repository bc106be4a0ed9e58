from __future__ import annotations

import locale as locale_module
import platform

from checkin_app.models import DeviceEnvironment, DeviceFingerprint

FALLBACK_LOCALE = "en-US"


def derive_fingerprint(environment: DeviceEnvironment) -> DeviceFingerprint:
    # The server keys duplicate detection on this exact composition.
    return DeviceFingerprint(
        f"{environment.user_agent}-{environment.locale}-"
        f"{environment.screen_width}x{environment.screen_height}"
    )


def normalize_locale(raw: str | None) -> str:
    """Turn ``en_US.UTF-8`` style identifiers into ``en-US``."""

    if not raw:
        return FALLBACK_LOCALE
    tag = raw.split(".", 1)[0].split("@", 1)[0].replace("_", "-").strip()
    if not tag or tag.upper() in ("C", "POSIX"):
        return FALLBACK_LOCALE
    return tag


def kiosk_user_agent(app_name: str, app_version: str) -> str:
    system = platform.system() or "Unknown"
    release = platform.release()
    machine = platform.machine()
    details = "; ".join(part for part in (f"{system} {release}".strip(), machine) if part)
    return f"{app_name.replace(' ', '')}/{app_version} ({details})"


def detect_environment(
    screen_width: int,
    screen_height: int,
    *,
    app_name: str,
    app_version: str,
    locale: str | None = None,
    user_agent: str | None = None,
) -> DeviceEnvironment:
    if locale is None:
        locale = locale_module.getlocale()[0]
    return DeviceEnvironment(
        user_agent=user_agent or kiosk_user_agent(app_name, app_version),
        locale=normalize_locale(locale),
        screen_width=int(screen_width),
        screen_height=int(screen_height),
    )

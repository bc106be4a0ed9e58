from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from checkin_app.config.user_settings_store import UserSettingsStore

BASE_DIR = Path(__file__).resolve().parents[2]
ENV_PATH = BASE_DIR / ".env"
load_dotenv(ENV_PATH)

DOCUMENTS_PATH = Path(os.path.expanduser("~")) / "Documents"
APP_NAME = os.getenv("APP_NAME", "Church Check-in Kiosk")
APP_VERSION = "0.1.0"
logger = logging.getLogger(__name__)
user_settings_store = UserSettingsStore()

APP_DATA_DIR = Path(user_settings_store.get("app_data_dir", str(DOCUMENTS_PATH / APP_NAME))).expanduser()
APP_DATA_DIR.mkdir(parents=True, exist_ok=True)


def _socket_url_from(api_base_url: str) -> str:
    # The Socket.IO server is mounted at the API host root, not under /api.
    base = api_base_url.rstrip("/")
    return base[: -len("/api")] if base.endswith("/api") else base


def _build_settings(app_data_dir: Path) -> "Settings":
    api_base_url = os.getenv("CHECKIN_API_URL") or user_settings_store.get("api_base_url")
    api_base_url = api_base_url.rstrip("/")
    return Settings(
        app_name=APP_NAME,
        app_version=APP_VERSION,
        api_base_url=api_base_url,
        socket_url=(
            os.getenv("CHECKIN_SOCKET_URL")
            or user_settings_store.get("socket_url")
            or _socket_url_from(api_base_url)
        ),
        request_timeout_seconds=float(
            os.getenv("CHECKIN_REQUEST_TIMEOUT", user_settings_store.get("request_timeout_seconds", 15.0))
        ),
        locale=os.getenv("CHECKIN_LOCALE") or user_settings_store.get("locale"),
        qr_camera_index=int(os.getenv("QR_CAMERA_INDEX", "0")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=app_data_dir / "checkin.log",
    )


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    api_base_url: str
    socket_url: str
    request_timeout_seconds: float
    locale: str | None
    qr_camera_index: int
    log_level: str
    log_file: Path

    def __str__(self) -> str:
        return (
            f"Settings(app_name={self.app_name}, "
            f"api_base_url={self.api_base_url}, "
            f"socket_url={self.socket_url}, "
            f"request_timeout_seconds={self.request_timeout_seconds}, "
            f"locale={self.locale}, "
            f"qr_camera_index={self.qr_camera_index}, "
            f"log_level={self.log_level})"
        )


settings = _build_settings(APP_DATA_DIR)


def refresh_settings_from_store() -> None:
    """Rebuild the settings object from the current user store values."""

    global settings, APP_DATA_DIR  # noqa: PLW0603 - module-level singletons

    user_settings_store.reload()

    app_data_dir = Path(user_settings_store.get("app_data_dir", str(DOCUMENTS_PATH / APP_NAME))).expanduser()
    app_data_dir.mkdir(parents=True, exist_ok=True)

    APP_DATA_DIR = app_data_dir
    settings = _build_settings(APP_DATA_DIR)


def current_settings() -> Settings:
    """Return the live settings object; it is replaced on every refresh."""

    return settings


def save_kiosk_settings(**changes: Any) -> Settings:
    """Persist kiosk changes to the user store and rebuild the settings."""

    user_settings_store.update(**changes)
    refresh_settings_from_store()
    logger.info("Kiosk settings saved: %s", settings)
    return settings

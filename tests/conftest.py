from __future__ import annotations

import sys
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from checkin_app.models import DeviceEnvironment, ScanRejection  # noqa: E402
from checkin_app.services.http import ApiTransportError  # noqa: E402
from checkin_app.services.scan_client import ScanRejectedError  # noqa: E402

from fakes import KIOSK_ENVIRONMENT  # noqa: E402


@pytest.fixture
def environment() -> DeviceEnvironment:
    return KIOSK_ENVIRONMENT


@pytest.fixture
def duplicate_rejection() -> ScanRejectedError:
    return ScanRejectedError(
        ScanRejection.DUPLICATE_DEVICE,
        "Device already scanned this program",
        status_code=400,
    )


@pytest.fixture
def transport_error() -> ApiTransportError:
    return ApiTransportError("POST http://api/scan timed out after 15s")

from __future__ import annotations

import re
from urllib.parse import urlsplit

SCAN_PATH_PATTERN = re.compile(r"/scan/(?P<program_id>[^/?#]+)/?$")
PROGRAM_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,64}$")


class InvalidProgramLink(ValueError):
    pass


def parse_program_link(payload: str) -> str:
    """Extract the program id from a check-in QR payload.

    Accepts the check-in URL printed on program QR codes
    (``https://host/scan/<programId>``) or a bare program id.
    """

    cleaned = (payload or "").strip()
    if not cleaned:
        raise InvalidProgramLink("QR code is empty.")

    if "/" not in cleaned:
        if PROGRAM_ID_PATTERN.match(cleaned):
            return cleaned
        raise InvalidProgramLink(f"Not a program id: {cleaned!r}")

    parts = urlsplit(cleaned)
    path = parts.path if parts.scheme or parts.netloc else cleaned.split("?", 1)[0].split("#", 1)[0]
    match = SCAN_PATH_PATTERN.search(path)
    if match is None:
        raise InvalidProgramLink("QR code is not a program check-in link.")

    program_id = match.group("program_id")
    if not PROGRAM_ID_PATTERN.match(program_id):
        raise InvalidProgramLink(f"Not a program id: {program_id!r}")
    return program_id

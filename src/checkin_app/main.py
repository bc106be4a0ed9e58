from __future__ import annotations

import logging
import sys
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent
SRC_DIR = PACKAGE_DIR.parent
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from checkin_app.config.logging import setup_logging
from checkin_app.config.settings import settings


def main() -> None:
    setup_logging(settings.log_level, settings.log_file)
    logging.getLogger(__name__).info("Starting kiosk with %s", settings)

    from checkin_app.ui.app import CheckInApp

    program_link = sys.argv[1] if len(sys.argv) > 1 else None
    app = CheckInApp(program_link)
    app.run()


if __name__ == "__main__":
    main()

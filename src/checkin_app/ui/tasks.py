from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from checkin_app.services import CheckInError, SessionClosedError
from checkin_app.utils import FormValidationError

logger = logging.getLogger(__name__)


def run_session_task(operation: Callable[[], Any]) -> Optional[Exception]:
    """Run a session call on a worker thread and return the error to show, if any.

    A closed session is silent. Anything unexpected is logged with its
    traceback and still handed back so the view can leave its busy state.
    """

    try:
        operation()
    except SessionClosedError:
        return None
    except (CheckInError, FormValidationError) as exc:
        return exc
    except Exception as exc:
        logger.exception("Check-in task failed unexpectedly")
        return exc
    return None

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

from checkin_app.models import ScanCountUpdate

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[ScanCountUpdate], None]


class LiveUpdateError(RuntimeError):
    """Raised when the live-update socket cannot be reached."""


def update_event_name(program_id: str) -> str:
    return f"program-{program_id}-update"


class LiveUpdateChannel:
    """Socket.IO subscription to per-program total-scan pushes.

    Rooms are re-joined after every (re)connect, so a dropped socket keeps
    delivering once the client reconnects.
    """

    def __init__(self, url: str, *, client: socketio.Client | None = None) -> None:
        self._url = url
        self._client = client or socketio.Client(reconnection=True, logger=False)
        self._lock = threading.Lock()
        self._connect_lock = threading.Lock()
        self._subscriptions: dict[str, UpdateCallback] = {}
        self._registered_events: set[str] = set()
        self._client.on("connect", self._handle_connect)
        self._client.on("disconnect", self._handle_disconnect)

    @property
    def connected(self) -> bool:
        return bool(self._client.connected)

    def subscribe(self, program_id: str, on_update: UpdateCallback) -> None:
        event = update_event_name(program_id)
        with self._lock:
            self._subscriptions[program_id] = on_update
            needs_handler = event not in self._registered_events
            self._registered_events.add(event)

        if needs_handler:
            self._client.on(event, lambda data, pid=program_id: self._dispatch(pid, data))

        # Only one caller may connect; later callers join over the open socket.
        with self._connect_lock:
            if self.connected:
                self._client.emit("join-program", program_id)
                return

            try:
                self._client.connect(self._url)
            except SocketConnectionError as exc:
                if self.connected:
                    logger.debug("Socket already connected while subscribing to %s", program_id)
                    self._client.emit("join-program", program_id)
                    return
                with self._lock:
                    self._subscriptions.pop(program_id, None)
                raise LiveUpdateError(f"Could not connect to {self._url}: {exc}") from exc

    def unsubscribe(self, program_id: str) -> None:
        with self._lock:
            removed = self._subscriptions.pop(program_id, None)
        if removed is not None and self.connected:
            self._client.emit("leave-program", program_id)

    def close(self) -> None:
        with self._lock:
            self._subscriptions.clear()
        if self.connected:
            self._client.disconnect()

    def _handle_connect(self) -> None:
        with self._lock:
            program_ids = list(self._subscriptions)
        logger.info("Live updates connected to %s", self._url)
        for program_id in program_ids:
            self._client.emit("join-program", program_id)

    def _handle_disconnect(self, *_args: Any) -> None:
        logger.info("Live updates disconnected from %s", self._url)

    def _dispatch(self, program_id: str, data: Any) -> None:
        with self._lock:
            callback = self._subscriptions.get(program_id)
        if callback is None:
            return

        try:
            total = int(data["totalScans"])
        except (TypeError, KeyError, ValueError):
            logger.warning("Dropping malformed update for program %s: %r", program_id, data)
            return

        callback(ScanCountUpdate(program_id=program_id, total_scans=total))

from __future__ import annotations

import logging
import threading
import time
import unicodedata
from contextlib import suppress
from typing import Any, Callable, Optional

from checkin_app.utils.links import InvalidProgramLink, parse_program_link

logger = logging.getLogger(__name__)

SCAN_INTERVAL_SECONDS = 0.08
DEDUP_INTERVAL_SECONDS = 3.0
PREVIEW_INTERVAL_SECONDS = 0.07
PREVIEW_MAX_WIDTH = 480

ProgramCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]
FrameCallback = Callable[[Any], None]


def decode_symbol_text(raw: bytes | str) -> str:
    if not raw:
        return ""
    if isinstance(raw, str):
        decoded = raw
    else:
        decoded = bytes(raw).decode("utf-8", errors="ignore")
    return unicodedata.normalize("NFC", decoded).strip()


class ProgramLinkFilter:
    """Turn raw QR payloads into program ids, suppressing rapid repeats."""

    def __init__(self, dedup_seconds: float = DEDUP_INTERVAL_SECONDS) -> None:
        self._dedup_seconds = dedup_seconds
        self._last_program_id: Optional[str] = None
        self._last_seen: float = 0.0

    def accept(self, payload: str, now: float) -> Optional[str]:
        """Return the program id for a new scan, ``None`` for a repeat.

        Raises ``InvalidProgramLink`` for QR codes that are not check-in links.
        """

        program_id = parse_program_link(payload)
        if program_id == self._last_program_id and (now - self._last_seen) < self._dedup_seconds:
            return None
        self._last_program_id = program_id
        self._last_seen = now
        return program_id

    def clear(self) -> None:
        self._last_program_id = None
        self._last_seen = 0.0


class ProgramQRScanner:
    """Camera loop that reports program ids read from check-in QR codes."""

    def __init__(self, camera_index: int = 0) -> None:
        self._camera_index = camera_index
        self._running = False
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._filter = ProgramLinkFilter()
        self._last_rejected: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(
        self,
        on_program: ProgramCallback,
        *,
        on_error: Optional[ErrorCallback] = None,
        on_frame: Optional[FrameCallback] = None,
    ) -> bool:
        """Start the background scanner loop; ``False`` when the camera stack is missing."""

        with self._lock:
            if self._running:
                return True

            try:
                import cv2  # type: ignore[import-not-found]
                import zxingcpp  # type: ignore[import-not-found]
            except ImportError:
                logger.warning("QR scanning unavailable: OpenCV or zxing-cpp is not installed")
                if on_error:
                    on_error("Missing QR scanner dependencies. Install opencv-python and zxing-cpp to enable scanning.")
                return False

            self._stop_event.clear()
            self._filter.clear()
            self._last_rejected = None
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(on_program, on_error, on_frame, cv2, zxingcpp),
                daemon=True,
            )
            self._running = True
            self._thread.start()
            return True

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.5)
        self._thread = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run_loop(
        self,
        on_program: ProgramCallback,
        on_error: Optional[ErrorCallback],
        on_frame: Optional[FrameCallback],
        cv2_module,
        zxing_module,
    ) -> None:
        capture = None
        last_preview = 0.0
        try:
            capture = self._open_capture(cv2_module, on_error)
            if capture is None:
                return

            while not self._stop_event.is_set():
                ok, frame = capture.read()
                if not ok:
                    time.sleep(SCAN_INTERVAL_SECONDS)
                    continue

                now = time.time()
                if on_frame and (now - last_preview) >= PREVIEW_INTERVAL_SECONDS:
                    on_frame(self._preview(frame, cv2_module))
                    last_preview = now

                for payload in self._decode(frame, zxing_module):
                    self._handle_payload(payload, now, on_program, on_error)

                time.sleep(SCAN_INTERVAL_SECONDS)
        finally:
            if capture is not None:
                with suppress(Exception):
                    capture.release()
            self._stop_event.clear()
            with self._lock:
                self._running = False

    def _handle_payload(
        self,
        payload: str,
        now: float,
        on_program: ProgramCallback,
        on_error: Optional[ErrorCallback],
    ) -> None:
        try:
            program_id = self._filter.accept(payload, now)
        except InvalidProgramLink as exc:
            if payload == self._last_rejected:
                return
            self._last_rejected = payload
            logger.debug("Ignoring QR payload %r: %s", payload, exc)
            if on_error:
                on_error(str(exc))
            return
        if program_id is not None:
            logger.info("Scanned program link for %s", program_id)
            on_program(program_id)

    @staticmethod
    def _decode(frame: Any, zxing_module) -> list[str]:
        try:
            results = zxing_module.read_barcodes(
                frame,
                formats=zxing_module.BarcodeFormat.QRCode,
                try_rotate=True,
                try_downscale=True,
            )
        except Exception as exc:  # pragma: no cover - decoder faults on corrupt frames
            logger.debug("QR decode failed: %s", exc)
            return []

        payloads: list[str] = []
        for result in results:
            if hasattr(result, "valid") and not result.valid:
                continue
            text = decode_symbol_text(getattr(result, "text", "")) or decode_symbol_text(
                getattr(result, "bytes", b"") or b""
            )
            if text:
                payloads.append(text)
        return payloads

    @staticmethod
    def _preview(frame: Any, cv2_module) -> Any:
        preview = cv2_module.flip(frame, 1)
        if PREVIEW_MAX_WIDTH and preview.shape[1] > PREVIEW_MAX_WIDTH:
            scale = PREVIEW_MAX_WIDTH / float(preview.shape[1])
            height = int(preview.shape[0] * scale)
            preview = cv2_module.resize(preview, (PREVIEW_MAX_WIDTH, height))
        return cv2_module.cvtColor(preview, cv2_module.COLOR_BGR2RGB)

    def _open_capture(self, cv2_module, on_error: Optional[ErrorCallback]):
        backends = [getattr(cv2_module, "CAP_DSHOW", None), getattr(cv2_module, "CAP_ANY", None)]

        for backend in backends:
            if backend is None:
                capture = cv2_module.VideoCapture(self._camera_index)
            else:
                capture = cv2_module.VideoCapture(self._camera_index, backend)

            if capture.isOpened():
                return capture
            capture.release()

        logger.warning("Camera %s could not be opened", self._camera_index)
        if on_error:
            on_error("Unable to access the camera. Check that it is connected and not used by another app.")
        return None

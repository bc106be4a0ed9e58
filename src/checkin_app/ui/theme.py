from __future__ import annotations

# Surfaces
KIOSK_BG = "#1B1B1E"
KIOSK_SURFACE = "#242428"
KIOSK_CARD = "#2C2C31"
KIOSK_BORDER = "#3A3A40"

# Brand
KIOSK_ACCENT = "#F96D10"
KIOSK_ACCENT_HOVER = "#E0610C"

# Text
KIOSK_TEXT = "#EBEBD3"
KIOSK_TEXT_MUTED = "#B5B5A3"

# Status
KIOSK_SUCCESS = "#6A9955"
KIOSK_WARNING = "#F48771"
KIOSK_ERROR = "#E5534B"

TONE_COLORS = {
    "info": KIOSK_TEXT_MUTED,
    "success": KIOSK_SUCCESS,
    "warning": KIOSK_WARNING,
    "error": KIOSK_ERROR,
}

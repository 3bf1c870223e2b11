"""Runtime configuration defaults for persistence, logging and printing."""

from __future__ import annotations

import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


DATA_PATH = os.environ.get("TRICICLO_DATA_PATH", "data/triciclo.json")
EXPORT_DIR = os.environ.get("TRICICLO_EXPORT_DIR", ".")
LOG_PATH = os.environ.get("TRICICLO_LOG_PATH", "/tmp/triciclo-debug.log")

# "record" keeps a zero-total sale when a day closes without sales, "reset" only clears the session.
EMPTY_CLOSE_POLICY = os.environ.get("TRICICLO_EMPTY_CLOSE", "record").strip().lower()

PRINT_TICKETS = _env_flag("TRICICLO_PRINT_TICKETS")
PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 32
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 16
PRINTER_TAIL_SPACER_PX = 70

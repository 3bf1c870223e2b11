"""Close-day ticket printing on a USB ESC/POS thermal printer."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from triciclo.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_TAIL_SPACER_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from triciclo.models import SaleRecord
from triciclo.rendering import money

logger = logging.getLogger(__name__)

_SEPARATOR_TOKEN = "__SEP__"
_SEPARATOR_HEIGHT_PX = 14
_SEPARATOR_THICKNESS_PX = 3
_LINE_EXTRA_PX = 14
_FONT_OVERRIDE_ENV = "TRICICLO_PRINTER_FONT_PATH"
_SYSTEM_FONTS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
)


def close_ticket_lines(record: SaleRecord) -> list[str]:
    """Text lines of the close-day ticket; separators are marked with a token."""
    try:
        stamp = datetime.fromisoformat(record.date).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        stamp = record.date
    lines = ["DAY CLOSE", stamp, _SEPARATOR_TOKEN]
    for item in record.items:
        label = f"{item.name} {item.presentation_name}".strip()
        lines.append(f"{item.count}x {label}")
        lines.append(f"    {money(item.total)}")
    if not record.items:
        lines.append("No sales")
    lines.append(_SEPARATOR_TOKEN)
    lines.append(f"TOTAL {money(record.total_amount)}")
    return lines


def resolve_printer_font_path() -> str:
    """First existing font among the env override, the configured path and common system fonts."""
    override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates = dict.fromkeys(p for p in (override, PRINTER_FONT_PATH, *_SYSTEM_FONTS) if p)
    found = next((p for p in candidates if Path(p).is_file()), None)
    if found is None:
        raise RuntimeError(f"No ticket font found; set {_FONT_OVERRIDE_ENV}. Looked in: {', '.join(candidates)}")
    return found


def _load_font() -> object:
    from PIL import ImageFont

    return ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)


def check_printer_dependencies() -> tuple[bool, str]:
    """Report whether a ticket could be printed right now."""
    try:
        import escpos.printer  # noqa: F401

        _load_font()
    except Exception as exc:
        return (False, f"Printer unavailable: {exc}")
    return (True, "Printer ready")


def _blank(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def _render_line(text: str, font: object) -> object:
    from PIL import ImageDraw

    img = _blank(PRINTER_FONT_SIZE + _LINE_EXTRA_PX)
    draw = ImageDraw.Draw(img)
    left, top, _, bottom = draw.textbbox((0, 0), text, font=font)
    # Shift by the bbox top so descenders stay on the canvas.
    draw.text((PRINTER_LEFT_INDENT_PX - left, (img.height - (bottom - top)) // 2 - top), text, font=font, fill=0)
    return img


def _render_separator() -> object:
    from PIL import ImageDraw

    img = _blank(_SEPARATOR_HEIGHT_PX)
    top = (_SEPARATOR_HEIGHT_PX - _SEPARATOR_THICKNESS_PX) // 2
    ImageDraw.Draw(img).rectangle((0, top, PRINTER_WIDTH_PX - 1, top + _SEPARATOR_THICKNESS_PX - 1), fill=0)
    return img


def print_close_ticket(record: SaleRecord) -> None:
    """Print the close-day summary and cut the ticket."""
    from escpos.printer import Usb

    font = _load_font()
    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    for line in close_ticket_lines(record):
        printer.image(_render_separator() if line == _SEPARATOR_TOKEN else _render_line(line, font))
    printer.image(_blank(PRINTER_TAIL_SPACER_PX))
    printer.cut()
    logger.info("close_ticket_printed record=%s lines=%d", record.id, len(record.items))

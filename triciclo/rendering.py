"""Rendering helpers: money, product colours and Rich labels."""

from __future__ import annotations

from rich.text import Text

from triciclo.catalog import resolve_unit_price
from triciclo.constant import CONTRAST_BRIGHTNESS_THRESHOLD, PRODUCT_COLORS
from triciclo.models import Presentation, Product, SessionEntry


def money(amount: float) -> str:
    return f"${amount:,.2f}"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def color_for_name(name: str) -> str:
    """Pick a stable palette colour from a 32-bit string hash of ``name``."""
    hash_value = 0
    units = name.encode("utf-16-le")
    for idx in range(0, len(units), 2):
        code_unit = units[idx] | (units[idx + 1] << 8)
        hash_value = code_unit + (_to_int32(_to_int32(hash_value) << 5) - hash_value)
    return PRODUCT_COLORS[abs(hash_value) % len(PRODUCT_COLORS)]


def product_color(product: Product | SessionEntry) -> str:
    return product.color or color_for_name(product.name)


def contrast_color(hex_color: str | None) -> str:
    """Black or white, whichever reads better on ``hex_color``."""
    if not hex_color:
        return "#ffffff"
    raw = hex_color.lstrip("#")
    try:
        r, g, b = (int(raw[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return "#ffffff"
    brightness = (r * 299 + g * 587 + b * 114) / 1000
    return "#000000" if brightness > CONTRAST_BRIGHTNESS_THRESHOLD else "#ffffff"


def swatch_style(hex_color: str) -> str:
    return f"bold {contrast_color(hex_color)} on {hex_color}"


def format_product_label(product: Product | SessionEntry) -> Text:
    """Render a product name on its colour swatch followed by its per-liter price."""
    color = product_color(product)
    text = Text()
    text.append(f" {product.name} ", style=swatch_style(color))
    text.append(f"  {money(product.price_per_liter)}/L", style="dim")
    return text


def format_presentation_prices(product: Product) -> Text:
    text = Text()
    for idx, pres in enumerate(product.presentations):
        if idx > 0:
            text.append("  ")
        price = resolve_unit_price(product.price_per_liter, pres)
        marker = "*" if pres.price is not None else ""
        text.append(f"[{pres.name} {money(price)}{marker}]", style="white")
    return text


def format_presentation_row(pres: Presentation) -> Text:
    text = Text()
    text.append(pres.name, style="bold")
    text.append(f"  {pres.liters:g} L", style="dim")
    if pres.is_protected:
        text.append("  (base)", style="bold #a29bfe")
    return text

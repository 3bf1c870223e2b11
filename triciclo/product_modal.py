"""Product editor modal screen."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from triciclo.catalog import presentation_choices, resolve_unit_price
from triciclo.constant import PRODUCT_COLORS
from triciclo.models import AppData, Product, ProductPresentation, coerce_optional_float
from triciclo.rendering import money, swatch_style


@dataclass
class ProductForm:
    name: str
    price_per_liter: float
    color: str
    presentations: list[ProductPresentation]


class ProductModal(ModalScreen[None]):
    """Edit name, price per liter, colour and offered presentations of one product.

    ``on_submit`` saves the form and returns an error message, or an empty
    string when the product was saved and the modal can close.
    """

    CSS = """
    ProductModal {
        align: center middle;
        background: $background 60%;
    }

    #product-dialog {
        width: 72;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #product-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #product-body {
        margin-bottom: 1;
        color: white;
    }

    #product-error {
        color: #ffb3b3;
    }

    #product-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    _NAME_KIND = "name"
    _PRICE_KIND = "price"
    _COLOR_KIND = "color"
    _PRESENTATION_KIND = "presentation"

    def __init__(self, data: AppData, product: Product | None, on_submit: Callable[[ProductForm], str]) -> None:
        super().__init__()
        self.data = data
        self.product = product
        self.on_submit = on_submit
        self.cursor_index = 0
        self.error = ""
        self.name_value = product.name if product else ""
        self.price_value = f"{product.price_per_liter:g}" if product else ""
        self.color_index = PRODUCT_COLORS.index(product.color) if product and product.color in PRODUCT_COLORS else 0
        self.selected_ids: set[int] = {p.id for p in product.presentations} if product else set()
        self.override_values: dict[int, str] = {
            p.id: f"{p.price:g}" for p in (product.presentations if product else []) if p.price is not None
        }

    def compose(self) -> ComposeResult:
        with Container(id="product-dialog"):
            yield Static("Edit product" if self.product else "New product", id="product-title")
            yield Static(id="product-body")
            yield Static(id="product-error")
            yield Static(
                "↑/↓ move. Type to edit. Space toggle size. ←/→ colour. Enter save. Esc cancel.",
                id="product-help",
            )

    def on_mount(self) -> None:
        self._refresh_content()

    def _rows(self) -> list[tuple[str, int | None]]:
        rows: list[tuple[str, int | None]] = [(self._NAME_KIND, None), (self._PRICE_KIND, None), (self._COLOR_KIND, None)]
        rows.extend((self._PRESENTATION_KIND, pres.id) for pres in self.data.presentations)
        return rows

    def on_key(self, event: Key) -> None:
        event.stop()
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            return
        if event.key == "enter":
            self._submit()
            return

        rows = self._rows()
        kind, pres_id = rows[self.cursor_index]
        if event.key in {"down", "tab"}:
            self.cursor_index = (self.cursor_index + 1) % len(rows)
        elif event.key in {"up", "shift+tab"}:
            self.cursor_index = (self.cursor_index - 1) % len(rows)
        elif kind == self._COLOR_KIND and event.key in {"left", "right"}:
            step = 1 if event.key == "right" else -1
            self.color_index = (self.color_index + step) % len(PRODUCT_COLORS)
        elif kind == self._PRESENTATION_KIND and pres_id is not None and event.key == "space":
            if pres_id in self.selected_ids:
                self.selected_ids.discard(pres_id)
            else:
                self.selected_ids.add(pres_id)
        elif event.key == "backspace":
            self._edit_text(kind, pres_id, None)
        elif event.is_printable and event.character:
            self._edit_text(kind, pres_id, event.character)
        self.error = ""
        self._refresh_content()

    def _edit_text(self, kind: str, pres_id: int | None, char: str | None) -> None:
        def apply(value: str) -> str:
            return value[:-1] if char is None else value + char

        if kind == self._NAME_KIND:
            self.name_value = apply(self.name_value)
        elif kind == self._PRICE_KIND and (char is None or char.isdigit() or char in ".,"):
            self.price_value = apply(self.price_value)
        elif kind == self._PRESENTATION_KIND and pres_id is not None and (char is None or char.isdigit() or char in ".,"):
            self.override_values[pres_id] = apply(self.override_values.get(pres_id, ""))

    def build_form(self) -> ProductForm | str:
        price = coerce_optional_float(self.price_value)
        if price is None:
            return "Enter a price per liter."
        overrides: dict[int, float | None] = {}
        for pres_id, raw in self.override_values.items():
            overrides[pres_id] = coerce_optional_float(raw)
        return ProductForm(
            name=self.name_value,
            price_per_liter=price,
            color=PRODUCT_COLORS[self.color_index],
            presentations=presentation_choices(self.data, self.selected_ids, overrides),
        )

    def _submit(self) -> None:
        form = self.build_form()
        error = form if isinstance(form, str) else self.on_submit(form)
        if error:
            self.error = error
            self._refresh_content()
            return
        self.dismiss(None)

    def _refresh_content(self) -> None:
        price = coerce_optional_float(self.price_value) or 0.0
        content = Text(style="white")
        for idx, (kind, pres_id) in enumerate(self._rows()):
            if idx > 0:
                content.append("\n")
            active = idx == self.cursor_index
            pointer = "➤ " if active else "  "
            cursor = "|" if active else ""
            if kind == self._NAME_KIND:
                content.append(f"{pointer}Name: {self.name_value}{cursor}")
            elif kind == self._PRICE_KIND:
                content.append(f"{pointer}Price per liter ($): {self.price_value}{cursor}")
            elif kind == self._COLOR_KIND:
                color = PRODUCT_COLORS[self.color_index]
                content.append(f"{pointer}Colour: ")
                content.append(f" {color} ", style=swatch_style(color))
                content.append("\n")
            else:
                pres = self.data.presentation(pres_id)
                if pres is None:
                    continue
                checked = pres_id in self.selected_ids
                override = self.override_values.get(pres_id, "")
                shown = resolve_unit_price(price, ProductPresentation(pres.id, pres.name, pres.liters, coerce_optional_float(override)))
                content.append(
                    f"{pointer}{'[x]' if checked else '[ ]'} {pres.name} ({pres.liters:g} L)  {money(shown)}",
                    style="bold white" if checked else "white",
                )
                content.append(f"  fixed: {override}{cursor}", style="dim")
        self.query_one("#product-body", Static).update(content)
        self.query_one("#product-error", Static).update(self.error)

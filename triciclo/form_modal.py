"""Small typed-form modal screen."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static


@dataclass(frozen=True)
class FormField:
    key: str
    label: str
    initial: str = ""
    hint: str = ""


class FormModal(ModalScreen[dict[str, str] | None]):
    """Collect a few free-text values.

    ``validate`` receives the typed values and returns an error message, or
    an empty string to accept and dismiss with the values.
    """

    CSS = """
    FormModal {
        align: center middle;
        background: $background 60%;
    }

    #form-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #form-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #form-body {
        color: white;
        margin-bottom: 1;
    }

    #form-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #form-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        fields: list[FormField],
        validate: Callable[[dict[str, str]], str] | None = None,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.fields = fields
        self.values = {f.key: f.initial for f in fields}
        self.validate = validate
        self.cursor_index = 0
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="form-dialog"):
            yield Static(self.title_text, id="form-title")
            yield Static(id="form-body")
            yield Static(id="form-error")
            yield Static("Type to edit. Tab/↑/↓ move. Enter confirm. Esc cancel.", id="form-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        event.stop()
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            return
        if event.key == "enter":
            self._confirm()
            return

        key = self.fields[self.cursor_index].key
        if event.key in {"tab", "down"}:
            self.cursor_index = (self.cursor_index + 1) % len(self.fields)
        elif event.key in {"shift+tab", "up"}:
            self.cursor_index = (self.cursor_index - 1) % len(self.fields)
        elif event.key == "backspace":
            self.values[key] = self.values[key][:-1]
            self.error = ""
        elif event.is_printable and event.character:
            self.values[key] += event.character
            self.error = ""
        self._refresh_content()

    def _confirm(self) -> None:
        values = {k: v.strip() for k, v in self.values.items()}
        error = self.validate(values) if self.validate else ""
        if error:
            self.error = error
            self._refresh_content()
            return
        self.dismiss(values)

    def _refresh_content(self) -> None:
        body = Text()
        for idx, form_field in enumerate(self.fields):
            if idx > 0:
                body.append("\n")
            active = idx == self.cursor_index
            pointer = "➤ " if active else "  "
            body.append(f"{pointer}{form_field.label}: ", style="bold white" if active else "white")
            body.append(self.values[form_field.key] + ("|" if active else ""))
            if form_field.hint:
                body.append(f"  {form_field.hint}", style="dim")
        self.query_one("#form-body", Static).update(body)
        self.query_one("#form-error", Static).update(self.error)

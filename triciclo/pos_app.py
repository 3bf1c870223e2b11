"""Main Textual app class."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Header, Static

from triciclo.config import EXPORT_DIR, PRINT_TICKETS
from triciclo.constant import PRODUCT_STATUS_DISCONTINUED, WIPE_CONFIRMATION_WORD
from triciclo.confirm_modal import ConfirmModal
from triciclo.controller import Outcome, PosController
from triciclo.errors import ValidationError
from triciclo.form_modal import FormField, FormModal
from triciclo.ledger import SalesSummary, category_name, parse_day, summarize_sales
from triciclo.models import AppData, Expense, PresentationItem, SaleRecord, SessionEntry, coerce_optional_float
from triciclo.printer import check_printer_dependencies, print_close_ticket
from triciclo.product_modal import ProductForm, ProductModal
from triciclo.rendering import format_presentation_prices, format_presentation_row, format_product_label, money
from triciclo.reports import product_status
from triciclo.session import filter_products

logger = logging.getLogger(__name__)

VIEWS: list[tuple[str, str]] = [
    ("inventory", "Inventory"),
    ("sizes", "Sizes"),
    ("pos", "POS"),
    ("sales", "Sales"),
    ("expenses", "Expenses"),
    ("data", "Data"),
]

VIEW_HELP: dict[str, str] = {
    "inventory": "A add  E edit  D delete",
    "sizes": "A add  E edit  D delete",
    "pos_setup": "Space select  / search  S start day",
    "pos_active": "+/- count  0 reset size  R reset product  U undo  C close day",
    "sales": "F filter  X clear  D delete  P pdf  E excel",
    "expenses": "A add  D delete  F filter  X clear  N new category  M remove category  P pdf  E excel",
    "data": "Enter run action",
}

DATA_ACTIONS: list[str] = ["Export backup", "Import backup", "Delete all data"]


def _validate_number(key: str, label: str, positive: bool = True) -> Any:
    def _check(values: dict[str, str]) -> str:
        number = coerce_optional_float(values.get(key, ""))
        if number is None or (positive and number <= 0):
            return f"{label} must be a number greater than zero."
        return ""

    return _check


def _validate_dates(values: dict[str, str]) -> str:
    try:
        parse_day(values.get("from"))
        parse_day(values.get("to"))
    except ValidationError as exc:
        return str(exc)
    return ""


class TricicloApp(App):
    """Keyboard point of sale for a water refill business."""

    TITLE = "Triciclo POS"
    SUB_TITLE = "Inventory / Sales / Expenses"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #list-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #side-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #status-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #details {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #main-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    view = reactive("inventory")
    input_state = reactive("normal")
    search_query = reactive("")

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, controller: PosController, export_dir: str | Path | None = None) -> None:
        super().__init__()
        self.controller = controller
        self.export_dir = Path(export_dir or EXPORT_DIR)
        self.system_status = ""
        self.selected_by_view: dict[str, int] = {name: 0 for name, _ in VIEWS}
        self.pos_selection: set[str] = set()
        self.sales_filter: dict[str, str] = {}
        self.expense_filter: dict[str, str] = {}

    @property
    def data(self) -> AppData:
        return self.controller.data

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="list-pane"):
                yield Static(id="view-title", classes="pane-title")
                yield Static(id="main-list")
            with Vertical(id="side-pane"):
                yield Static(id="status-bar")
                yield Static(id="details")

    def on_mount(self) -> None:
        if PRINT_TICKETS:
            _, msg = check_printer_dependencies()
            self.system_status = msg
        logger.info("app_mounted data=%s status=%r", self.controller.path, self.system_status)
        self._refresh_all()

    # --- key dispatch ----------------------------------------------------

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, ModalScreen):
            return

        if self.input_state == "search":
            self._handle_search_key(event)
            return

        char = event.character or ""
        if len(char) == 1 and char in "123456":
            self.view = VIEWS[int(char) - 1][0]
            self._refresh_all()
            event.stop()
            return

        if event.key in {"j", "down"}:
            self._move_selection(1)
        elif event.key in {"k", "up"}:
            self._move_selection(-1)
        else:
            handler = getattr(self, f"_key_{self._view_mode()}", None)
            if handler is None or not handler(event.key, char):
                return
        event.stop()

    def _handle_search_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c", "enter"}:
            self.input_state = "normal"
            if event.key != "enter":
                self.search_query = ""
        elif event.key == "backspace":
            self.search_query = self.search_query[:-1]
        elif event.is_printable and event.character:
            self.search_query += event.character
        self.selected_by_view["pos"] = 0
        self._refresh_all()
        event.stop()

    def _view_mode(self) -> str:
        if self.view == "pos":
            return "pos_active" if self._active_pos() else "pos_setup"
        return self.view

    def _active_pos(self) -> bool:
        return self.view == "pos" and self.controller.session.is_active

    # --- selection helpers ---------------------------------------------

    def _rows(self) -> list[Any]:
        mode = self._view_mode()
        if mode == "inventory":
            return list(self.data.products)
        if mode == "sizes":
            return list(self.data.presentations)
        if mode == "pos_setup":
            return filter_products(self.data.products, self.search_query)
        if mode == "pos_active":
            return [(entry, item) for entry in self.data.pos_active_products for item in entry.presentation_items]
        if mode == "sales":
            return list(reversed(self._filtered_sales()))
        if mode == "expenses":
            return list(reversed(self._filtered_expenses()))
        return list(DATA_ACTIONS)

    def _selected(self) -> Any:
        rows = self._rows()
        if not rows:
            return None
        idx = min(self.selected_by_view.get(self.view, 0), len(rows) - 1)
        return rows[idx]

    def _move_selection(self, delta: int) -> None:
        rows = self._rows()
        if not rows:
            return
        current = self.selected_by_view.get(self.view, 0)
        self.selected_by_view[self.view] = (current + delta) % len(rows)
        self._refresh_all()

    def _report(self, outcome: Outcome) -> Outcome:
        if outcome.message:
            self.system_status = outcome.message
        self._refresh_all()
        return outcome

    def _confirm(self, message: str, on_yes: Any) -> None:
        def _done(confirmed: bool | None) -> None:
            if confirmed:
                on_yes()

        self.push_screen(ConfirmModal(message), _done)

    # --- inventory -------------------------------------------------------

    def _key_inventory(self, key: str, char: str) -> bool:
        product = self._selected()
        if key == "a":
            self._open_product_modal(None)
        elif key == "e" and product is not None:
            self._open_product_modal(product)
        elif key == "d" and product is not None:
            self._confirm(
                f"Delete product {product.name}?",
                lambda: self._report(self.controller.delete_product(product.id)),
            )
        else:
            return False
        return True

    def _open_product_modal(self, product: Any) -> None:
        def _submit(form: ProductForm) -> str:
            outcome = self.controller.save_product(
                name=form.name,
                price_per_liter=form.price_per_liter,
                presentations=form.presentations,
                color=form.color,
                product_id=product.id if product is not None else None,
            )
            if not outcome.ok:
                return outcome.message
            self._report(outcome)
            return ""

        self.push_screen(ProductModal(self.data, product, _submit))

    # --- presentations ---------------------------------------------------

    def _key_sizes(self, key: str, char: str) -> bool:
        pres = self._selected()
        if key == "a":
            self.push_screen(
                FormModal(
                    "New presentation",
                    [FormField("name", "Name", hint="e.g. 500ml"), FormField("liters", "Liters")],
                    _validate_number("liters", "Liters"),
                ),
                lambda values: values and self._report(
                    self.controller.add_presentation(values["name"], coerce_optional_float(values["liters"]))
                ),
            )
        elif key == "e" and pres is not None:
            title = "Edit presentation"
            if pres.is_protected:
                title += " (base size: computed prices follow the new volume)"
            self.push_screen(
                FormModal(
                    title,
                    [FormField("name", "Name", pres.name), FormField("liters", "Liters", f"{pres.liters:g}")],
                    _validate_number("liters", "Liters"),
                ),
                lambda values: values and self._report(
                    self.controller.edit_presentation(pres.id, values["name"], coerce_optional_float(values["liters"]))
                ),
            )
        elif key == "d" and pres is not None:
            if pres.is_protected:
                self._report(self.controller.delete_presentation(pres.id))
            else:
                self._confirm(
                    f"Delete {pres.name}? It is also removed from every product.",
                    lambda: self._report(self.controller.delete_presentation(pres.id)),
                )
        else:
            return False
        return True

    # --- POS -------------------------------------------------------------

    def _key_pos_setup(self, key: str, char: str) -> bool:
        product = self._selected()
        if key in {"space", "enter"} and product is not None:
            if product.id in self.pos_selection:
                self.pos_selection.discard(product.id)
            else:
                self.pos_selection.add(product.id)
            self._refresh_all()
        elif char == "/":
            self.input_state = "search"
            self.search_query = ""
            self._refresh_all()
        elif key == "s":
            outcome = self._report(self.controller.start_session(sorted(self.pos_selection)))
            if outcome.ok:
                self.pos_selection.clear()
                self.search_query = ""
                self.selected_by_view["pos"] = 0
                self._refresh_all()
        else:
            return False
        return True

    def _key_pos_active(self, key: str, char: str) -> bool:
        selected = self._selected()
        entry, item = selected if selected is not None else (None, None)
        if char in {"+", "="} or key == "right":
            if entry is not None:
                self._report(self.controller.update_item_count(entry.id, item.presentation_id, 1))
        elif char == "-" or key == "left":
            if entry is not None:
                self._report(self.controller.update_item_count(entry.id, item.presentation_id, -1))
        elif char == "0":
            if entry is not None:
                self._report(self.controller.reset_presentation_count(entry.id, item.presentation_id))
        elif key == "r":
            if entry is not None:
                self._report(self.controller.reset_product_counts(entry.id))
        elif key == "u":
            self._report(self.controller.undo())
        elif key == "c":
            self._close_day()
        else:
            return False
        return True

    def _close_day(self, confirm_empty: bool = False) -> None:
        total = self.controller.compute_total()
        lines = self.controller.session.sold_items()
        if lines and not confirm_empty:
            self._confirm(
                f"Close today's sales?\nTotal: {money(total)}\nLines: {len(lines)}",
                lambda: self._finish_close(confirm_empty=False),
            )
            return
        self._finish_close(confirm_empty=confirm_empty)

    def _finish_close(self, confirm_empty: bool) -> None:
        outcome = self.controller.close_session(confirm_empty=confirm_empty)
        if outcome.needs_confirmation:
            self._confirm(outcome.message, lambda: self._close_day(confirm_empty=True))
            return
        self._report(outcome)
        if outcome.ok and PRINT_TICKETS and isinstance(outcome.value, SaleRecord):
            try:
                print_close_ticket(outcome.value)
            except Exception as exc:
                logger.exception("close_ticket_print_failed record=%s", outcome.value.id)
                self.system_status = f"{outcome.message} (print failed: {exc})"
        if outcome.ok:
            self.view = "sales"
            self.selected_by_view["sales"] = 0
            self._refresh_all()

    # --- sales -----------------------------------------------------------

    def _filtered_sales(self) -> list[SaleRecord]:
        outcome = self.controller.filter_sales(self.sales_filter.get("from"), self.sales_filter.get("to"))
        return outcome.value if outcome.ok else list(self.data.sales_history)

    def _key_sales(self, key: str, char: str) -> bool:
        record = self._selected()
        if key == "f":
            self._open_date_filter("Filter sales", self.sales_filter, with_keyword=False)
        elif key == "x":
            self.sales_filter = {}
            self._refresh_all()
        elif key == "d" and record is not None:
            self._confirm(
                f"Delete the sale of {record.day} ({money(record.total_amount)})?",
                lambda: self._report(self.controller.delete_sale(record.id)),
            )
        elif key in {"p", "e"}:
            fmt = "pdf" if key == "p" else "excel"
            self._report(
                self.controller.export_report(
                    "sales", fmt, self.export_dir, self.sales_filter.get("from"), self.sales_filter.get("to")
                )
            )
        else:
            return False
        return True

    def _open_date_filter(self, title: str, target: dict[str, str], with_keyword: bool) -> None:
        fields = [
            FormField("from", "From", target.get("from", ""), "YYYY-MM-DD"),
            FormField("to", "To", target.get("to", ""), "YYYY-MM-DD"),
        ]
        if with_keyword:
            fields.append(FormField("keyword", "Keyword", target.get("keyword", "")))

        def _validate(values: dict[str, str]) -> str:
            error = _validate_dates(values)
            if error:
                return error
            start, end = parse_day(values.get("from")), parse_day(values.get("to"))
            if start and end and end < start:
                return "The end date cannot be earlier than the start date."
            return ""

        def _apply(values: dict[str, str] | None) -> None:
            if values is None:
                return
            target.clear()
            target.update({k: v for k, v in values.items() if v})
            self.selected_by_view[self.view] = 0
            self._refresh_all()

        self.push_screen(FormModal(title, fields, _validate), _apply)

    # --- expenses --------------------------------------------------------

    def _filtered_expenses(self) -> list[Expense]:
        outcome = self.controller.filter_expenses(
            self.expense_filter.get("from"), self.expense_filter.get("to"), self.expense_filter.get("keyword", "")
        )
        return outcome.value if outcome.ok else list(self.data.expenses)

    def _category_by_name(self, name: str) -> Any:
        wanted = name.strip().lower()
        for category in self.data.expense_categories:
            if category.name.lower() == wanted:
                return category
        return None

    def _key_expenses(self, key: str, char: str) -> bool:
        expense = self._selected()
        if key == "a":
            self._open_expense_form()
        elif key == "d" and expense is not None:
            self._confirm(
                f"Delete the expense of {money(expense.amount)}?",
                lambda: self._report(self.controller.delete_expense(expense.id)),
            )
        elif key == "f":
            self._open_date_filter("Filter expenses", self.expense_filter, with_keyword=True)
        elif key == "x":
            self.expense_filter = {}
            self._refresh_all()
        elif key == "n":
            self.push_screen(
                FormModal("New category", [FormField("name", "Name")]),
                lambda values: values and self._report(self.controller.add_category(values["name"])),
            )
        elif key == "m":
            self._open_remove_category()
        elif key in {"p", "e"}:
            fmt = "pdf" if key == "p" else "excel"
            self._report(
                self.controller.export_report(
                    "expenses",
                    fmt,
                    self.export_dir,
                    self.expense_filter.get("from"),
                    self.expense_filter.get("to"),
                    self.expense_filter.get("keyword", ""),
                )
            )
        else:
            return False
        return True

    def _open_expense_form(self) -> None:
        names = ", ".join(c.name for c in self.data.expense_categories)

        def _validate(values: dict[str, str]) -> str:
            if self._category_by_name(values.get("category", "")) is None:
                return f"Choose a category: {names}"
            return _validate_number("amount", "Amount")(values)

        def _save(values: dict[str, str] | None) -> None:
            if values is None:
                return
            category = self._category_by_name(values["category"])
            amount = coerce_optional_float(values["amount"])
            self._report(self.controller.add_expense(category.id, amount, values["description"]))

        self.push_screen(
            FormModal(
                "New expense",
                [
                    FormField("category", "Category", hint=names),
                    FormField("amount", "Amount ($)"),
                    FormField("description", "Description"),
                ],
                _validate,
            ),
            _save,
        )

    def _open_remove_category(self) -> None:
        def _validate(values: dict[str, str]) -> str:
            return "" if self._category_by_name(values.get("name", "")) else "No category with that name."

        def _remove(values: dict[str, str] | None) -> None:
            if values is None:
                return
            category = self._category_by_name(values["name"])
            self._confirm(
                f"Delete category {category.name}?",
                lambda: self._report(self.controller.delete_category(category.id)),
            )

        self.push_screen(FormModal("Remove category", [FormField("name", "Name")], _validate), _remove)

    # --- data ------------------------------------------------------------

    def _key_data(self, key: str, char: str) -> bool:
        if key != "enter":
            return False
        action = self._selected()
        if action == "Export backup":
            self.push_screen(
                FormModal("Export backup", [FormField("directory", "Directory", str(self.export_dir))]),
                lambda values: values and self._report(self.controller.export_backup(values["directory"] or ".")),
            )
        elif action == "Import backup":
            self.push_screen(
                FormModal("Import backup", [FormField("path", "Backup file")]),
                lambda values: values and self._confirm(
                    "Importing replaces all current data and ends any open sales day. Continue?",
                    lambda: self._report(self.controller.import_backup(values["path"])),
                ),
            )
        elif action == "Delete all data":
            self.push_screen(
                FormModal(
                    "Delete all data",
                    [FormField("word", "Confirmation word", hint=f"type {WIPE_CONFIRMATION_WORD}")],
                ),
                lambda values: values and self._confirm(
                    "This permanently deletes all products, sales, expenses and settings. Are you sure?",
                    lambda: self._report(self.controller.wipe(values["word"])),
                ),
            )
        return True

    # --- rendering -------------------------------------------------------

    def _refresh_all(self) -> None:
        self._refresh_title()
        self._refresh_list()
        self._refresh_status()
        self._refresh_details()

    def _refresh_title(self) -> None:
        try:
            title = self.query_one("#view-title", Static)
        except NoMatches:
            return
        text = Text()
        for idx, (name, label) in enumerate(VIEWS, start=1):
            if idx > 1:
                text.append("  ")
            style = "bold reverse" if name == self.view else "dim"
            text.append(f"{idx} {label}", style=style)
        title.update(text)

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            half = rows // 2
            start = selected - half
            start = max(0, start)
            start = min(start, total - rows)

        return (start, start + rows)

    def _row_text(self, row: Any) -> Text:
        mode = self._view_mode()
        if mode == "inventory":
            text = format_product_label(row)
            text.append("\n      ")
            text.append_text(format_presentation_prices(row))
            return text
        if mode == "sizes":
            return format_presentation_row(row)
        if mode == "pos_setup":
            text = Text("[x] " if row.id in self.pos_selection else "[ ] ")
            text.append_text(format_product_label(row))
            return text
        if mode == "pos_active":
            entry, item = row
            return self._counter_text(entry, item)
        if mode == "sales":
            return Text(f"{row.date[:16].replace('T', ' ')}  {money(row.total_amount)}  ({len(row.items)} lines)")
        if mode == "expenses":
            text = Text(f"{row.day}  {category_name(self.data, row.category_id)}  ")
            text.append(f"-{money(row.amount)}", style="bold #ff7675")
            text.append(f"  {row.description or 'No description'}", style="dim")
            return text
        return Text(str(row))

    def _counter_text(self, entry: SessionEntry, item: PresentationItem) -> Text:
        pres = entry.presentation(item.presentation_id)
        text = format_product_label(entry) if entry.presentation_items[0] is item else Text(" " * (len(entry.name) + 2))
        text.append(f"  {pres.name if pres else '?'} {money(item.price)}", style="white")
        text.append(f"  x {item.count}", style="bold" if item.count else "dim")
        return text

    def _refresh_list(self) -> None:
        try:
            list_widget = self.query_one("#main-list", Static)
        except NoMatches:
            return
        rows = self._rows()
        if not rows:
            empty = {
                "inventory": "(no products yet, press A to add one)",
                "pos_setup": "(no products to sell)",
                "sales": "(no sales recorded in this period)",
                "expenses": "(no expenses recorded)",
            }
            list_widget.update(empty.get(self._view_mode(), "(empty)"))
            return

        selected = min(self.selected_by_view.get(self.view, 0), len(rows) - 1)
        self.selected_by_view[self.view] = selected
        start, end = self._window_bounds(len(rows), self._visible_rows(list_widget), selected)

        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == selected else "  ")
            lines.append_text(self._row_text(rows[idx]))
        if end < len(rows):
            lines.append("\n⋮", style="dim")
        list_widget.update(lines)

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        text = Text()
        if self.input_state == "search":
            text.append("Search: ", style="bold")
            text.append(f"{self.search_query}|\n")
            text.append("Enter keep  Esc clear", style="dim")
        else:
            text.append(VIEW_HELP[self._view_mode()], style="dim")
            text.append("\n")
            text.append(self.system_status or "Ready")
        bar.update(text)

    def _refresh_details(self) -> None:
        try:
            details = self.query_one("#details", Static)
        except NoMatches:
            return
        mode = self._view_mode()
        if mode == "pos_active":
            details.update(self._session_details())
        elif mode == "pos_setup":
            details.update(f"{len(self.pos_selection)} product(s) selected for today.\nQuery: {self.search_query or '-'}")
        elif mode == "sales":
            details.update(self._sales_details(self._selected()))
        elif mode == "expenses":
            text = Text("Categories\n", style="bold")
            for category in self.data.expense_categories:
                text.append(f"  {category.name}\n", style="white")
            total = sum(e.amount for e in self._filtered_expenses())
            text.append(f"\nFiltered total: {money(total)}")
            if self.expense_filter:
                text.append(f"\nFilter: {self.expense_filter}", style="dim")
            details.update(text)
        else:
            details.update(f"{len(self.data.products)} products, {len(self.data.presentations)} sizes")

    def _session_details(self) -> Text:
        text = Text("Day total\n", style="bold")
        text.append(money(self.controller.compute_total()), style="bold #00b894")
        text.append("\n\nUndo: ")
        text.append("available" if self.controller.undo_log.can_undo() else "-", style="dim")
        return text

    def _sales_details(self, record: SaleRecord | None) -> Text:
        summary: SalesSummary = summarize_sales(self._filtered_sales())
        text = Text()
        text.append(f"Today {money(summary.today)}  Week {money(summary.week)}\n", style="bold")
        text.append(f"Month {money(summary.month)}  Total {money(summary.all_time)}\n", style="bold")
        if summary.top_products:
            text.append("\nTop products\n", style="bold")
            for idx, top in enumerate(summary.top_products, start=1):
                text.append(f"  #{idx} {top.name} ({top.count} units) {money(top.total)}\n")
        if record is not None:
            text.append(f"\nSale {record.day}\n", style="bold")
            for item in record.items:
                status = product_status(self.data, item)
                marker = f"  {status}" if status == PRODUCT_STATUS_DISCONTINUED else ""
                text.append(f"  {item.count}x {item.name} {item.presentation_name}  {money(item.total)}")
                text.append(f"{marker}\n", style="bold #d63031")
        return text

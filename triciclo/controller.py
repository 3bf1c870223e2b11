"""Top-level owner of the application state.

Every public method performs one user action: validate, mutate the in-memory
``AppData``, then write the whole document back to disk. Expected failures are
caught here and returned as an ``Outcome`` so the UI never sees an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

from triciclo import catalog, ledger, persistence, reports
from triciclo.config import DATA_PATH, EMPTY_CLOSE_POLICY
from triciclo.constant import WIPE_CONFIRMATION_WORD
from triciclo.errors import EmptySessionError, TricicloError, ValidationError
from triciclo.models import AppData, ProductPresentation, SaleRecord
from triciclo.rendering import money
from triciclo.session import EmptyClosePolicy, PosSession, UndoLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Result of a user action; ``message`` is shown to the operator when set."""

    ok: bool
    message: str = ""
    value: Any = None
    needs_confirmation: bool = False


class PosController:
    def __init__(
        self,
        data: AppData,
        path: str | Path | None = None,
        empty_policy: EmptyClosePolicy | str | None = None,
    ) -> None:
        self.data = data
        self.path = Path(path or DATA_PATH)
        self.undo_log = UndoLog()
        self.session = PosSession(data, self.undo_log)
        if isinstance(empty_policy, EmptyClosePolicy):
            self.empty_policy = empty_policy
        else:
            self.empty_policy = EmptyClosePolicy.parse(empty_policy or EMPTY_CLOSE_POLICY)

    @classmethod
    def open(cls, path: str | Path | None = None, empty_policy: EmptyClosePolicy | str | None = None) -> PosController:
        data_path = Path(path or DATA_PATH)
        return cls(persistence.load_state(data_path), data_path, empty_policy)

    def persist(self) -> None:
        persistence.save_state(self.data, self.path)

    def _replace_data(self, data: AppData) -> None:
        self.data = data
        self.undo_log.clear()
        self.session = PosSession(data, self.undo_log)

    def _run(self, action: str, fn: Callable[[], Any], success: str | Callable[[Any], str] = "") -> Outcome:
        try:
            value = fn()
        except EmptySessionError as exc:
            logger.info("%s needs_confirmation reason=%s", action, exc)
            return Outcome(False, str(exc), needs_confirmation=True)
        except TricicloError as exc:
            logger.info("%s rejected reason=%s", action, exc)
            return Outcome(False, str(exc))
        self.persist()
        message = success(value) if callable(success) else success
        return Outcome(True, message, value)

    # --- catalog ---------------------------------------------------------

    def save_product(
        self,
        *,
        name: str,
        price_per_liter: float,
        presentations: list[ProductPresentation],
        color: str | None = None,
        product_id: str | None = None,
    ) -> Outcome:
        return self._run(
            "save_product",
            lambda: catalog.save_product(
                self.data,
                name=name,
                price_per_liter=price_per_liter,
                presentations=presentations,
                color=color,
                product_id=product_id,
            ),
            lambda product: f"Saved {product.name}.",
        )

    def delete_product(self, product_id: str) -> Outcome:
        if not catalog.delete_product(self.data, product_id):
            return Outcome(False, "Product not found.")
        self.persist()
        return Outcome(True, "Product deleted.")

    def add_presentation(self, name: str, liters: float) -> Outcome:
        return self._run(
            "add_presentation",
            lambda: catalog.add_presentation(self.data, name, liters),
            lambda pres: f"Added presentation {pres.name}.",
        )

    def edit_presentation(self, presentation_id: int, name: str, liters: float) -> Outcome:
        return self._run(
            "edit_presentation",
            lambda: catalog.edit_presentation(self.data, presentation_id, name, liters),
            lambda changed: (
                "Size changed. Computed prices (price/L x liters) now use the new volume." if changed else "Presentation saved."
            ),
        )

    def delete_presentation(self, presentation_id: int) -> Outcome:
        return self._run(
            "delete_presentation",
            lambda: catalog.delete_presentation(self.data, presentation_id),
            "Presentation deleted.",
        )

    # --- POS session -----------------------------------------------------

    def start_session(self, product_ids: list[str]) -> Outcome:
        return self._run(
            "start_session",
            lambda: self.session.start(product_ids),
            lambda entries: f"Sales day started with {len(entries)} product(s).",
        )

    def _counter_action(self, action: str, changed: bool) -> Outcome:
        if not changed:
            return Outcome(False)
        self.persist()
        logger.debug("%s total=%.2f undo_depth=%d", action, self.session.compute_total(), self.undo_log.depth)
        return Outcome(True)

    def update_item_count(self, product_id: str, presentation_id: int, delta: int) -> Outcome:
        return self._counter_action(
            "update_item_count", self.session.update_item_count(product_id, presentation_id, delta)
        )

    def reset_product_counts(self, product_id: str) -> Outcome:
        return self._counter_action("reset_product_counts", self.session.reset_product_counts(product_id))

    def reset_presentation_count(self, product_id: str, presentation_id: int) -> Outcome:
        return self._counter_action(
            "reset_presentation_count", self.session.reset_presentation_count(product_id, presentation_id)
        )

    def undo(self) -> Outcome:
        return self._counter_action("undo", self.session.undo())

    def compute_total(self) -> float:
        return self.session.compute_total()

    def close_session(self, confirm_empty: bool = False, now: datetime | None = None) -> Outcome:
        def _message(record: SaleRecord | None) -> str:
            if record is None:
                return "Day closed without sales."
            return f"Day closed. Total sold: {money(record.total_amount)}"

        return self._run(
            "close_session",
            lambda: self.session.close(confirm_empty=confirm_empty, empty_policy=self.empty_policy, now=now),
            _message,
        )

    # --- ledgers ---------------------------------------------------------

    def delete_sale(self, sale_id: str) -> Outcome:
        if not ledger.delete_sale(self.data, sale_id):
            return Outcome(False, "Sale not found.")
        self.persist()
        return Outcome(True, "Sale deleted.")

    def add_category(self, name: str) -> Outcome:
        return self._run(
            "add_category",
            lambda: ledger.add_category(self.data, name),
            lambda category: f"Category {category.name} added.",
        )

    def delete_category(self, category_id: str) -> Outcome:
        if not ledger.delete_category(self.data, category_id):
            return Outcome(False, "Category not found.")
        self.persist()
        return Outcome(True, "Category deleted.")

    def add_expense(self, category_id: str | None, amount: float, description: str = "") -> Outcome:
        return self._run(
            "add_expense",
            lambda: ledger.add_expense(self.data, category_id=category_id, amount=amount, description=description),
            "Expense saved.",
        )

    def delete_expense(self, expense_id: str) -> Outcome:
        if not ledger.delete_expense(self.data, expense_id):
            return Outcome(False, "Expense not found.")
        self.persist()
        return Outcome(True, "Expense deleted.")

    # --- read-only queries with validation --------------------------------

    def _query(self, fn: Callable[[], Any]) -> Outcome:
        try:
            return Outcome(True, value=fn())
        except TricicloError as exc:
            return Outcome(False, str(exc))

    def filter_sales(self, date_from: str | date | None = None, date_to: str | date | None = None) -> Outcome:
        return self._query(
            lambda: ledger.filter_sales(self.data.sales_history, ledger.parse_day(date_from), ledger.parse_day(date_to))
        )

    def filter_expenses(
        self, date_from: str | date | None = None, date_to: str | date | None = None, keyword: str = ""
    ) -> Outcome:
        return self._query(
            lambda: ledger.filter_expenses(self.data, ledger.parse_day(date_from), ledger.parse_day(date_to), keyword)
        )

    def export_report(
        self,
        kind: str,
        fmt: str,
        directory: str | Path,
        date_from: str | date | None = None,
        date_to: str | date | None = None,
        keyword: str = "",
    ) -> Outcome:
        """Build the ``sales`` or ``expenses`` report and write it as ``pdf`` or ``excel``."""

        def _build() -> Path:
            start, end = ledger.parse_day(date_from), ledger.parse_day(date_to)
            if kind == "sales":
                table = reports.sales_report(self.data, start, end)
            elif kind == "expenses":
                table = reports.expenses_report(self.data, start, end, keyword)
            else:
                raise ValidationError(f"Unknown report type {kind!r}.")
            if fmt == "pdf":
                return reports.write_pdf(table, directory)
            if fmt == "excel":
                return reports.write_excel(table, directory)
            raise ValidationError(f"Unknown report format {fmt!r}.")

        try:
            outcome = self._query(_build)
        except OSError as exc:
            logger.exception("report_export_failed kind=%s fmt=%s", kind, fmt)
            return Outcome(False, f"Report export failed: {exc}")
        if outcome.ok:
            return Outcome(True, f"Report written to {outcome.value}", outcome.value)
        return outcome

    # --- backup ----------------------------------------------------------

    def export_backup(self, directory: str | Path) -> Outcome:
        try:
            path = persistence.export_backup(self.data, directory)
        except OSError as exc:
            logger.exception("backup_export_failed directory=%s", directory)
            return Outcome(False, f"Export failed: {exc}")
        return Outcome(True, f"Backup written to {path}", path)

    def import_backup(self, source: str | Path) -> Outcome:
        """Replace all state with a sanitized backup; on failure state is untouched."""
        try:
            result = persistence.import_backup(source)
        except TricicloError as exc:
            logger.info("import_rejected source=%s reason=%s", source, exc)
            return Outcome(False, str(exc))

        self._replace_data(result.data)
        self.persist()
        message = "Data imported."
        if result.warnings:
            message += f" {len(result.warnings)} warning(s) corrected automatically."
        return Outcome(True, message, result.warnings)

    def wipe(self, confirmation: str) -> Outcome:
        if (confirmation or "").strip() != WIPE_CONFIRMATION_WORD:
            return Outcome(False, f"Confirmation word does not match. Type {WIPE_CONFIRMATION_WORD} to confirm.")
        self._replace_data(persistence.wipe_state(self.path))
        return Outcome(True, "All data deleted.")

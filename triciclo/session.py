"""Daily POS session: counters, undo history and the close-day fold."""

from __future__ import annotations

import copy
import logging
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from triciclo.catalog import normalize_name, resolve_unit_price
from triciclo.constant import UNDO_MAX_DEPTH, UNKNOWN_PRESENTATION_NAME
from triciclo.data import generate_id
from triciclo.errors import EmptySessionError, ValidationError
from triciclo.models import AppData, PresentationItem, Product, ProductPresentation, SaleLineItem, SaleRecord, SessionEntry

logger = logging.getLogger(__name__)


class EmptyClosePolicy(str, Enum):
    """What a confirmed close with no sales does to the ledger."""

    RECORD = "record"
    RESET = "reset"

    @classmethod
    def parse(cls, raw: str | None) -> EmptyClosePolicy:
        try:
            return cls((raw or cls.RECORD.value).strip().lower())
        except ValueError:
            logger.warning("unknown empty close policy %r, using %r", raw, cls.RECORD.value)
            return cls.RECORD


class UndoLog:
    """Bounded stack of session snapshots, oldest evicted first."""

    def __init__(self, max_depth: int = UNDO_MAX_DEPTH) -> None:
        self._stack: deque[list[SessionEntry]] = deque(maxlen=max_depth)

    @property
    def depth(self) -> int:
        return len(self._stack)

    def push(self, entries: Iterable[SessionEntry]) -> None:
        self._stack.append(copy.deepcopy(list(entries)))

    def pop(self) -> list[SessionEntry] | None:
        if not self._stack:
            return None
        return self._stack.pop()

    def can_undo(self) -> bool:
        return bool(self._stack)

    def clear(self) -> None:
        self._stack.clear()


def filter_products(products: Iterable[Product], query: str) -> list[Product]:
    """Case-insensitive substring search used by the start-of-day list."""
    q = normalize_name(query)
    if not q:
        return list(products)
    return [product for product in products if q in product.name.lower()]


def _entry_for(product: Product) -> SessionEntry:
    presentations = [ProductPresentation(id=p.id, name=p.name, liters=p.liters, price=p.price) for p in product.presentations]
    return SessionEntry(
        id=product.id,
        name=product.name,
        price_per_liter=product.price_per_liter,
        color=product.color,
        presentations=presentations,
        presentation_items=[
            PresentationItem(presentation_id=pres.id, price=resolve_unit_price(product.price_per_liter, pres), count=0)
            for pres in presentations
        ],
    )


class PosSession:
    """Counter state machine over ``data.pos_active_products``.

    Mutating methods return True when state changed; the caller persists
    afterwards. Refused operations return False or raise ``ValidationError``
    without touching state.
    """

    def __init__(self, data: AppData, undo: UndoLog | None = None) -> None:
        self.data = data
        self.undo_log = undo if undo is not None else UndoLog()

    @property
    def entries(self) -> list[SessionEntry]:
        return self.data.pos_active_products

    @property
    def is_active(self) -> bool:
        return bool(self.data.pos_active_products)

    def entry(self, product_id: str) -> SessionEntry | None:
        for entry in self.entries:
            if entry.id == product_id:
                return entry
        return None

    def start(self, selected_product_ids: Iterable[str]) -> list[SessionEntry]:
        selected = set(selected_product_ids)
        if not selected:
            raise ValidationError("Select at least one product to sell today.")
        entries = [_entry_for(product) for product in self.data.products if product.id in selected]
        if not entries:
            raise ValidationError("Select at least one product to sell today.")

        self.undo_log.clear()
        self.data.pos_active_products = entries
        logger.info("session_started products=%s", [entry.id for entry in entries])
        return entries

    def update_item_count(self, product_id: str, presentation_id: int, delta: int) -> bool:
        entry = self.entry(product_id)
        item = entry.item(presentation_id) if entry is not None else None
        if item is None:
            return False
        new_count = item.count + delta
        if new_count < 0:
            return False

        self.undo_log.push(self.entries)
        item.count = new_count
        return True

    def reset_product_counts(self, product_id: str) -> bool:
        entry = self.entry(product_id)
        if entry is None or not any(item.count > 0 for item in entry.presentation_items):
            return False

        self.undo_log.push(self.entries)
        for item in entry.presentation_items:
            item.count = 0
        return True

    def reset_presentation_count(self, product_id: str, presentation_id: int) -> bool:
        entry = self.entry(product_id)
        item = entry.item(presentation_id) if entry is not None else None
        if item is None or item.count <= 0:
            return False

        self.undo_log.push(self.entries)
        item.count = 0
        return True

    def undo(self) -> bool:
        snapshot = self.undo_log.pop()
        if snapshot is None:
            return False
        self.data.pos_active_products = snapshot
        return True

    def compute_total(self) -> float:
        return sum(item.price * item.count for entry in self.entries for item in entry.presentation_items)

    def sold_items(self) -> list[SaleLineItem]:
        lines: list[SaleLineItem] = []
        for entry in self.entries:
            for item in entry.presentation_items:
                if item.count <= 0:
                    continue
                pres = entry.presentation(item.presentation_id)
                lines.append(
                    SaleLineItem(
                        product_id=entry.id,
                        name=entry.name,
                        presentation_name=pres.name if pres is not None else UNKNOWN_PRESENTATION_NAME,
                        price=item.price,
                        count=item.count,
                        total=item.price * item.count,
                    )
                )
        return lines

    def close(
        self,
        *,
        confirm_empty: bool = False,
        empty_policy: EmptyClosePolicy = EmptyClosePolicy.RECORD,
        now: datetime | None = None,
    ) -> SaleRecord | None:
        """Fold positive counters into a sale record and end the session.

        Returns the appended record, or None when an empty day was closed
        under ``EmptyClosePolicy.RESET``.
        """
        if not self.is_active:
            raise ValidationError("There is no active sales day to close.")

        lines = self.sold_items()
        if not lines and not confirm_empty:
            raise EmptySessionError("Nothing was sold. Close the day anyway?")

        record: SaleRecord | None = None
        if lines or empty_policy is EmptyClosePolicy.RECORD:
            moment = now or datetime.now(timezone.utc)
            record = SaleRecord(
                id=generate_id(),
                date=moment.isoformat(),
                total_amount=sum(line.total for line in lines),
                items=tuple(lines),
            )
            self.data.sales_history.append(record)

        self.data.pos_active_products = []
        self.undo_log.clear()
        logger.info(
            "session_closed record=%s lines=%d total=%.2f",
            record.id if record else None,
            len(lines),
            record.total_amount if record else 0.0,
        )
        return record

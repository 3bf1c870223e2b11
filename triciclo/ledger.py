"""Sales history and expense ledgers: append, delete, filter and summarize."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from triciclo.constant import DEFAULT_CATEGORY_NAME, TOP_PRODUCTS_LIMIT
from triciclo.data import generate_id, utc_now_iso
from triciclo.errors import ValidationError
from triciclo.models import AppData, Expense, ExpenseCategory, SaleRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopProduct:
    name: str
    count: int
    total: float


@dataclass(frozen=True)
class SalesSummary:
    today: float = 0.0
    week: float = 0.0
    month: float = 0.0
    all_time: float = 0.0
    top_products: list[TopProduct] = field(default_factory=list)


def parse_day(value: str | date | None) -> date | None:
    """Accept a ``YYYY-MM-DD`` string, a date, or nothing."""
    if value is None or isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid date {text!r}; use YYYY-MM-DD.") from exc


def check_date_range(date_from: date | None, date_to: date | None) -> None:
    if date_from and date_to and date_to < date_from:
        raise ValidationError("The end date cannot be earlier than the start date.")


def _in_range(day: str, date_from: date | None, date_to: date | None) -> bool:
    if date_from and day < date_from.isoformat():
        return False
    if date_to and day > date_to.isoformat():
        return False
    return True


# --- sales ---------------------------------------------------------------


def delete_sale(data: AppData, sale_id: str) -> bool:
    before = len(data.sales_history)
    data.sales_history = [record for record in data.sales_history if record.id != sale_id]
    return len(data.sales_history) != before


def filter_sales(records: Iterable[SaleRecord], date_from: date | None = None, date_to: date | None = None) -> list[SaleRecord]:
    """Records whose day falls inside the inclusive range."""
    check_date_range(date_from, date_to)
    return [record for record in records if _in_range(record.day, date_from, date_to)]


def line_key(name: str, presentation_name: str) -> str:
    return f"{name} {presentation_name}" if presentation_name else name


def top_products(records: Iterable[SaleRecord], limit: int = TOP_PRODUCTS_LIMIT) -> list[TopProduct]:
    counts: dict[str, list[float]] = {}
    for record in records:
        for item in record.items:
            key = line_key(item.name, item.presentation_name)
            bucket = counts.setdefault(key, [0, 0.0])
            bucket[0] += item.count
            bucket[1] += item.total
    ranked = sorted(counts.items(), key=lambda kv: kv[1][1], reverse=True)
    return [TopProduct(name=key, count=int(count), total=total) for key, (count, total) in ranked[:limit]]


def summarize_sales(records: Iterable[SaleRecord], now: datetime | None = None) -> SalesSummary:
    """Totals for today, the last seven days, month to date and all time."""
    records = list(records)
    if not records:
        return SalesSummary()

    moment = now or datetime.now(timezone.utc)
    today = moment.date().isoformat()
    week_ago = (moment - timedelta(days=7)).date().isoformat()
    month_start = moment.date().replace(day=1).isoformat()

    return SalesSummary(
        today=sum(r.total_amount for r in records if r.day == today),
        week=sum(r.total_amount for r in records if r.day >= week_ago),
        month=sum(r.total_amount for r in records if r.day >= month_start),
        all_time=sum(r.total_amount for r in records),
        top_products=top_products(records),
    )


# --- expenses ------------------------------------------------------------


def category_name(data: AppData, category_id: str | None) -> str:
    category = data.category(category_id)
    return category.name if category is not None else DEFAULT_CATEGORY_NAME


def add_category(data: AppData, name: str, now: str | None = None) -> ExpenseCategory:
    clean = (name or "").strip()
    if not clean:
        raise ValidationError("Category name cannot be empty.")
    category = ExpenseCategory(id=generate_id(), name=clean, created_at=now or utc_now_iso())
    data.expense_categories.append(category)
    logger.info("category_added id=%s name=%r", category.id, category.name)
    return category


def delete_category(data: AppData, category_id: str) -> bool:
    before = len(data.expense_categories)
    data.expense_categories = [c for c in data.expense_categories if c.id != str(category_id)]
    return len(data.expense_categories) != before


def add_expense(
    data: AppData,
    *,
    category_id: str | None,
    amount: float,
    description: str = "",
    now: datetime | None = None,
) -> Expense:
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be greater than zero.")
    if category_id is not None and data.category(category_id) is None:
        raise ValidationError("Unknown expense category.")
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    expense = Expense(
        id=generate_id(),
        date=stamp,
        amount=amount,
        category_id=category_id,
        description=(description or "").strip(),
        created_at=stamp,
    )
    data.expenses.append(expense)
    logger.info("expense_added id=%s amount=%.2f", expense.id, expense.amount)
    return expense


def delete_expense(data: AppData, expense_id: str) -> bool:
    before = len(data.expenses)
    data.expenses = [expense for expense in data.expenses if expense.id != expense_id]
    return len(data.expenses) != before


def filter_expenses(
    data: AppData,
    date_from: date | None = None,
    date_to: date | None = None,
    keyword: str = "",
) -> list[Expense]:
    """Expenses in the inclusive range whose description or category contains ``keyword``."""
    check_date_range(date_from, date_to)
    needle = (keyword or "").strip().lower()
    result = []
    for expense in data.expenses:
        if not _in_range(expense.day, date_from, date_to):
            continue
        if needle:
            category = data.category(expense.category_id)
            haystacks = [expense.description.lower(), category.name.lower() if category else ""]
            if not any(needle in text for text in haystacks):
                continue
        result.append(expense)
    return result

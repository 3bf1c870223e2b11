"""Seed data, identifiers and timestamps."""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from triciclo.constant import PROTECTED_PRESENTATIONS as _PROTECTED_PRESENTATIONS_RAW
from triciclo.constant import SEED_EXPENSE_CATEGORIES
from triciclo.models import ExpenseCategory, Presentation

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class BaseSize:
    """Canonical size that must always exist in the registry."""

    name: str
    liters: float


PROTECTED_SIZES: list[BaseSize] = [
    BaseSize(name=str(raw["name"]), liters=float(raw["liters"])) for raw in _PROTECTED_PRESENTATIONS_RAW
]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Return an opaque id shaped ``<base36 millis>_<6 base36 chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{_base36(int(time.time() * 1000))}_{suffix}"


def seed_expense_categories(now: str | None = None) -> list[ExpenseCategory]:
    created_at = now or utc_now_iso()
    return [ExpenseCategory(id=generate_id(), name=name, created_at=created_at) for name in SEED_EXPENSE_CATEGORIES]


def seed_presentations(now: str | None = None) -> list[Presentation]:
    created_at = now or utc_now_iso()
    return [
        Presentation(id=idx, name=size.name, liters=size.liters, is_protected=True, created_at=created_at)
        for idx, size in enumerate(PROTECTED_SIZES, start=1)
    ]

"""JSON persistence for the whole application state, plus backup export/import."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from triciclo.catalog import ensure_protected_presentations
from triciclo.config import DATA_PATH
from triciclo.constant import BACKUP_FILE_PREFIX, DATA_VERSION
from triciclo.data import generate_id, seed_expense_categories, seed_presentations, utc_now_iso
from triciclo.errors import ImportFormatError
from triciclo.models import AppData, coerce_float, coerce_int

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Sanitized state plus the warnings raised while cleaning it."""

    data: AppData
    warnings: list[str] = field(default_factory=list)


def _data_file(path: str | Path | None) -> Path:
    return Path(path or DATA_PATH)


def _write_json(target: Path, payload: dict[str, Any], indent: int | None = None) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(f".{target.name}.tmp")
    tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=indent), encoding="utf-8")
    os.replace(tmp, target)


def fresh_state(now: str | None = None) -> AppData:
    """First-run state: seeded categories and base presentations."""
    stamp = now or utc_now_iso()
    return AppData(expense_categories=seed_expense_categories(stamp), presentations=seed_presentations(stamp))


def save_state(data: AppData, path: str | Path | None = None) -> None:
    _write_json(_data_file(path), data.to_dict())


def load_state(path: str | Path | None = None) -> AppData:
    """Read the state file, seeding and saving a fresh state on first run."""
    data_file = _data_file(path)
    if not data_file.exists():
        data = fresh_state()
        logger.info("state_seeded path=%s", data_file)
    else:
        raw = json.loads(data_file.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ImportFormatError(f"{data_file} does not contain a JSON object.")
        data = AppData.from_dict(raw)

    ensure_protected_presentations(data)
    if not data.data_version:
        data.data_version = DATA_VERSION
    save_state(data, data_file)
    return data


def wipe_state(path: str | Path | None = None) -> AppData:
    """Delete the stored state and return a freshly seeded one."""
    data_file = _data_file(path)
    data_file.unlink(missing_ok=True)
    data = fresh_state()
    save_state(data, data_file)
    logger.warning("state_wiped path=%s", data_file)
    return data


# --- backup export -------------------------------------------------------


def backup_file_name(day: date | None = None) -> str:
    return f"{BACKUP_FILE_PREFIX}{(day or datetime.now(timezone.utc).date()).isoformat()}.json"


def export_backup(data: AppData, directory: str | Path, day: date | None = None) -> Path:
    target = Path(directory) / backup_file_name(day)
    _write_json(target, data.to_dict(), indent=2)
    logger.info("backup_exported path=%s", target)
    return target


# --- backup import -------------------------------------------------------


def _sanitize_products(raw: list[Any], warnings: list[str], now: str) -> list[dict[str, Any]]:
    clean = []
    for product in raw:
        if not isinstance(product, dict):
            continue
        if not product.get("id") or not product.get("name"):
            warnings.append("Product without id or name skipped.")
            continue
        clean.append(
            {
                **product,
                "id": str(product["id"]),
                "name": str(product["name"]),
                "pricePerLiter": coerce_float(product.get("pricePerLiter")) or coerce_float(product.get("price")),
                "color": product.get("color") or None,
                "presentations": product["presentations"] if isinstance(product.get("presentations"), list) else [],
                "createdAt": product.get("createdAt") or now,
                "updatedAt": product.get("updatedAt") or now,
            }
        )
    return clean


def _sanitize_sales(raw: list[Any], warnings: list[str]) -> list[dict[str, Any]]:
    clean = []
    for sale in raw:
        if not isinstance(sale, dict):
            continue
        if not sale.get("date"):
            warnings.append("Sale without date skipped.")
            continue
        clean.append(
            {
                **sale,
                "id": str(sale.get("id") or generate_id()),
                "totalAmount": coerce_float(sale.get("totalAmount")),
                "items": sale["items"] if isinstance(sale.get("items"), list) else [],
            }
        )
    return clean


def _sanitize_expenses(raw: list[Any], now: str) -> list[dict[str, Any]]:
    return [
        {
            **expense,
            "id": str(expense.get("id") or generate_id()),
            "amount": coerce_float(expense.get("amount")),
            "date": expense.get("date") or now,
        }
        for expense in raw
        if isinstance(expense, dict)
    ]


def _sanitize_categories(raw: list[Any]) -> list[dict[str, Any]]:
    return [
        {**category, "id": str(category["id"]) if category.get("id") is not None else generate_id(), "name": str(category["name"])}
        for category in raw
        if isinstance(category, dict) and category.get("name")
    ]


def _sanitize_presentations(raw: list[Any]) -> list[dict[str, Any]]:
    return [
        {**pres, "id": coerce_int(pres.get("id")), "liters": coerce_float(pres.get("liters"))}
        for pres in raw
        if isinstance(pres, dict) and pres.get("name") and pres.get("liters") is not None
    ]


def sanitize_document(document: Any, now: str | None = None) -> ImportResult:
    """Validate an imported document field by field.

    Collections of the wrong type are replaced with empty lists and records
    missing identity fields are dropped, each with a warning. The live session
    is never imported. Only a non-object top level is fatal.
    """
    if not isinstance(document, dict):
        raise ImportFormatError("The file does not contain a valid JSON object.")

    stamp = now or utc_now_iso()
    warnings: list[str] = []

    def collection(key: str) -> list[Any]:
        value = document.get(key)
        if isinstance(value, list):
            return value
        if key in document:
            warnings.append(f'"{key}" is not an array; an empty array will be used.')
        return []

    clean = {
        "dataVersion": document.get("dataVersion") or DATA_VERSION,
        "products": _sanitize_products(collection("products"), warnings, stamp),
        "salesHistory": _sanitize_sales(collection("salesHistory"), warnings),
        "expenses": _sanitize_expenses(collection("expenses"), stamp),
        "expenseCategories": _sanitize_categories(collection("expenseCategories")),
        "presentations": _sanitize_presentations(collection("presentations")),
        "posActiveProducts": [],
    }
    data = AppData.from_dict(clean)
    ensure_protected_presentations(data, stamp)
    return ImportResult(data=data, warnings=warnings)


def parse_backup(text: str) -> ImportResult:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportFormatError("Could not import the file. Check that it is a valid JSON file.") from exc
    return sanitize_document(document)


def import_backup(source: str | Path) -> ImportResult:
    """Read and sanitize a backup file without touching the stored state."""
    try:
        text = Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ImportFormatError(f"Could not read {source}: {exc}") from exc
    result = parse_backup(text)
    if result.warnings:
        logger.warning("import_warnings source=%s warnings=%s", source, result.warnings)
    return result

"""Editable static configuration: seed data, palette and fixed limits."""

from __future__ import annotations

DATA_VERSION = 2

UNDO_MAX_DEPTH = 50
TOP_PRODUCTS_LIMIT = 5

WIPE_CONFIRMATION_WORD = "Ornitorinco"
BACKUP_FILE_PREFIX = "triciclo_backup_"

UNKNOWN_PRESENTATION_NAME = "Unknown"
DEFAULT_CATEGORY_NAME = "General"

SEED_EXPENSE_CATEGORIES: list[str] = ["Mercancia", "Sueldos", "Servicios"]

# Canonical sizes re-asserted on every load; values consumed by triciclo.data.
PROTECTED_PRESENTATIONS: list[dict[str, str | float]] = [
    {"name": "500ml", "liters": 0.5},
    {"name": "1L", "liters": 1.0},
]

PRODUCT_COLORS: list[str] = [
    "#FFFFFF",
    "#6C5CE7",
    "#5A3FD9",
    "#A29BFE",
    "#6C63FF",
    "#0984E3",
    "#74B9FF",
    "#74C0FC",
    "#00CEC9",
    "#00A8A8",
    "#55EFC4",
    "#00B894",
    "#00A36C",
    "#FD79A8",
    "#E84393",
    "#FF6B6B",
    "#FF7675",
    "#D63031",
    "#FF6348",
    "#FDCB6E",
    "#FFEAA7",
    "#E17055",
    "#E67E22",
    "#FF9F1C",
    "#B2BEC3",
    "#636E72",
    "#2D3436",
    "#1E272E",
]

CONTRAST_BRIGHTNESS_THRESHOLD = 180

SALES_REPORT_TITLE = "Sales Report - Detail by Product"
EXPENSES_REPORT_TITLE = "Expenses Report"

SALES_REPORT_HEADERS: list[str] = ["Product", "Presentation", "Unit Price", "Quantity", "Total Sold", "Status"]
EXPENSES_REPORT_HEADERS: list[str] = ["Date", "Category", "Description", "Amount"]

PRODUCT_STATUS_ACTIVE = "Active"
PRODUCT_STATUS_DISCONTINUED = "DISCONTINUED"

# PDF styling, RGB 0-255.
REPORT_HEADER_RGB = (108, 92, 231)
REPORT_BODY_TEXT_RGB = (45, 52, 54)
REPORT_ALT_ROW_RGB = (244, 247, 246)

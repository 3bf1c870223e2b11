"""Tabular report projections and their PDF/Excel writers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable

from triciclo.catalog import normalize_name
from triciclo.constant import (
    EXPENSES_REPORT_HEADERS,
    EXPENSES_REPORT_TITLE,
    PRODUCT_STATUS_ACTIVE,
    PRODUCT_STATUS_DISCONTINUED,
    REPORT_ALT_ROW_RGB,
    REPORT_BODY_TEXT_RGB,
    REPORT_HEADER_RGB,
    SALES_REPORT_HEADERS,
    SALES_REPORT_TITLE,
)
from triciclo.errors import ValidationError
from triciclo.ledger import category_name, filter_expenses, filter_sales
from triciclo.models import AppData, SaleLineItem
from triciclo.rendering import money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportTable:
    """Headers plus formatted rows, ready for a document writer."""

    title: str
    date_range: str
    file_range: str
    headers: list[str]
    rows: list[list[str]]

    def file_name(self, extension: str) -> str:
        return f"{self.title.replace(' ', '_')}_{self.file_range}.{extension}"


def _range_labels(days: Iterable[str], date_from: date | None, date_to: date | None, today: date) -> tuple[str, str]:
    days = sorted(days)
    start = date_from.isoformat() if date_from else (days[0] if days else today.isoformat())
    end = date_to.isoformat() if date_to else (days[-1] if days else today.isoformat())
    return f"From: {start} - To: {end}", f"{start}_{end}"


def product_status(data: AppData, item: SaleLineItem) -> str:
    """Whether the sold product still exists in the catalog, by id or by name."""
    wanted = normalize_name(item.name)
    for product in data.products:
        if (item.product_id and product.id == item.product_id) or (product.name and normalize_name(product.name) == wanted):
            return PRODUCT_STATUS_ACTIVE
    return PRODUCT_STATUS_DISCONTINUED


def sales_report(
    data: AppData,
    date_from: date | None = None,
    date_to: date | None = None,
    today: date | None = None,
) -> ReportTable:
    """Sales grouped by product, presentation, unit price and status, plus a totals row."""
    records = filter_sales(data.sales_history, date_from, date_to)
    groups: dict[tuple[str, str, float, str], list[float]] = {}
    total_amount = 0.0
    total_units = 0
    for record in records:
        for item in record.items:
            status = product_status(data, item)
            key = (item.name, item.presentation_name or "", item.price, status)
            bucket = groups.setdefault(key, [0, 0.0])
            bucket[0] += item.count
            bucket[1] += item.total
            total_amount += item.total
            total_units += item.count

    if not groups:
        raise ValidationError("There is no data to export for the selected filters.")

    rows = [
        [name, presentation or "-", money(price), f"{int(quantity)} units", money(total), status]
        for (name, presentation, price, status), (quantity, total) in groups.items()
    ]
    rows.append(["", "", "", "", "", ""])
    rows.append(["TOTALS", "", "", f"{total_units} units", money(total_amount), ""])

    date_range, file_range = _range_labels(
        (r.day for r in records), date_from, date_to, today or datetime.now(timezone.utc).date()
    )
    return ReportTable(
        title=SALES_REPORT_TITLE,
        date_range=date_range,
        file_range=file_range,
        headers=list(SALES_REPORT_HEADERS),
        rows=rows,
    )


def expenses_report(
    data: AppData,
    date_from: date | None = None,
    date_to: date | None = None,
    keyword: str = "",
    today: date | None = None,
) -> ReportTable:
    expenses = filter_expenses(data, date_from, date_to, keyword)
    if not expenses:
        raise ValidationError("There is no data to export for the selected filters.")

    rows = [
        [expense.day, category_name(data, expense.category_id), expense.description, money(expense.amount)]
        for expense in expenses
    ]
    date_range, file_range = _range_labels(
        (e.day for e in expenses), date_from, date_to, today or datetime.now(timezone.utc).date()
    )
    return ReportTable(
        title=EXPENSES_REPORT_TITLE,
        date_range=date_range,
        file_range=file_range,
        headers=list(EXPENSES_REPORT_HEADERS),
        rows=rows,
    )


def _rgb(values: tuple[int, int, int]) -> object:
    from reportlab.lib import colors

    return colors.Color(*(channel / 255 for channel in values))


def write_pdf(table: ReportTable, directory: str | Path) -> Path:
    """Render ``table`` as an A4 PDF in ``directory`` and return the file path."""
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / table.file_name("pdf")

    doc = SimpleDocTemplate(str(path), pagesize=A4, rightMargin=40, leftMargin=40, topMargin=50, bottomMargin=40)
    styles = getSampleStyleSheet()
    subtitle_style = styles["Normal"]
    subtitle_style.textColor = _rgb((100, 100, 100))
    elements = [
        Paragraph(table.title, styles["Heading1"]),
        Paragraph(table.date_range, subtitle_style),
        Spacer(1, 14),
    ]

    grid = Table([table.headers, *table.rows], repeatRows=1)
    style = [
        ("BACKGROUND", (0, 0), (-1, 0), _rgb(REPORT_HEADER_RGB)),
        ("TEXTCOLOR", (0, 0), (-1, 0), _rgb((255, 255, 255))),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("TEXTCOLOR", (0, 1), (-1, -1), _rgb(REPORT_BODY_TEXT_RGB)),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.25, _rgb(REPORT_BODY_TEXT_RGB)),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    for row_idx in range(2, len(table.rows) + 1, 2):
        style.append(("BACKGROUND", (0, row_idx), (-1, row_idx), _rgb(REPORT_ALT_ROW_RGB)))
    grid.setStyle(TableStyle(style))
    elements.append(grid)

    doc.build(elements)
    logger.info("report_pdf_written path=%s rows=%d", path, len(table.rows))
    return path


def write_excel(table: ReportTable, directory: str | Path) -> Path:
    """Write ``table`` to a single-sheet workbook in ``directory`` and return the file path."""
    import xlsxwriter

    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / table.file_name("xlsx")

    workbook = xlsxwriter.Workbook(str(path))
    try:
        worksheet = workbook.add_worksheet("Report")
        header_format = workbook.add_format({"bold": True, "bg_color": "#6C5CE7", "font_color": "#FFFFFF", "bottom": 1})
        worksheet.write_row(0, 0, table.headers, header_format)
        for row_idx, row in enumerate(table.rows, start=1):
            worksheet.write_row(row_idx, 0, row)
        for col_idx, header in enumerate(table.headers):
            width = max([len(header), *(len(str(row[col_idx])) for row in table.rows if col_idx < len(row))])
            worksheet.set_column(col_idx, col_idx, width + 2)
    finally:
        workbook.close()
    logger.info("report_excel_written path=%s rows=%d", path, len(table.rows))
    return path

from triciclo.models import SaleLineItem, SaleRecord
from triciclo.printer import check_printer_dependencies, close_ticket_lines, resolve_printer_font_path


def test_close_ticket_lines():
    record = SaleRecord(
        id="s1",
        date="2024-03-15T18:30:00+00:00",
        total_amount=6.6,
        items=(
            SaleLineItem("p1", "Agua", "500ml", 1.0, 3, 3.0),
            SaleLineItem("p1", "Agua", "1L", 1.8, 2, 3.6),
        ),
    )

    assert close_ticket_lines(record) == [
        "DAY CLOSE",
        "2024-03-15 18:30",
        "__SEP__",
        "3x Agua 500ml",
        "    $3.00",
        "2x Agua 1L",
        "    $3.60",
        "__SEP__",
        "TOTAL $6.60",
    ]


def test_empty_day_ticket():
    lines = close_ticket_lines(SaleRecord(id="s2", date="not a date", total_amount=0))
    assert lines[1] == "not a date"
    assert "No sales" in lines
    assert lines[-1] == "TOTAL $0.00"


def test_font_override(tmp_path, monkeypatch):
    font = tmp_path / "ticket.ttf"
    font.write_bytes(b"")
    monkeypatch.setenv("TRICICLO_PRINTER_FONT_PATH", str(font))
    assert resolve_printer_font_path() == str(font)


def test_unusable_font_reports_unavailable(tmp_path, monkeypatch):
    font = tmp_path / "broken.ttf"
    font.write_bytes(b"not a font")
    monkeypatch.setenv("TRICICLO_PRINTER_FONT_PATH", str(font))
    ok, message = check_printer_dependencies()
    assert not ok
    assert message.startswith("Printer unavailable")

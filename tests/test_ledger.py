from datetime import date, datetime, timezone

import pytest

from triciclo import ledger
from triciclo.errors import ValidationError


@pytest.fixture
def history(make_sale):
    return [
        make_sale("2024-02-20T17:00:00+00:00", ("Agua", "1L", 1.8, 10)),
        make_sale("2024-03-02T17:00:00+00:00", ("Agua", "500ml", 1.0, 4), ("Soda", "1L", 2.5, 2)),
        make_sale("2024-03-10T17:00:00+00:00", ("Agua", "1L", 1.8, 5)),
        make_sale("2024-03-15T09:00:00+00:00", ("Agua", "500ml", 1.0, 3), ("Agua", "1L", 1.8, 2)),
    ]


class TestSummary:
    def test_windows(self, history, now):
        summary = ledger.summarize_sales(history, now)

        assert summary.today == pytest.approx(6.6)
        assert summary.week == pytest.approx(6.6 + 9.0)
        assert summary.month == pytest.approx(6.6 + 9.0 + 9.0)
        assert summary.all_time == pytest.approx(6.6 + 9.0 + 9.0 + 18.0)

    def test_empty_history(self, now):
        summary = ledger.summarize_sales([], now)
        assert (summary.today, summary.all_time, summary.top_products) == (0.0, 0.0, [])

    def test_top_products_rank_by_revenue(self, history, now):
        top = ledger.summarize_sales(history, now).top_products

        assert [t.name for t in top] == ["Agua 1L", "Agua 500ml", "Soda 1L"]
        assert top[0].count == 17
        assert top[0].total == pytest.approx(30.6)

    def test_top_products_limit(self, make_sale):
        records = [make_sale("2024-03-01T00:00:00+00:00", *[(f"P{i}", "1L", float(i), 1) for i in range(1, 9)])]
        assert [t.name for t in ledger.top_products(records)] == ["P8 1L", "P7 1L", "P6 1L", "P5 1L", "P4 1L"]


class TestSales:
    def test_filter_is_inclusive(self, history):
        result = ledger.filter_sales(history, date(2024, 3, 2), date(2024, 3, 10))
        assert [r.day for r in result] == ["2024-03-02", "2024-03-10"]

    def test_reversed_range_is_rejected(self, history):
        with pytest.raises(ValidationError):
            ledger.filter_sales(history, date(2024, 3, 10), date(2024, 3, 1))

    def test_delete(self, data, history):
        data.sales_history = list(history)
        assert ledger.delete_sale(data, history[0].id)
        assert not ledger.delete_sale(data, history[0].id)
        assert len(data.sales_history) == 3


@pytest.mark.parametrize("raw,expected", [(None, None), ("", None), (" 2024-03-01 ", date(2024, 3, 1))])
def test_parse_day(raw, expected):
    assert ledger.parse_day(raw) == expected


def test_parse_day_rejects_garbage():
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        ledger.parse_day("15/03/2024")


class TestExpenses:
    def test_seeded_categories(self, data):
        assert [c.name for c in data.expense_categories] == ["Mercancia", "Sueldos", "Servicios"]

    def test_add_expense(self, data, now):
        category = data.expense_categories[0]
        expense = ledger.add_expense(data, category_id=category.id, amount=120.0, description=" botellones ", now=now)

        assert expense.description == "botellones"
        assert expense.day == "2024-03-15"
        assert data.expenses == [expense]

    @pytest.mark.parametrize("amount", [0, -5])
    def test_amount_must_be_positive(self, data, amount):
        with pytest.raises(ValidationError):
            ledger.add_expense(data, category_id=None, amount=amount)
        assert data.expenses == []

    def test_unknown_category_is_rejected(self, data):
        with pytest.raises(ValidationError):
            ledger.add_expense(data, category_id="nope", amount=5)

    def test_deleted_category_shows_default_name(self, data):
        category = ledger.add_category(data, "Gasolina")
        expense = ledger.add_expense(data, category_id=category.id, amount=50)

        assert ledger.delete_category(data, category.id)

        assert data.expenses == [expense]
        assert ledger.category_name(data, expense.category_id) == "General"

    def test_empty_category_name(self, data):
        with pytest.raises(ValidationError):
            ledger.add_category(data, "  ")

    def test_keyword_matches_description_or_category(self, data):
        stock, wages = data.expense_categories[0], data.expense_categories[1]
        march = datetime(2024, 3, 5, tzinfo=timezone.utc)
        april = datetime(2024, 4, 5, tzinfo=timezone.utc)
        tapas = ledger.add_expense(data, category_id=stock.id, amount=10, description="Tapas azules", now=march)
        pay = ledger.add_expense(data, category_id=wages.id, amount=300, description="Semana 1", now=march)
        late = ledger.add_expense(data, category_id=stock.id, amount=20, description="Tapas", now=april)

        assert ledger.filter_expenses(data, keyword="TAPAS") == [tapas, late]
        assert ledger.filter_expenses(data, keyword="sueldos") == [pay]
        assert ledger.filter_expenses(data, date_to=date(2024, 3, 31), keyword="tapas") == [tapas]
        assert ledger.filter_expenses(data) == [tapas, pay, late]

import json
from datetime import date

import pytest

from triciclo import persistence
from triciclo.errors import ImportFormatError
from triciclo.models import AppData

NOW = "2024-03-15T12:00:00+00:00"


def _document(**overrides):
    doc = {
        "dataVersion": 2,
        "products": [
            {
                "id": "p1",
                "name": "Agua",
                "pricePerLiter": "2.5",
                "presentations": [{"id": 1, "name": "500ml", "liters": 0.5, "price": None}],
            }
        ],
        "salesHistory": [
            {"id": "s1", "date": "2024-03-10T18:00:00Z", "totalAmount": 5, "items": []},
        ],
        "expenses": [{"id": "e1", "date": "2024-03-11T09:00:00Z", "amount": "12.50", "description": "Filtros"}],
        "expenseCategories": [{"id": "c1", "name": "Mercancia"}],
        "presentations": [{"id": 1, "name": "500ml", "liters": 0.5, "isProtected": True}],
        "posActiveProducts": [{"id": "p1", "name": "Agua", "presentationItems": [{"presentationId": 1, "count": 4}]}],
    }
    doc.update(overrides)
    return doc


class TestStateFile:
    def test_first_run_seeds_and_saves(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        data = persistence.load_state(path)

        assert path.exists()
        assert [c.name for c in data.expense_categories] == ["Mercancia", "Sueldos", "Servicios"]
        assert [p.name for p in data.presentations] == ["500ml", "1L"]

    def test_save_and_load_keep_the_session(self, tmp_path, data, water, session):
        path = tmp_path / "state.json"
        session.start([water.id])
        session.update_item_count(water.id, 1, 2)
        persistence.save_state(data, path)

        loaded = persistence.load_state(path)

        assert loaded.products[0].name == "Agua"
        assert loaded.pos_active_products[0].item(1).count == 2
        assert set(json.loads(path.read_text())) == {
            "dataVersion",
            "products",
            "salesHistory",
            "expenses",
            "expenseCategories",
            "posActiveProducts",
            "presentations",
        }

    def test_load_reasserts_deleted_base_sizes(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"presentations": [{"id": 7, "name": "Garrafon", "liters": 20}]}))

        data = persistence.load_state(path)

        assert [(p.id, p.name, p.is_protected) for p in data.presentations] == [
            (7, "Garrafon", False),
            (8, "500ml", True),
            (9, "1L", True),
        ]

    def test_legacy_price_field(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"products": [{"id": "p1", "name": "Agua", "price": 3}]}))
        assert persistence.load_state(path).products[0].price_per_liter == 3.0

    def test_no_temp_file_left_behind(self, tmp_path, data):
        persistence.save_state(data, tmp_path / "state.json")
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_wipe_reseeds(self, tmp_path, data, water):
        path = tmp_path / "state.json"
        persistence.save_state(data, path)

        fresh = persistence.wipe_state(path)

        assert fresh.products == []
        assert persistence.load_state(path).products == []


class TestExport:
    def test_file_name(self):
        assert persistence.backup_file_name(date(2024, 3, 15)) == "triciclo_backup_2024-03-15.json"

    def test_export_writes_full_document(self, tmp_path, data, water):
        path = persistence.export_backup(data, tmp_path, date(2024, 3, 15))

        assert path == tmp_path / "triciclo_backup_2024-03-15.json"
        assert AppData.from_dict(json.loads(path.read_text())).products[0].name == "Agua"


class TestSanitize:
    def test_clean_document_imports_without_warnings(self):
        result = persistence.sanitize_document(_document(), NOW)

        assert result.warnings == []
        assert result.data.products[0].price_per_liter == 2.5
        assert result.data.expenses[0].amount == 12.5
        assert result.data.pos_active_products == []

    def test_non_array_products_only_affect_products(self):
        result = persistence.sanitize_document(_document(products="x"), NOW)

        assert result.data.products == []
        assert result.warnings == ['"products" is not an array; an empty array will be used.']
        assert [e.id for e in result.data.expenses] == ["e1"]
        assert result.data.sales_history[0].id == "s1"

    def test_records_without_identity_are_dropped(self):
        doc = _document(
            products=[{"name": "Sin id"}, {"id": "p2", "name": "Soda"}],
            salesHistory=[{"id": "s1", "totalAmount": 3}],
        )
        result = persistence.sanitize_document(doc, NOW)

        assert [p.name for p in result.data.products] == ["Soda"]
        assert result.data.sales_history == []
        assert len(result.warnings) == 2

    def test_defaults_are_filled(self):
        doc = _document(expenses=[{"amount": "abc"}], expenseCategories=[{"name": "Gas"}, {"id": "c9"}])
        result = persistence.sanitize_document(doc, NOW)

        expense = result.data.expenses[0]
        assert expense.amount == 0.0
        assert expense.date == NOW
        assert expense.id
        assert [c.name for c in result.data.expense_categories] == ["Gas"]

    def test_decimal_commas_keep_their_value(self):
        doc = _document(
            products=[{"id": "p1", "name": "Agua", "pricePerLiter": "1,5"}],
            expenses=[{"id": "e1", "date": "2024-03-11", "amount": "12,50"}],
            presentations=[{"id": 3, "name": "Garrafon", "liters": "18,9"}],
        )
        result = persistence.sanitize_document(doc, NOW)

        assert result.data.products[0].price_per_liter == pytest.approx(1.5)
        assert result.data.expenses[0].amount == pytest.approx(12.5)
        assert result.data.presentation(3).liters == pytest.approx(18.9)

    def test_base_sizes_are_restored(self):
        result = persistence.sanitize_document(_document(presentations=[]), NOW)
        assert {p.name for p in result.data.presentations} == {"500ml", "1L"}

    @pytest.mark.parametrize("document", [[], "text", 3, None])
    def test_non_object_is_fatal(self, document):
        with pytest.raises(ImportFormatError):
            persistence.sanitize_document(document, NOW)


def test_invalid_json_is_fatal():
    with pytest.raises(ImportFormatError, match="valid JSON"):
        persistence.parse_backup("{not json")


def test_import_missing_file(tmp_path):
    with pytest.raises(ImportFormatError):
        persistence.import_backup(tmp_path / "missing.json")

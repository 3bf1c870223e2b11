import pytest

from triciclo import catalog
from triciclo.errors import ProtectedPresentationError, ValidationError
from triciclo.models import ProductPresentation


def test_seeded_registry_has_protected_base_sizes(data):
    assert [(p.id, p.name, p.liters, p.is_protected) for p in data.presentations] == [
        (1, "500ml", 0.5, True),
        (2, "1L", 1.0, True),
    ]


class TestProducts:
    def test_duplicate_name_ignores_case_and_spaces(self, data, make_product):
        make_product("agua ")
        with pytest.raises(ValidationError, match="already exists"):
            make_product("Agua")
        assert len(data.products) == 1

    def test_editing_keeps_own_name(self, data, make_product):
        product = make_product("Agua")
        catalog.save_product(
            data,
            name="AGUA",
            price_per_liter=3.0,
            presentations=product.presentations,
            product_id=product.id,
        )
        assert data.products[0].name == "AGUA"
        assert data.products[0].price_per_liter == 3.0

    @pytest.mark.parametrize(
        "name,price,pres_ids",
        [("   ", 1.0, (1,)), ("Agua", 1.0, ()), ("Agua", -1.0, (1,))],
    )
    def test_invalid_products_are_rejected(self, data, make_product, name, price, pres_ids):
        with pytest.raises(ValidationError):
            make_product(name, price, pres_ids)
        assert data.products == []

    def test_presentations_are_copied(self, data):
        chosen = [ProductPresentation(1, "500ml", 0.5)]
        product = catalog.save_product(data, name="Agua", price_per_liter=2.0, presentations=chosen)
        chosen[0].price = 9.0
        assert product.presentations[0].price is None

    def test_delete_product(self, data, make_product):
        product = make_product()
        assert catalog.delete_product(data, product.id)
        assert not catalog.delete_product(data, product.id)


def test_unit_price_prefers_override():
    assert catalog.resolve_unit_price(2.0, ProductPresentation(1, "500ml", 0.5)) == pytest.approx(1.0)
    assert catalog.resolve_unit_price(2.0, ProductPresentation(2, "1L", 1.0, 1.8)) == pytest.approx(1.8)
    assert catalog.resolve_unit_price(2.0, ProductPresentation(3, "Free", 1.0, 0.0)) == 0.0


class TestPresentations:
    def test_add_assigns_next_integer_id(self, data):
        pres = catalog.add_presentation(data, "Garrafon", 20)
        assert pres.id == 3
        assert not pres.is_protected

    def test_add_requires_positive_volume(self, data):
        with pytest.raises(ValidationError):
            catalog.add_presentation(data, "Nada", 0)

    def test_protected_cannot_be_deleted(self, data):
        before = list(data.presentations)
        for pres_id in (1, 2):
            with pytest.raises(ProtectedPresentationError):
                catalog.delete_presentation(data, pres_id)
        assert data.presentations == before

    def test_delete_cascades_to_products(self, data, make_product):
        catalog.add_presentation(data, "Garrafon", 20)
        product = make_product("Agua", 2.0, (1, 3))
        catalog.delete_presentation(data, 3)
        assert data.presentation(3) is None
        assert [p.id for p in product.presentations] == [1]

    def test_edit_cascades_and_reports_volume_change(self, data, make_product):
        product = make_product("Agua", 2.0, (1, 2), {2: 1.8})

        assert catalog.edit_presentation(data, 1, "600ml", 0.6) is True
        assert catalog.edit_presentation(data, 2, "Litro", 1.0) is False

        by_id = {p.id: p for p in product.presentations}
        assert (by_id[1].name, by_id[1].liters) == ("600ml", 0.6)
        assert catalog.resolve_unit_price(product.price_per_liter, by_id[1]) == pytest.approx(1.2)
        assert by_id[2].name == "Litro"
        assert by_id[2].price == 1.8

    def test_missing_base_sizes_are_reseeded(self, data):
        data.presentations = [p for p in data.presentations if p.name != "1L"]
        catalog.add_presentation(data, "Garrafon", 20)

        added = catalog.ensure_protected_presentations(data)

        assert [(p.name, p.id, p.is_protected) for p in added] == [("1L", 3, True)]

    def test_matching_sizes_are_flagged_protected(self, data):
        data.presentations[0].is_protected = False
        assert catalog.ensure_protected_presentations(data) == []
        assert data.presentations[0].is_protected


def test_presentation_choices_follow_registry_order(data):
    chosen = catalog.presentation_choices(data, {2, 1}, {2: 1.5})
    assert [(p.id, p.price) for p in chosen] == [(1, None), (2, 1.5)]

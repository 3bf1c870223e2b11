"""
Pytest fixtures for triciclo tests.

Provides a seeded in-memory state, a controller bound to a temporary data
file and small factories for products and closed sales days.
"""

from datetime import datetime, timezone

import pytest

from triciclo import catalog
from triciclo.controller import PosController
from triciclo.models import SaleLineItem, SaleRecord
from triciclo.persistence import fresh_state
from triciclo.session import PosSession, UndoLog

FIXED_NOW = datetime(2024, 3, 15, 18, 30, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def data():
    """Fresh first-run state: seeded categories plus 500ml (id 1) and 1L (id 2)."""
    return fresh_state("2024-03-01T00:00:00+00:00")


@pytest.fixture
def make_product(data):
    """Create a product offering the given registry presentation ids."""

    def _make(name="Agua", price_per_liter=2.0, presentation_ids=(1, 2), prices=None):
        return catalog.save_product(
            data,
            name=name,
            price_per_liter=price_per_liter,
            presentations=catalog.presentation_choices(data, presentation_ids, prices or {}),
        )

    return _make


@pytest.fixture
def water(make_product):
    """Agua: 500ml at 1.00 (computed) and 1L at a fixed 1.80."""
    return make_product("Agua", 2.0, (1, 2), {2: 1.80})


@pytest.fixture
def session(data):
    return PosSession(data, UndoLog())


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "state" / "triciclo.json"


@pytest.fixture
def controller(data_path):
    return PosController.open(data_path, "record")


@pytest.fixture
def make_sale():
    """Build a closed sales day from ``(name, presentation, price, count)`` tuples."""

    def _make(date, *lines, product_id="p1"):
        items = tuple(
            SaleLineItem(
                product_id=product_id,
                name=name,
                presentation_name=pres,
                price=price,
                count=count,
                total=price * count,
            )
            for name, pres, price, count in lines
        )
        return SaleRecord(id=f"sale-{date}", date=date, total_amount=sum(i.total for i in items), items=items)

    return _make

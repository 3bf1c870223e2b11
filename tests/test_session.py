import copy

import pytest

from triciclo.errors import EmptySessionError, ValidationError
from triciclo.session import EmptyClosePolicy, PosSession, UndoLog, filter_products


def _sell(session, product, counts):
    for pres_id, count in counts.items():
        for _ in range(count):
            assert session.update_item_count(product.id, pres_id, 1)


class TestStart:
    def test_requires_a_selection(self, session):
        with pytest.raises(ValidationError):
            session.start([])

    def test_unknown_ids_only_is_rejected(self, session, water):
        with pytest.raises(ValidationError):
            session.start(["missing"])
        assert not session.is_active

    def test_prices_are_resolved_at_start(self, session, water):
        entries = session.start([water.id])
        items = {item.presentation_id: item for item in entries[0].presentation_items}
        assert items[1].price == pytest.approx(1.00)
        assert items[2].price == pytest.approx(1.80)
        assert all(item.count == 0 for item in items.values())

    def test_start_clears_undo_history(self, session, water):
        session.start([water.id])
        session.update_item_count(water.id, 1, 1)
        session.start([water.id])
        assert session.undo_log.depth == 0

    def test_session_is_a_snapshot_of_the_catalog(self, session, water):
        session.start([water.id])
        water.price_per_liter = 10.0
        assert session.entry(water.id).item(1).price == pytest.approx(1.00)


class TestCounters:
    def test_negative_result_rejected_without_undo_entry(self, session, water):
        session.start([water.id])
        before = copy.deepcopy(session.entries)

        assert session.update_item_count(water.id, 1, -1) is False

        assert session.entries == before
        assert session.undo_log.depth == 0

    def test_unknown_presentation_is_ignored(self, session, water):
        session.start([water.id])
        assert session.update_item_count(water.id, 99, 1) is False
        assert session.undo_log.depth == 0

    def test_total_uses_resolved_prices(self, session, water):
        session.start([water.id])
        _sell(session, water, {1: 3, 2: 2})
        assert session.compute_total() == pytest.approx(6.60)

    def test_reset_when_zero_does_not_push(self, session, water):
        session.start([water.id])
        assert session.reset_product_counts(water.id) is False
        assert session.reset_presentation_count(water.id, 1) is False
        assert session.undo_log.depth == 0

    def test_reset_product_zeroes_every_presentation(self, session, water):
        session.start([water.id])
        _sell(session, water, {1: 2, 2: 1})
        depth = session.undo_log.depth

        assert session.reset_product_counts(water.id)

        assert [item.count for item in session.entry(water.id).presentation_items] == [0, 0]
        assert session.undo_log.depth == depth + 1

    def test_reset_one_presentation(self, session, water):
        session.start([water.id])
        _sell(session, water, {1: 2, 2: 1})
        assert session.reset_presentation_count(water.id, 1)
        entry = session.entry(water.id)
        assert entry.item(1).count == 0
        assert entry.item(2).count == 1


class TestUndo:
    def test_n_undos_restore_start_state(self, session, water):
        session.start([water.id])
        start = copy.deepcopy(session.entries)
        _sell(session, water, {1: 3, 2: 2})
        session.update_item_count(water.id, 1, -1)
        session.reset_presentation_count(water.id, 2)

        for _ in range(7):
            assert session.undo()

        assert session.entries == start
        assert session.undo() is False
        assert session.entries == start

    def test_undo_restores_previous_counts(self, session, water):
        session.start([water.id])
        _sell(session, water, {1: 2})
        session.undo()
        assert session.entry(water.id).item(1).count == 1

    def test_history_is_bounded(self, data, water):
        undo = UndoLog(max_depth=50)
        session = PosSession(data, undo)
        session.start([water.id])
        for _ in range(60):
            session.update_item_count(water.id, 1, 1)

        assert undo.depth == 50
        while session.undo():
            pass
        # The oldest ten snapshots were evicted.
        assert session.entry(water.id).item(1).count == 10

    def test_snapshots_are_independent_copies(self, session, water):
        session.start([water.id])
        session.update_item_count(water.id, 1, 1)
        session.update_item_count(water.id, 1, 1)
        session.undo()
        session.update_item_count(water.id, 1, 5)
        session.undo()
        assert session.entry(water.id).item(1).count == 1


class TestClose:
    def test_close_folds_counters_into_a_record(self, data, session, water, now):
        session.start([water.id])
        _sell(session, water, {1: 3, 2: 2})

        record = session.close(now=now)

        assert record.total_amount == pytest.approx(6.60)
        assert len(record.items) == 2
        assert {(i.presentation_name, i.count) for i in record.items} == {("500ml", 3), ("1L", 2)}
        assert record.date == now.isoformat()
        assert data.sales_history == [record]
        assert data.pos_active_products == []
        assert session.undo_log.depth == 0

    def test_zero_lines_are_skipped(self, session, water, now):
        session.start([water.id])
        _sell(session, water, {1: 1})
        record = session.close(now=now)
        assert [i.presentation_name for i in record.items] == ["500ml"]

    def test_close_without_session_is_rejected(self, session):
        with pytest.raises(ValidationError):
            session.close()

    def test_empty_close_needs_confirmation(self, data, session, water):
        session.start([water.id])
        with pytest.raises(EmptySessionError):
            session.close()
        assert session.is_active
        assert data.sales_history == []

    def test_empty_close_record_policy(self, data, session, water, now):
        session.start([water.id])
        record = session.close(confirm_empty=True, empty_policy=EmptyClosePolicy.RECORD, now=now)
        assert record.total_amount == 0
        assert record.items == ()
        assert data.sales_history == [record]
        assert not session.is_active

    def test_empty_close_reset_policy(self, data, session, water, now):
        session.start([water.id])
        assert session.close(confirm_empty=True, empty_policy=EmptyClosePolicy.RESET, now=now) is None
        assert data.sales_history == []
        assert not session.is_active


def test_policy_parsing():
    assert EmptyClosePolicy.parse(" Reset ") is EmptyClosePolicy.RESET
    assert EmptyClosePolicy.parse(None) is EmptyClosePolicy.RECORD
    assert EmptyClosePolicy.parse("bogus") is EmptyClosePolicy.RECORD


def test_filter_products_is_case_insensitive(make_product):
    products = [make_product("Agua Mineral"), make_product("Soda")]
    assert filter_products(products, "") == products
    assert [p.name for p in filter_products(products, " MINER")] == ["Agua Mineral"]

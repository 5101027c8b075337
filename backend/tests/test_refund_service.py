"""
Refund engine tests.

Verifies:
- Partial then full refunds (status, totals, restock)
- Rejections leave the transaction, refunds and stock untouched
- Per-item conservation across any number of refunds
- Status never moves backward
"""

import pytest

from lelca_pos.extensions import db
from lelca_pos.services import identifier_service, inventory_service, refund_service
from lelca_pos.services.refund_service import (
    AlreadyRefundedError,
    EmptyRefundError,
    ItemNotInTransactionError,
    OverRefundError,
    TransactionNotFoundError,
)
from lelca_pos.validation import ValidationError


STATUS_ORDER = {"Completed": 0, "Partially Refunded": 1, "Refunded": 2}


@pytest.fixture
def single_line_sale(make_item, record_sale):
    """Scenario fixture: 10 units of one item at 5.00, total 50.00."""
    item = make_item("Coke (350ml)", quantity=0, price="5.00")
    txn = record_sale([(item, 10)])
    assert txn.total_amount_cents == 5000
    return txn, item


@pytest.fixture
def two_line_sale(make_item, record_sale):
    first = make_item("Hammer", quantity=20, price="12.00")
    second = make_item("Nails (1kg)", quantity=20, price="3.50")
    txn = record_sale([(first, 5), (second, 3)])
    return txn, first, second


class TestPartialAndFullRefund:
    def test_first_partial_refund(self, single_line_sale):
        txn, item = single_line_sale
        before = inventory_service.get_item(item.id).quantity

        result = refund_service.refund_transaction(
            txn.transaction_id, "Damaged", "", [{"item_id": item.id, "quantity": 4}]
        )

        assert result.status == "Partially Refunded"
        assert len(result.refunds) == 1
        assert result.refunds[0].total_amount_cents == 2000
        assert inventory_service.get_item(item.id).quantity == before + 4

    def test_second_refund_completes(self, single_line_sale):
        txn, item = single_line_sale
        refund_service.refund_transaction(txn.transaction_id, "Damaged", "", [{"item_id": item.id, "quantity": 4}])

        result = refund_service.refund_transaction(
            txn.transaction_id, "Changed mind", "", [{"item_id": item.id, "quantity": 6}]
        )

        assert result.status == "Refunded"
        assert len(result.refunds) == 2
        assert sum(line.quantity for r in result.refunds for line in r.lines) == 10

    def test_third_refund_rejected_without_changes(self, single_line_sale):
        txn, item = single_line_sale
        refund_service.refund_transaction(txn.transaction_id, "a", "", [{"item_id": item.id, "quantity": 4}])
        refund_service.refund_transaction(txn.transaction_id, "b", "", [{"item_id": item.id, "quantity": 6}])
        quantity_before = inventory_service.get_item(item.id).quantity

        with pytest.raises(AlreadyRefundedError) as exc:
            refund_service.refund_transaction(txn.transaction_id, "c", "", [{"item_id": item.id, "quantity": 1}])

        assert exc.value.code == "ALREADY_REFUNDED"
        reloaded = refund_service.refund_summary(txn.transaction_id)
        assert reloaded["status"] == "Refunded"
        assert len(db.session.get(type(txn), txn.transaction_id).refunds) == 2
        assert inventory_service.get_item(item.id).quantity == quantity_before

    def test_refund_record_snapshot(self, single_line_sale):
        txn, item = single_line_sale
        result = refund_service.refund_transaction(
            txn.transaction_id, "Damaged", "box crushed", [{"item_id": item.id, "quantity": 2}],
            processed_by="Admin User",
        )
        record = result.refunds[0]
        assert record.refund_note_number.startswith("REF-")
        assert record.reason == "Damaged"
        assert record.notes == "box crushed"
        assert record.processed_by == "Admin User"
        assert [l.to_dict() for l in record.lines] == [{
            "item_id": item.id,
            "item_name": "Coke (350ml)",
            "quantity": 2,
            "unit_price_cents": 500,
            "line_total_cents": 1000,
        }]

    def test_refund_note_numbers_are_sequential(self, single_line_sale):
        txn, item = single_line_sale
        first = refund_service.refund_transaction(txn.transaction_id, "a", "", [{"item_id": item.id, "quantity": 1}])
        note_one = first.refunds[0].refund_note_number
        second = refund_service.refund_transaction(txn.transaction_id, "b", "", [{"item_id": item.id, "quantity": 1}])
        note_two = second.refunds[1].refund_note_number

        assert int(note_two[4:]) == int(note_one[4:]) + 1
        assert refund_service.get_refund_note(note_two).transaction_id == txn.transaction_id

    def test_original_totals_unchanged_after_refund(self, single_line_sale):
        txn, item = single_line_sale
        result = refund_service.refund_transaction(txn.transaction_id, "a", "", [{"item_id": item.id, "quantity": 10}])
        assert result.total_amount_cents == 5000
        assert result.lines[0].quantity == 10


class TestRejections:
    def test_over_refund_on_two_line_sale(self, two_line_sale):
        txn, first, second = two_line_sale
        stock_before = (first.quantity, second.quantity)

        with pytest.raises(OverRefundError) as exc:
            refund_service.refund_transaction(txn.transaction_id, "x", "", [{"item_id": first.id, "quantity": 6}])

        assert exc.value.details["remaining"] == 5
        reloaded = refund_service.refund_summary(txn.transaction_id)
        assert reloaded["status"] == "Completed"
        assert reloaded["total_refunded_cents"] == 0
        assert (inventory_service.get_item(first.id).quantity,
                inventory_service.get_item(second.id).quantity) == stock_before

    def test_valid_and_over_quota_entries_rejected_atomically(self, two_line_sale):
        txn, first, second = two_line_sale
        counter_before = identifier_service.peek_counter(identifier_service.SEQUENCE_REFUND_NOTE)
        first_stock = inventory_service.get_item(first.id).quantity
        first_updated = inventory_service.get_item(first.id).last_updated

        with pytest.raises(OverRefundError):
            refund_service.refund_transaction(
                txn.transaction_id,
                "mixed",
                "",
                [{"item_id": first.id, "quantity": 2}, {"item_id": second.id, "quantity": 4}],
            )

        summary = refund_service.refund_summary(txn.transaction_id)
        assert summary["status"] == "Completed"
        assert all(line["refunded"] == 0 for line in summary["lines"])
        assert inventory_service.get_item(first.id).quantity == first_stock
        assert inventory_service.get_item(first.id).last_updated == first_updated
        assert identifier_service.peek_counter(identifier_service.SEQUENCE_REFUND_NOTE) == counter_before

    def test_duplicate_entries_are_summed(self, two_line_sale):
        txn, first, _ = two_line_sale
        with pytest.raises(OverRefundError):
            refund_service.refund_transaction(
                txn.transaction_id, "dup", "",
                [{"item_id": first.id, "quantity": 3}, {"item_id": first.id, "quantity": 3}],
            )

    def test_unknown_transaction(self, db_session):
        with pytest.raises(TransactionNotFoundError) as exc:
            refund_service.refund_transaction("txn-0-NOPE", "x", "", [{"item_id": "a", "quantity": 1}])
        assert exc.value.code == "NOT_FOUND"

    def test_item_not_in_transaction(self, two_line_sale):
        txn, _, _ = two_line_sale
        with pytest.raises(ItemNotInTransactionError):
            refund_service.refund_transaction(txn.transaction_id, "x", "", [{"item_id": "item-missing", "quantity": 1}])

    def test_all_zero_quantities_is_empty(self, two_line_sale):
        txn, first, second = two_line_sale
        with pytest.raises(EmptyRefundError):
            refund_service.refund_transaction(
                txn.transaction_id, "x", "",
                [{"item_id": first.id, "quantity": 0}, {"item_id": second.id, "quantity": 0}],
            )

    def test_empty_request(self, two_line_sale):
        txn, _, _ = two_line_sale
        with pytest.raises(EmptyRefundError):
            refund_service.refund_transaction(txn.transaction_id, "x", "", [])

    def test_non_integer_quantity(self, two_line_sale):
        txn, first, _ = two_line_sale
        with pytest.raises(ValidationError):
            refund_service.refund_transaction(txn.transaction_id, "x", "", [{"item_id": first.id, "quantity": "1.5"}])

    def test_zero_entries_skipped_alongside_valid_ones(self, two_line_sale):
        txn, first, second = two_line_sale
        result = refund_service.refund_transaction(
            txn.transaction_id, "x", "",
            [{"item_id": first.id, "quantity": 0}, {"item_id": second.id, "quantity": 1}],
        )
        assert [l.item_id for l in result.refunds[0].lines] == [second.id]


class TestInventoryReconciliation:
    def test_restock_round_trip(self, two_line_sale):
        txn, first, _ = two_line_sale
        before = inventory_service.get_item(first.id).to_dict()

        refund_service.refund_transaction(txn.transaction_id, "x", "", [{"item_id": first.id, "quantity": 3}])

        after = inventory_service.get_item(first.id).to_dict()
        assert after["quantity"] == before["quantity"] + 3
        for key in ("id", "item_name", "material_details", "price_cents", "qr_code", "image", "date_added"):
            assert after[key] == before[key]

    def test_refund_of_deleted_item_still_recorded(self, two_line_sale):
        txn, first, _ = two_line_sale
        inventory_service.delete_item(first.id)

        result = refund_service.refund_transaction(txn.transaction_id, "x", "", [{"item_id": first.id, "quantity": 2}])

        assert result.status == "Partially Refunded"
        assert result.refunds[0].total_amount_cents == 2400
        assert inventory_service.get_item(first.id) is None


class TestInvariants:
    def test_conservation_and_monotonicity_over_a_refund_sequence(self, two_line_sale):
        txn, first, second = two_line_sale
        requests = [
            [{"item_id": first.id, "quantity": 1}],
            [{"item_id": second.id, "quantity": 2}],
            [{"item_id": first.id, "quantity": 9}],           # over quota, rejected
            [{"item_id": first.id, "quantity": 4}, {"item_id": second.id, "quantity": 1}],
            [{"item_id": second.id, "quantity": 1}],          # nothing left, rejected
        ]

        previous = STATUS_ORDER["Completed"]
        for request in requests:
            try:
                refund_service.refund_transaction(txn.transaction_id, "seq", "", request)
            except (OverRefundError, AlreadyRefundedError):
                pass

            summary = refund_service.refund_summary(txn.transaction_id)
            for line in summary["lines"]:
                assert 0 <= line["refunded"] <= line["sold"]
            current = STATUS_ORDER[summary["status"]]
            assert current >= previous
            previous = current

        assert summary["status"] == "Refunded"

    def test_refundable_quantities(self, two_line_sale):
        txn, first, second = two_line_sale
        result = refund_service.refund_transaction(txn.transaction_id, "x", "", [{"item_id": first.id, "quantity": 2}])
        assert refund_service.refundable_quantities(result) == {first.id: 3, second.id: 3}

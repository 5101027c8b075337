"""
Record factory, identifier and validation tests.
"""

import re

import pytest

from lelca_pos.services import identifier_service
from lelca_pos.services.factories import (
    create_inventory_item,
    create_transaction,
    generate_item_id,
    generate_transaction_id,
)
from lelca_pos.validation import ValidationError, cents_to_str, to_cents, validate_inventory_item


class TestIdentifiers:
    def test_item_id_format(self):
        assert re.fullmatch(r"item-\d+-[0-9a-z]{9}", generate_item_id())

    def test_transaction_id_format(self):
        assert re.fullmatch(r"txn-\d+-[0-9A-Z]{5}", generate_transaction_id())

    def test_receipt_number_format(self):
        assert identifier_service.format_receipt_number(1718000123456, 7) == "RCP-123456-007"

    def test_refund_note_format(self):
        assert identifier_service.format_refund_note_number(42) == "REF-00042"

    def test_counters_start_at_one_and_increase(self, db_session):
        assert identifier_service.peek_counter("REFUND_NOTE") == 0
        assert identifier_service.generate_refund_note_number() == "REF-00001"
        assert identifier_service.generate_refund_note_number() == "REF-00002"
        db_session.commit()
        assert identifier_service.peek_counter("REFUND_NOTE") == 2

    def test_counter_increment_rolls_back_with_caller(self, db_session):
        identifier_service.generate_refund_note_number()
        db_session.commit()
        identifier_service.generate_refund_note_number()
        db_session.rollback()
        assert identifier_service.peek_counter("REFUND_NOTE") == 1

    def test_receipt_number_advances_receipt_counter(self, db_session):
        number = identifier_service.generate_receipt_number()
        assert re.fullmatch(r"RCP-\d{6}-\d{3}", number)
        assert identifier_service.peek_counter(identifier_service.SEQUENCE_RECEIPT) == 1


class TestValidation:
    def test_valid_payload_is_cleaned(self):
        cleaned = validate_inventory_item({
            "item_name": "  Coke (350ml) ",
            "quantity": "12",
            "price": "5.005",
        })
        assert cleaned["item_name"] == "Coke (350ml)"
        assert cleaned["quantity"] == 12
        assert cleaned["price_cents"] == 501
        assert cleaned["material_details"] == ""

    def test_price_cents_accepted(self):
        assert validate_inventory_item({"item_name": "A", "quantity": 1, "price_cents": 250})["price_cents"] == 250

    def test_all_field_errors_reported(self):
        with pytest.raises(ValidationError) as exc:
            validate_inventory_item({"item_name": " ", "quantity": -1, "price": "-2"})
        assert exc.value.errors == [
            "Item name is required",
            "Quantity cannot be negative",
            "Price cannot be negative",
        ]

    def test_missing_quantity_and_price(self):
        with pytest.raises(ValidationError) as exc:
            validate_inventory_item({"item_name": "A"})
        assert "Valid quantity is required" in exc.value.errors
        assert "Valid price is required" in exc.value.errors

    def test_non_numeric_price(self):
        with pytest.raises(ValidationError) as exc:
            validate_inventory_item({"item_name": "A", "quantity": 1, "price": "abc"})
        assert exc.value.errors == ["price must be a number"]

    def test_partial_only_checks_given_fields(self):
        assert validate_inventory_item({"quantity": 3}, partial=True) == {"quantity": 3}

    def test_to_cents_rounds_half_up(self):
        assert to_cents("0.125", "x") == 13
        assert to_cents(5, "x") == 500
        assert cents_to_str(2050) == "20.50"


class TestCreateInventoryItem:
    def test_generated_fields(self, db_session):
        item = create_inventory_item({"item_name": "Hammer", "quantity": 4, "price_cents": 1200})
        assert item.id.startswith("item-")
        assert item.date_added == item.last_updated
        assert item.quantity == 4
        assert item.price_cents == 1200
        assert item.qr_code is None


class TestCreateTransaction:
    def _fields(self, **overrides):
        fields = {
            "items": [{"item_id": "item-1", "item_name": "Hammer", "quantity": 2, "unit_price_cents": 1200}],
            "subtotal_cents": 2400,
            "tax_cents": 300,
            "payment_method": "Card",
            "card_details": {"last4": "4242"},
            "amount_tendered_cents": 5000,
            "momo_details": {"network": "MTN"},
        }
        fields.update(overrides)
        return fields

    def test_defaults(self, db_session):
        txn = create_transaction(self._fields())
        assert txn.status == "Completed"
        assert txn.cashier == "Staff"
        assert txn.total_amount_cents == 2700
        assert txn.transaction_id.startswith("txn-")
        assert txn.receipt_number.startswith("RCP-")
        assert txn.lines[0].line_total_cents == 2400

    def test_only_matching_payment_payload_kept(self, db_session):
        txn = create_transaction(self._fields())
        assert txn.card_details == {"last4": "4242"}
        assert txn.momo_details is None
        assert txn.amount_tendered_cents is None
        assert txn.change_given_cents is None

    def test_items_copied_by_value(self, db_session):
        fields = self._fields()
        txn = create_transaction(fields)
        fields["items"][0]["quantity"] = 99
        fields["card_details"]["last4"] = "0000"
        assert txn.lines[0].quantity == 2
        assert txn.card_details == {"last4": "4242"}

    def test_unknown_payment_method(self, db_session):
        with pytest.raises(ValidationError):
            create_transaction(self._fields(payment_method="Cheque"))

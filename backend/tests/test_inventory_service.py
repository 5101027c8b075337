"""
Inventory store tests.
"""

import base64
import json
import time

import pytest

from lelca_pos.services import inventory_service, qr_service
from lelca_pos.services.inventory_service import InsufficientStockError, ItemNotFoundError
from lelca_pos.services.qr_service import QR_PAYLOAD_TYPE, build_qr_payload, parse_qr_payload
from lelca_pos.validation import ValidationError


class TestAddItems:
    def test_add_and_get(self, make_item):
        item = make_item("Hammer", quantity=4, price="12.50")
        loaded = inventory_service.get_item(item.id)
        assert loaded.item_name == "Hammer"
        assert loaded.price_cents == 1250
        assert loaded.quantity == 4

    def test_invalid_item_not_saved(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.add_item({"item_name": "", "quantity": 1, "price": "1"})
        assert inventory_service.load_inventory() == []

    def test_qr_code_from_injected_encoder(self, db_session):
        payloads = []

        def encoder(payload):
            payloads.append(payload)
            return "data:image/png;base64,AAAA"

        item = inventory_service.add_item({"item_name": "Coke", "quantity": 1, "price": "5"}, qr_encoder=encoder)
        assert item.qr_code == "data:image/png;base64,AAAA"
        assert json.loads(payloads[0]) == {"id": item.id, "name": "Coke", "type": QR_PAYLOAD_TYPE}

    def test_failing_encoder_saves_without_code(self, db_session):
        def encoder(payload):
            raise RuntimeError("no camera library")

        item = inventory_service.add_item({"item_name": "Coke", "quantity": 1, "price": "5"}, qr_encoder=encoder)
        assert item.qr_code is None
        assert inventory_service.get_item(item.id) is not None

    def test_no_encoder_saves_without_code(self, make_item):
        assert make_item().qr_code is None

    def test_bulk_add_is_all_or_nothing(self, db_session):
        rows = [
            {"item_name": "A", "quantity": 1, "price": "1"},
            {"item_name": "", "quantity": 1, "price": "1"},
        ]
        with pytest.raises(ValidationError) as exc:
            inventory_service.bulk_add_items(rows)
        assert exc.value.errors == ["Row 2: Item name is required"]
        assert inventory_service.load_inventory() == []

    def test_bulk_add(self, db_session):
        items = inventory_service.bulk_add_items([
            {"item_name": "A", "quantity": 1, "price": "1"},
            {"item_name": "B", "quantity": 2, "price": "2"},
        ])
        assert [i.item_name for i in items] == ["A", "B"]
        assert len(inventory_service.load_inventory()) == 2


class TestQrPayload:
    def test_scan_resolves_item(self, make_item):
        item = make_item()
        assert inventory_service.get_item_by_qr(build_qr_payload(item.id, item.item_name)).id == item.id

    def test_foreign_payload_ignored(self):
        assert parse_qr_payload('{"id": "x", "type": "OTHER"}') is None
        assert parse_qr_payload("not json") is None

    def test_default_config_renders_png_data_url(self, app, db_session):
        item = inventory_service.add_item(
            {"item_name": "Coke", "quantity": 1, "price": "5"}, qr_encoder=qr_service.configured_encoder()
        )

        prefix = "data:image/png;base64,"
        assert item.qr_code.startswith(prefix)
        assert base64.b64decode(item.qr_code[len(prefix):]).startswith(b"\x89PNG\r\n\x1a\n")

    def test_qr_codes_can_be_disabled(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "QR_CODES_ENABLED", False)
        assert qr_service.configured_encoder() is None

    def test_injected_encoder_wins(self, app, monkeypatch):
        def encoder(payload):
            return "data:image/png;base64,AAAA"

        monkeypatch.setitem(app.config, "QR_ENCODER", encoder)
        assert qr_service.configured_encoder() is encoder


class TestUpdateItems:
    def test_update_stamps_last_updated(self, make_item):
        item = make_item(quantity=5)
        stamp = item.last_updated
        time.sleep(0.002)

        updated = inventory_service.update_item(item.id, {"quantity": 7, "price": "6.00"})

        assert updated.quantity == 7
        assert updated.price_cents == 600
        assert updated.last_updated > stamp
        assert updated.date_added == item.date_added

    def test_update_missing_raises(self, db_session):
        with pytest.raises(ItemNotFoundError):
            inventory_service.update_item("item-missing", {"quantity": 1})

    def test_bulk_update_skips_unknown_and_leaves_others(self, make_item):
        a = make_item("A", quantity=1)
        b = make_item("B", quantity=1)
        untouched = make_item("C", quantity=1)
        c_stamp = untouched.last_updated

        updated = inventory_service.bulk_update_items([
            {"id": a.id, "quantity": 10},
            {"id": "item-missing", "quantity": 3},
            {"id": b.id, "item_name": "B2"},
        ])

        assert [i.id for i in updated] == [a.id, b.id]
        assert inventory_service.get_item(a.id).quantity == 10
        assert inventory_service.get_item(b.id).item_name == "B2"
        assert inventory_service.get_item(untouched.id).last_updated == c_stamp

    def test_bulk_update_rejects_invalid_patch(self, make_item):
        a = make_item("A", quantity=1)
        with pytest.raises(ValidationError):
            inventory_service.bulk_update_items([{"id": a.id, "quantity": -5}])
        assert inventory_service.get_item(a.id).quantity == 1

    def test_bulk_update_rejects_malformed_entries(self, make_item):
        a = make_item("A", quantity=1)
        with pytest.raises(ValidationError) as exc:
            inventory_service.bulk_update_items(["abc", {"id": {"x": 1}}, {"id": a.id, "quantity": 3}])
        assert exc.value.errors == ["Update 1: must be an object", "Update 2: id must be a string"]
        assert inventory_service.get_item(a.id).quantity == 1

    def test_restock(self, make_item):
        item = make_item(quantity=2)
        assert inventory_service.restock_item(item.id, 8).quantity == 10

    def test_restock_requires_positive_quantity(self, make_item):
        item = make_item(quantity=2)
        with pytest.raises(ValidationError):
            inventory_service.restock_item(item.id, 0)

    def test_stock_delta_never_goes_negative(self, make_item):
        item = make_item(quantity=2)
        with pytest.raises(InsufficientStockError):
            inventory_service.apply_stock_delta(item, -3)
        assert item.quantity == 2


class TestReplaceAndDelete:
    def test_save_inventory_replaces_collection(self, make_item):
        keep = make_item("Keep", quantity=1)
        make_item("Drop", quantity=1)

        result = inventory_service.save_inventory([
            {"id": keep.id, "item_name": "Keep", "quantity": 5, "price": "1"},
            {"item_name": "New", "quantity": 2, "price": "3"},
        ])

        names = sorted(i.item_name for i in inventory_service.load_inventory())
        assert names == ["Keep", "New"]
        assert result[0].id == keep.id
        assert inventory_service.get_item(keep.id).quantity == 5

    def test_delete_missing_is_noop(self, make_item):
        make_item()
        assert inventory_service.delete_item("item-missing") is False
        assert len(inventory_service.load_inventory()) == 1

    def test_delete(self, make_item):
        item = make_item()
        assert inventory_service.delete_item(item.id) is True
        assert inventory_service.get_item(item.id) is None

    def test_bulk_delete_returns_remaining(self, make_item):
        a = make_item("A")
        b = make_item("B")
        make_item("C")
        assert inventory_service.bulk_delete_items([a.id, b.id, "item-missing"]) == 1

    def test_bulk_delete_rejects_non_string_ids(self, make_item):
        a = make_item("A")
        with pytest.raises(ValidationError) as exc:
            inventory_service.bulk_delete_items([a.id, {"x": 1}])
        assert exc.value.errors == ["Id 2: must be a string"]
        assert inventory_service.get_item(a.id) is not None

    def test_clear_inventory(self, make_item):
        make_item("A")
        make_item("B")
        assert inventory_service.clear_inventory() == 2
        assert inventory_service.load_inventory() == []


class TestQueries:
    def test_search_by_name_or_details(self, make_item):
        make_item("Hammer", material_details="Steel head")
        make_item("Coke (350ml)", material_details="Glass bottle")
        assert [i.item_name for i in inventory_service.search_items("steel")] == ["Hammer"]
        assert [i.item_name for i in inventory_service.search_items("COKE")] == ["Coke (350ml)"]
        assert len(inventory_service.search_items("  ")) == 2

    def test_total_value(self, make_item):
        make_item("A", quantity=3, price="2.50")
        make_item("B", quantity=2, price="1.00")
        assert inventory_service.total_inventory_value_cents() == 950

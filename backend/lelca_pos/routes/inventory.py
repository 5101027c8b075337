# backend/lelca_pos/routes/inventory.py
"""
Inventory management routes.

SECURITY: All routes require authentication. Any operator may manage
stock; store settings are admin-only (see routes/settings.py).

Prices may be sent as `price` (decimal currency, e.g. 5.00) or
`price_cents`. Responses always carry `price_cents`.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import grouping_service, import_service, inventory_service, qr_service, stock_service
from ..services.import_service import CsvImportError
from ..services.inventory_service import InventoryError, ItemNotFoundError
from ..services.settings_service import get_settings
from ..validation import ValidationError
from ..decorators import require_auth


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _qr_encoder():
    return qr_service.configured_encoder()


def _validation_error(e: ValidationError):
    return jsonify({"error": str(e), "errors": e.errors}), 400


@inventory_bp.get("/")
@require_auth
def list_items_route():
    items = inventory_service.search_items(request.args.get("q"))
    return jsonify({
        "items": [item.to_dict() for item in items],
        "total_value_cents": inventory_service.total_inventory_value_cents(),
    }), 200


@inventory_bp.post("/")
@require_auth
def create_item_route():
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.add_item(payload, qr_encoder=_qr_encoder())
        return jsonify({"item": item.to_dict()}), 201
    except ValidationError as e:
        return _validation_error(e)
    except Exception:
        current_app.logger.exception("Failed to add inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/bulk")
@require_auth
def bulk_create_route():
    payload = request.get_json(silent=True) or {}
    rows = payload.get("items")
    if not isinstance(rows, list):
        return jsonify({"error": "items must be a list"}), 400
    try:
        items = inventory_service.bulk_add_items(rows, qr_encoder=_qr_encoder())
        return jsonify({"items": [item.to_dict() for item in items]}), 201
    except ValidationError as e:
        return _validation_error(e)
    except Exception:
        current_app.logger.exception("Failed to bulk add inventory items")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/import")
@require_auth
def import_route():
    """Upload a CSV or Excel file (multipart field `file`)."""
    if "file" not in request.files:
        return jsonify({"error": "file is required"}), 400

    file = request.files["file"]
    try:
        result = import_service.import_file(file.filename or "", file.stream.read(), qr_encoder=_qr_encoder())
        return jsonify(result.to_dict()), 201
    except CsvImportError as e:
        return jsonify({"error": str(e)}), 400
    except ValidationError as e:
        return _validation_error(e)
    except Exception:
        current_app.logger.exception("Failed to import inventory file")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/scan")
@require_auth
def scan_route():
    """Resolve a scanned QR payload (?payload=...) to its item."""
    item = inventory_service.get_item_by_qr(request.args.get("payload", ""))
    if not item:
        return jsonify({"error": "Item not found"}), 404
    return jsonify({"item": item.to_dict()}), 200


@inventory_bp.get("/alerts")
@require_auth
def alerts_route():
    settings = get_settings().inventory
    items = inventory_service.load_inventory()
    return jsonify({
        "low_stock_threshold": settings.low_stock_threshold,
        "critical_stock_level": settings.critical_stock_level,
        "alerts": stock_service.stock_alerts(
            items, settings.low_stock_threshold, settings.critical_stock_level
        ),
    }), 200


@inventory_bp.get("/groups")
@require_auth
def groups_route():
    sort_by = request.args.get("sort", "name")
    if sort_by not in grouping_service.SORT_OPTIONS:
        return jsonify({"error": f"sort must be one of: {', '.join(grouping_service.SORT_OPTIONS)}"}), 400

    groups = grouping_service.group_inventory_items(inventory_service.load_inventory())
    groups = grouping_service.search_grouped_items(groups, request.args.get("q"))
    for group in groups.values():
        group.variants = grouping_service.sort_variants(group.variants, sort_by)

    return jsonify({"groups": [group.to_dict() for group in groups.values()]}), 200


@inventory_bp.get("/<item_id>")
@require_auth
def get_item_route(item_id: str):
    item = inventory_service.get_item(item_id)
    if not item:
        return jsonify({"error": "Item not found"}), 404
    return jsonify({"item": item.to_dict()}), 200


@inventory_bp.patch("/<item_id>")
@require_auth
def update_item_route(item_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.update_item(item_id, payload)
        return jsonify({"item": item.to_dict()}), 200
    except ValidationError as e:
        return _validation_error(e)
    except ItemNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/<item_id>")
@require_auth
def delete_item_route(item_id: str):
    deleted = inventory_service.delete_item(item_id)
    return jsonify({"deleted": deleted}), 200


@inventory_bp.post("/bulk-update")
@require_auth
def bulk_update_route():
    payload = request.get_json(silent=True) or {}
    updates = payload.get("updates")
    if not isinstance(updates, list):
        return jsonify({"error": "updates must be a list"}), 400
    try:
        items = inventory_service.bulk_update_items(updates)
        return jsonify({"items": [item.to_dict() for item in items]}), 200
    except ValidationError as e:
        return _validation_error(e)
    except Exception:
        current_app.logger.exception("Failed to bulk update inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/bulk-delete")
@require_auth
def bulk_delete_route():
    payload = request.get_json(silent=True) or {}
    ids = payload.get("ids")
    if not isinstance(ids, list):
        return jsonify({"error": "ids must be a list"}), 400
    try:
        remaining = inventory_service.bulk_delete_items(ids)
        return jsonify({"remaining": remaining}), 200
    except ValidationError as e:
        return _validation_error(e)
    except Exception:
        current_app.logger.exception("Failed to bulk delete inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<item_id>/restock")
@require_auth
def restock_route(item_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.restock_item(item_id, payload.get("quantity"))
        return jsonify({"item": item.to_dict()}), 200
    except ValidationError as e:
        return _validation_error(e)
    except ItemNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InventoryError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to restock inventory item")
        return jsonify({"error": "Internal server error"}), 500

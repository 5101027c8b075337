# backend/lelca_pos/routes/sales.py
"""Checkout and transaction lookup routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import ledger_service, sales_service
from ..services.sales_service import SaleError
from ..validation import ValidationError
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Sell a cart.

    Body: {"cart": [{"item_id", "quantity"}], "payment": {"method", ...}}
    The operator behind the token is recorded as the cashier.
    """
    try:
        data = request.get_json(silent=True) or {}
        transaction = sales_service.complete_sale(
            data.get("cart") or [],
            data.get("payment") or {},
            cashier=g.current_user.name,
        )
        return jsonify({"transaction": transaction.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to complete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@require_auth
def list_transactions_route():
    """Newest first. Optional ?start=YYYY-MM-DD&end=YYYY-MM-DD or ?limit=N."""
    start = request.args.get("start")
    end = request.args.get("end")
    try:
        if start or end:
            transactions = list(reversed(ledger_service.transactions_in_range(start, end)))
        else:
            limit = request.args.get("limit", type=int)
            transactions = ledger_service.load_transactions(limit=limit)
    except ledger_service.LedgerError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"transactions": [txn.to_dict() for txn in transactions]}), 200


@sales_bp.get("/today")
@require_auth
def todays_transactions_route():
    transactions = ledger_service.todays_transactions()
    return jsonify({
        "transactions": [txn.to_dict() for txn in reversed(transactions)],
        "total_sales_cents": ledger_service.todays_sales_total_cents(),
    }), 200


@sales_bp.get("/receipt/<receipt_number>")
@require_auth
def get_by_receipt_route(receipt_number: str):
    transaction = ledger_service.get_by_receipt_number(receipt_number)
    if not transaction:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"transaction": transaction.to_dict()}), 200


@sales_bp.get("/<transaction_id>")
@require_auth
def get_transaction_route(transaction_id: str):
    transaction = ledger_service.get_transaction(transaction_id)
    if not transaction:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"transaction": transaction.to_dict()}), 200

# backend/lelca_pos/routes/refunds.py
"""
Refund routes.

Error codes in the response body are stable and meant for the client:
NOT_FOUND, ALREADY_REFUNDED, ITEM_NOT_IN_TRANSACTION, OVER_REFUND, EMPTY_REFUND.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import refund_service
from ..services.refund_service import RefundError, TransactionNotFoundError
from ..validation import ValidationError
from ..decorators import require_auth


refunds_bp = Blueprint("refunds", __name__, url_prefix="/api/refunds")


def _refund_error(e: RefundError):
    status = 404 if isinstance(e, TransactionNotFoundError) else 409
    return jsonify({"error": str(e), "code": e.code, "details": e.details}), status


@refunds_bp.post("/<transaction_id>")
@require_auth
def refund_route(transaction_id: str):
    """
    Refund some or all items of a transaction.

    Body: {"items": [{"item_id", "quantity"}], "reason", "notes"}
    """
    try:
        data = request.get_json(silent=True) or {}
        transaction = refund_service.refund_transaction(
            transaction_id,
            reason=data.get("reason"),
            notes=data.get("notes"),
            items=data.get("items") or [],
            processed_by=g.current_user.name,
        )
        return jsonify({
            "transaction": transaction.to_dict(),
            "refund": transaction.refunds[-1].to_dict(),
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except RefundError as e:
        return _refund_error(e)
    except Exception:
        current_app.logger.exception("Failed to process refund")
        return jsonify({"error": "Internal server error"}), 500


@refunds_bp.get("/<transaction_id>/refundable")
@require_auth
def refundable_route(transaction_id: str):
    try:
        return jsonify(refund_service.refund_summary(transaction_id)), 200
    except RefundError as e:
        return _refund_error(e)


@refunds_bp.get("/notes/<refund_note_number>")
@require_auth
def refund_note_route(refund_note_number: str):
    record = refund_service.get_refund_note(refund_note_number)
    if not record:
        return jsonify({"error": "Refund note not found"}), 404
    return jsonify({
        "refund": record.to_dict(),
        "transaction_id": record.transaction_id,
        "receipt_number": record.transaction.receipt_number,
    }), 200

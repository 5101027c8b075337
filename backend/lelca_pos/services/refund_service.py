"""
Refund Processing Service

WHY: Refunds must keep money and stock reconciled across any number of
partial refunds. Each refund action is an immutable RefundRecord appended to
the transaction, so the full history (when, why, what, who) survives for
audit and for reprinting refund notes.

DESIGN PRINCIPLES:
- A request is validated completely before anything is written. One bad
  entry rejects the whole request (all-or-nothing).
- Per item, the quantity refunded across all records never exceeds the
  quantity sold on that line.
- Stock restoration, the new RefundRecord, the refund-note counter and the
  status change commit in one database transaction.
- Status only moves forward: Completed -> Partially Refunded -> Refunded.
  Refunded is terminal.

STATUS RULE:
Cumulative refunded units vs cumulative sold units across ALL lines:
- 0 < refunded < sold  -> Partially Refunded
- refunded >= sold     -> Refunded
"""

from __future__ import annotations

import logging
from collections import OrderedDict

from ..extensions import db
from ..models import RefundLine, RefundRecord, Transaction
from ..models.sales import (
    TRANSACTION_STATUS_PARTIALLY_REFUNDED,
    TRANSACTION_STATUS_REFUNDED,
)
from ..validation import ValidationError, coerce_int
from lelca_pos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .identifier_service import generate_refund_note_number
from .inventory_service import apply_stock_delta, lock_items

logger = logging.getLogger(__name__)


class RefundError(Exception):
    """Raised for refund operation errors."""
    code = "REFUND_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class TransactionNotFoundError(RefundError):
    code = "NOT_FOUND"


class AlreadyRefundedError(RefundError):
    code = "ALREADY_REFUNDED"


class ItemNotInTransactionError(RefundError):
    code = "ITEM_NOT_IN_TRANSACTION"


class OverRefundError(RefundError):
    code = "OVER_REFUND"


class EmptyRefundError(RefundError):
    code = "EMPTY_REFUND"


# =============================================================================
# QUANTITY BOOKKEEPING
# =============================================================================

def sold_quantities(transaction: Transaction) -> dict[str, int]:
    """item_id -> units sold (summed if an item appears on several lines)."""
    sold: dict[str, int] = {}
    for line in transaction.lines:
        sold[line.item_id] = sold.get(line.item_id, 0) + line.quantity
    return sold


def refunded_quantities(transaction: Transaction) -> dict[str, int]:
    """item_id -> units refunded across all prior RefundRecords."""
    refunded: dict[str, int] = {}
    for record in transaction.refunds:
        for line in record.lines:
            refunded[line.item_id] = refunded.get(line.item_id, 0) + line.quantity
    return refunded


def refundable_quantities(transaction: Transaction) -> dict[str, int]:
    """item_id -> units still refundable."""
    refunded = refunded_quantities(transaction)
    return {
        item_id: sold - refunded.get(item_id, 0)
        for item_id, sold in sold_quantities(transaction).items()
    }


def compute_status(transaction: Transaction) -> str:
    """Status implied by the refunds recorded so far (cumulative, all lines)."""
    total_sold = sum(line.quantity for line in transaction.lines)
    total_refunded = sum(
        line.quantity for record in transaction.refunds for line in record.lines
    )
    if total_refunded <= 0:
        return transaction.status
    if total_refunded >= total_sold:
        return TRANSACTION_STATUS_REFUNDED
    return TRANSACTION_STATUS_PARTIALLY_REFUNDED


def _normalize_request(items: list[dict]) -> "OrderedDict[str, int]":
    """
    [{item_id, quantity}] -> ordered {item_id: quantity}.

    Duplicate entries for one item are summed so the over-refund check sees
    the whole requested amount.
    """
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    requested: "OrderedDict[str, int]" = OrderedDict()
    for index, entry in enumerate(items):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")
        item_id = entry.get("item_id")
        if not item_id:
            raise ValidationError(f"items[{index}].item_id is required")
        quantity = coerce_int(entry.get("quantity"), f"items[{index}].quantity")
        requested[str(item_id)] = requested.get(str(item_id), 0) + quantity
    return requested


def validate_refund_request(transaction: Transaction, items: list[dict]) -> list[tuple]:
    """
    Check a refund request against a transaction without changing anything.

    Returns [(original_line, quantity)] for the entries that will move stock.
    Entries with quantity <= 0 are skipped. Raises on the first violation.
    """
    if transaction.status == TRANSACTION_STATUS_REFUNDED:
        raise AlreadyRefundedError(
            f"Transaction {transaction.transaction_id} is already fully refunded"
        )

    requested = _normalize_request(items)
    lines_by_item = {}
    for line in transaction.lines:
        lines_by_item.setdefault(line.item_id, line)
    remaining = refundable_quantities(transaction)

    accepted = []
    for item_id, quantity in requested.items():
        line = lines_by_item.get(item_id)
        if line is None:
            raise ItemNotInTransactionError(
                f"Item {item_id} not found in transaction",
                details={"item_id": item_id},
            )

        available = remaining.get(item_id, 0)
        if quantity > available:
            raise OverRefundError(
                f"Cannot refund {quantity} of {line.item_name}. Only {available} remaining.",
                details={"item_id": item_id, "requested": quantity, "remaining": available},
            )

        if quantity <= 0:
            continue
        accepted.append((line, quantity))

    if not accepted:
        raise EmptyRefundError("No items selected for refund")

    return accepted


# =============================================================================
# REFUND
# =============================================================================

def refund_transaction(
    transaction_id: str,
    reason: str | None = None,
    notes: str | None = None,
    items: list[dict] | None = None,
    processed_by: str | None = None,
) -> Transaction:
    """
    Refund some or all of a transaction's items.

    Args:
        transaction_id: Transaction to refund against
        reason: Operator's reason for the refund
        notes: Free-text notes
        items: [{item_id, quantity}] to return in this action
        processed_by: Display name of the operator

    Returns:
        The updated Transaction (new RefundRecord appended, status recomputed)

    Raises:
        TransactionNotFoundError, AlreadyRefundedError, ItemNotInTransactionError,
        OverRefundError, EmptyRefundError, ValidationError. Nothing is written
        when any of these is raised.
    """
    def _op():
        transaction = lock_for_update(
            db.session.query(Transaction).filter_by(transaction_id=transaction_id)
        ).first()
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

        accepted = validate_refund_request(transaction, items or [])

        # Restore stock. Items deleted from the catalogue since the sale are
        # skipped; the refund itself still stands.
        now = utcnow()
        inventory = lock_items(line.item_id for line, _ in accepted)
        for line, quantity in accepted:
            item = inventory.get(line.item_id)
            if item is not None:
                apply_stock_delta(item, quantity, now=now)

        refund_lines = [
            RefundLine(
                position=position,
                item_id=line.item_id,
                item_name=line.item_name,
                quantity=quantity,
                unit_price_cents=line.unit_price_cents,
                line_total_cents=quantity * line.unit_price_cents,
            )
            for position, (line, quantity) in enumerate(accepted)
        ]
        record = RefundRecord(
            position=len(transaction.refunds),
            refund_note_number=generate_refund_note_number(),
            refund_date=now,
            total_amount_cents=sum(rl.line_total_cents for rl in refund_lines),
            reason=reason,
            notes=notes,
            processed_by=processed_by,
            lines=refund_lines,
        )
        transaction.refunds.append(record)
        transaction.status = compute_status(transaction)

        db.session.commit()
        return transaction, record

    transaction, record = run_with_retry(_op)
    logger.info(
        "Refund %s on %s: %d cents, status now %s",
        record.refund_note_number,
        transaction.transaction_id,
        record.total_amount_cents,
        transaction.status,
    )
    return transaction


# =============================================================================
# QUERIES
# =============================================================================

def get_refund_note(refund_note_number: str) -> RefundRecord | None:
    return db.session.query(RefundRecord).filter_by(refund_note_number=refund_note_number).first()


def refund_summary(transaction_id: str) -> dict:
    """Per-line sold / refunded / remaining quantities for a transaction."""
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

    refunded = refunded_quantities(transaction)
    remaining = refundable_quantities(transaction)
    return {
        "transaction_id": transaction.transaction_id,
        "receipt_number": transaction.receipt_number,
        "status": transaction.status,
        "lines": [
            {
                "item_id": item_id,
                "item_name": next(l.item_name for l in transaction.lines if l.item_id == item_id),
                "sold": sold,
                "refunded": refunded.get(item_id, 0),
                "remaining": remaining[item_id],
            }
            for item_id, sold in sold_quantities(transaction).items()
        ],
        "total_refunded_cents": sum(r.total_amount_cents for r in transaction.refunds),
    }

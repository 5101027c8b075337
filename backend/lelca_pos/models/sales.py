from __future__ import annotations

from ..extensions import db
from lelca_pos.time_utils import to_utc_z


TRANSACTION_STATUS_COMPLETED = "Completed"
TRANSACTION_STATUS_PARTIALLY_REFUNDED = "Partially Refunded"
TRANSACTION_STATUS_REFUNDED = "Refunded"

PAYMENT_CASH = "Cash"
PAYMENT_CARD = "Card"
PAYMENT_MOBILE_MONEY = "Mobile Money"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_MOBILE_MONEY)


class Transaction(db.Model):
    """
    Completed sale.

    WHY: The transaction is a frozen record of what was sold. Only `status`
    and the appended `refunds` change after creation, and only through the
    refund service.

    TOTALS: total_amount_cents = subtotal_cents + tax_cents at creation and is
    never recomputed after refunds.

    PAYMENT: exactly one method-specific payload is populated:
    - Cash: amount_tendered_cents / change_given_cents
    - Card: card_details
    - Mobile Money: momo_details
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("receipt_number", name="uq_transactions_receipt_number"),
        db.Index("ix_transactions_date", "date"),
        db.Index("ix_transactions_status_date", "status", "date"),
    )

    transaction_id = db.Column(db.String(64), primary_key=True)
    receipt_number = db.Column(db.String(32), nullable=False)

    # Creation timestamp, immutable
    date = db.Column(db.DateTime, nullable=False)

    # Amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    amount_tendered_cents = db.Column(db.Integer, nullable=True)
    change_given_cents = db.Column(db.Integer, nullable=True)
    card_details = db.Column(db.JSON, nullable=True)
    momo_details = db.Column(db.JSON, nullable=True)

    status = db.Column(db.String(24), nullable=False, default=TRANSACTION_STATUS_COMPLETED)
    cashier = db.Column(db.String(128), nullable=False, default="Staff")

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "TransactionLine",
        backref="transaction",
        order_by="TransactionLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    refunds = db.relationship(
        "RefundRecord",
        backref="transaction",
        order_by="RefundRecord.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_id} {self.receipt_number} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "receipt_number": self.receipt_number,
            "date": to_utc_z(self.date),
            "items": [line.to_dict() for line in self.lines],
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "amount_tendered_cents": self.amount_tendered_cents,
            "change_given_cents": self.change_given_cents,
            "card_details": self.card_details,
            "momo_details": self.momo_details,
            "status": self.status,
            "cashier": self.cashier,
            "refunds": [refund.to_dict() for refund in self.refunds],
        }

class TransactionLine(db.Model):
    """Snapshot line of a transaction. Does not follow later catalogue edits."""
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "position", name="uq_transaction_lines_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.String(64), db.ForeignKey("transactions.transaction_id"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)

    # References InventoryItem.id by value; the item may since have been deleted
    item_id = db.Column(db.String(64), nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }

class RefundRecord(db.Model):
    """
    One refund action against a transaction.

    IMMUTABLE: Records are appended, never updated or deleted. Insertion order
    (position) is chronological order. `items` lists what was returned in this
    action only, not cumulative quantities.
    """
    __tablename__ = "refund_records"
    __table_args__ = (
        db.UniqueConstraint("refund_note_number", name="uq_refund_records_note_number"),
        db.UniqueConstraint("transaction_id", "position", name="uq_refund_records_position"),
        db.Index("ix_refund_records_refund_date", "refund_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.String(64), db.ForeignKey("transactions.transaction_id"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False)

    refund_note_number = db.Column(db.String(32), nullable=False)
    refund_date = db.Column(db.DateTime, nullable=False)

    total_amount_cents = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    processed_by = db.Column(db.String(128), nullable=True)

    lines = db.relationship(
        "RefundLine",
        backref="refund",
        order_by="RefundLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "refund_note_number": self.refund_note_number,
            "refund_date": to_utc_z(self.refund_date),
            "items": [line.to_dict() for line in self.lines],
            "total_amount_cents": self.total_amount_cents,
            "reason": self.reason,
            "notes": self.notes,
            "processed_by": self.processed_by,
        }

class RefundLine(db.Model):
    """Returned quantity of one item within a refund action."""
    __tablename__ = "refund_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_refund_lines_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    refund_id = db.Column(db.Integer, db.ForeignKey("refund_records.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    item_id = db.Column(db.String(64), nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }

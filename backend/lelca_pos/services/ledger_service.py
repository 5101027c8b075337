# Overview: Service-layer operations for the transaction ledger; append, lookup and period aggregation.

"""
Transaction ledger.

Completed sales are appended once and never deleted in normal operation.
Listing order (newest first) is a presentation choice only.

Period aggregation is dual-dated:
- sales figures (total_sales, transaction_count, items_sold) count
  transactions whose sale `date` falls in the range, whatever their current
  status, at the originally sold quantities;
- refund figures count RefundRecords whose `refund_date` falls in the range,
  whenever the original sale happened.
net_revenue = total_sales - total_refunds over the same range.
"""

from __future__ import annotations

from datetime import date, datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import RefundRecord, Transaction, TransactionLine
from ..models.sales import TRANSACTION_STATUS_COMPLETED
from lelca_pos.time_utils import local_day_bounds, local_today, parse_iso_date
from .concurrency import run_with_retry


class LedgerError(Exception):
    """Raised for ledger operation errors."""
    pass


def _tz_name() -> str:
    return current_app.config.get("POS_TIMEZONE", "UTC")


def resolve_range(start: str | date | None, end: str | date | None) -> tuple[datetime, datetime]:
    """Inclusive local day range -> UTC-naive bounds (end is end-of-day)."""
    try:
        start_day = parse_iso_date(start)
        end_day = parse_iso_date(end)
    except ValueError:
        raise LedgerError("start and end must be dates (YYYY-MM-DD)")
    if start_day and end_day and start_day > end_day:
        raise LedgerError("start must not be after end")
    return local_day_bounds(start_day, end_day, _tz_name())


# =============================================================================
# WRITES
# =============================================================================

def add_transaction(transaction: Transaction) -> Transaction:
    """Stage a transaction in the current unit of work (no commit)."""
    if not transaction.lines:
        raise LedgerError("Cannot record a transaction with no items")
    db.session.add(transaction)
    return transaction


def append_transaction(transaction: Transaction) -> Transaction:
    """Append a transaction and commit; it is retrievable afterwards."""
    def _op():
        add_transaction(transaction)
        db.session.commit()
        return transaction

    return run_with_retry(_op)


def clear_transactions() -> int:
    """Delete every transaction with its lines and refunds. Returns the count."""
    def _op():
        transactions = db.session.query(Transaction).all()
        for txn in transactions:
            db.session.delete(txn)
        db.session.commit()
        return len(transactions)

    return run_with_retry(_op)


# =============================================================================
# READS
# =============================================================================

def load_transactions(limit: int | None = None) -> list[Transaction]:
    """All transactions, newest first."""
    query = db.session.query(Transaction).order_by(
        Transaction.date.desc(), Transaction.transaction_id.desc()
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def get_transaction(transaction_id: str) -> Transaction | None:
    return db.session.get(Transaction, transaction_id)


def get_by_receipt_number(receipt_number: str) -> Transaction | None:
    return db.session.query(Transaction).filter_by(receipt_number=receipt_number).first()


def transactions_in_range(start=None, end=None) -> list[Transaction]:
    start_dt, end_dt = resolve_range(start, end)
    return (
        db.session.query(Transaction)
        .filter(Transaction.date >= start_dt, Transaction.date <= end_dt)
        .order_by(Transaction.date.asc())
        .all()
    )


def todays_transactions() -> list[Transaction]:
    today = local_today(_tz_name())
    return transactions_in_range(today, today)


def todays_sales_total_cents() -> int:
    """Today's takings from transactions still fully Completed."""
    return sum(
        txn.total_amount_cents
        for txn in todays_transactions()
        if txn.status == TRANSACTION_STATUS_COMPLETED
    )


def aggregate(start=None, end=None) -> dict:
    """
    Sales and refund totals for an inclusive local day range.

    Returns total_sales_cents, total_refunds_cents, net_revenue_cents,
    transaction_count, refund_count, items_sold and avg_transaction_cents.
    """
    start_dt, end_dt = resolve_range(start, end)

    sales_row = db.session.query(
        func.count(Transaction.transaction_id).label("count"),
        func.coalesce(func.sum(Transaction.total_amount_cents), 0).label("total"),
    ).filter(
        Transaction.date >= start_dt,
        Transaction.date <= end_dt,
    ).one()

    items_sold = db.session.query(
        func.coalesce(func.sum(TransactionLine.quantity), 0)
    ).join(
        Transaction, TransactionLine.transaction_id == Transaction.transaction_id
    ).filter(
        Transaction.date >= start_dt,
        Transaction.date <= end_dt,
    ).scalar()

    refunds_row = db.session.query(
        func.count(RefundRecord.id).label("count"),
        func.coalesce(func.sum(RefundRecord.total_amount_cents), 0).label("total"),
    ).filter(
        RefundRecord.refund_date >= start_dt,
        RefundRecord.refund_date <= end_dt,
    ).one()

    transaction_count = int(sales_row.count or 0)
    total_sales = int(sales_row.total or 0)
    total_refunds = int(refunds_row.total or 0)

    return {
        "total_sales_cents": total_sales,
        "total_refunds_cents": total_refunds,
        "net_revenue_cents": total_sales - total_refunds,
        "transaction_count": transaction_count,
        "refund_count": int(refunds_row.count or 0),
        "items_sold": int(items_sold or 0),
        "avg_transaction_cents": round(total_sales / transaction_count) if transaction_count else 0,
    }

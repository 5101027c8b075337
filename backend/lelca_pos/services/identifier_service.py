# Overview: Issues receipt numbers and refund note numbers from persisted counters.

from __future__ import annotations

import secrets
import time

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence, Transaction


SEQUENCE_RECEIPT = "RECEIPT"
SEQUENCE_REFUND_NOTE = "REFUND_NOTE"

RECEIPT_PREFIX = "RCP"
REFUND_NOTE_PREFIX = "REF"

# Receipt numbers carry a random component; redraw this many times on collision
MAX_RECEIPT_DRAWS = 20


class IdentifierError(Exception):
    """Raised when an identifier cannot be issued."""
    pass


def next_counter(document_type: str) -> int:
    """
    Increment and return the counter for `document_type` (first value is 1).

    Runs inside the caller's database transaction and only flushes: the
    increment is committed together with the document that uses the number,
    and disappears with it on rollback.
    """
    if not document_type:
        raise IdentifierError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(counter=DocumentSequence.counter + 1)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        db.session.add(DocumentSequence(document_type=document_type, counter=1))
        db.session.flush()
        return 1

    db.session.flush()
    return (
        db.session.query(DocumentSequence.counter)
        .filter_by(document_type=document_type)
        .scalar()
    )


def peek_counter(document_type: str) -> int:
    """Last issued value without advancing (0 if never issued)."""
    value = (
        db.session.query(DocumentSequence.counter)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return int(value or 0)


def format_receipt_number(timestamp_ms: int, random_part: int) -> str:
    """RCP-<last 6 digits of the ms timestamp>-<3-digit zero-padded random>"""
    tail = str(timestamp_ms)[-6:]
    return f"{RECEIPT_PREFIX}-{tail}-{random_part:03d}"


def format_refund_note_number(counter: int) -> str:
    """REF-<5-digit zero-padded counter>"""
    return f"{REFUND_NOTE_PREFIX}-{counter:05d}"


def generate_receipt_number() -> str:
    """
    Issue a receipt number.

    The visible format is timestamp tail + random suffix; the RECEIPT counter
    is advanced once per issuance so the number of receipts issued is
    tracked independently of the format. Draws that collide with an existing
    receipt are redrawn.
    """
    next_counter(SEQUENCE_RECEIPT)

    pending = {
        obj.receipt_number for obj in db.session.new if isinstance(obj, Transaction)
    }
    for _ in range(MAX_RECEIPT_DRAWS):
        candidate = format_receipt_number(time.time_ns() // 1_000_000, secrets.randbelow(1000))
        if candidate in pending:
            continue
        exists = db.session.query(Transaction.transaction_id).filter_by(receipt_number=candidate).first()
        if not exists:
            return candidate

    raise IdentifierError("Could not allocate a unique receipt number")


def generate_refund_note_number() -> str:
    return format_refund_note_number(next_counter(SEQUENCE_REFUND_NOTE))

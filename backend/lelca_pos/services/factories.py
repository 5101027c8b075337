"""
Record factories for inventory items and transactions.

Factories only shape data: generated ids, timestamps, numeric coercion and
value copies of the cart lines. They do not persist anything and do not
validate business rules; input validation lives in lelca_pos.validation and
the persisting services call it before building records.
"""

from __future__ import annotations

import copy
import secrets
import string
import time

from ..models import InventoryItem, Transaction, TransactionLine
from ..models.sales import (
    PAYMENT_CARD,
    PAYMENT_CASH,
    PAYMENT_METHODS,
    PAYMENT_MOBILE_MONEY,
    TRANSACTION_STATUS_COMPLETED,
)
from ..validation import ValidationError, coerce_int
from lelca_pos.time_utils import utcnow
from .identifier_service import generate_receipt_number


_BASE36 = string.digits + string.ascii_lowercase


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def generate_item_id() -> str:
    """item-<ms timestamp>-<9 random base36 chars>"""
    return f"item-{_now_ms()}-{_random_base36(9)}"


def generate_transaction_id() -> str:
    """txn-<ms timestamp>-<5 random uppercase base36 chars>"""
    return f"txn-{_now_ms()}-{_random_base36(5).upper()}"


def create_inventory_item(fields: dict) -> InventoryItem:
    """
    Build a new (unsaved) InventoryItem.

    `fields` is a cleaned payload (see validation.validate_inventory_item):
    item_name, material_details, quantity, price_cents, and optionally
    qr_code / image.
    """
    now = utcnow()
    return InventoryItem(
        id=generate_item_id(),
        item_name=fields["item_name"],
        material_details=fields.get("material_details") or "",
        quantity=int(fields.get("quantity") or 0),
        price_cents=int(fields.get("price_cents") or 0),
        qr_code=fields.get("qr_code"),
        image=fields.get("image"),
        date_added=now,
        last_updated=now,
        version_id=1,
    )


def _build_line(position: int, raw: dict) -> TransactionLine:
    # Accept either item_id or the catalogue's `id` key for the item reference
    item_id = raw.get("item_id") or raw.get("id")
    if not item_id:
        raise ValidationError(f"items[{position}]: item_id is required")
    quantity = coerce_int(raw.get("quantity"), f"items[{position}].quantity")
    unit_price_cents = coerce_int(raw.get("unit_price_cents"), f"items[{position}].unit_price_cents")
    line_total_cents = raw.get("line_total_cents")
    if line_total_cents is None:
        line_total_cents = quantity * unit_price_cents

    return TransactionLine(
        position=position,
        item_id=str(item_id),
        item_name=str(raw.get("item_name") or ""),
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        line_total_cents=int(line_total_cents),
    )


def create_transaction(fields: dict) -> Transaction:
    """
    Build a new (unsaved) Transaction with status Completed.

    The cart lines are deep-copied so later changes to the caller's cart do
    not leak into the frozen snapshot. Payment payloads that do not belong to
    `payment_method` are nulled out.
    """
    payment_method = fields.get("payment_method")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}"
        )

    items = copy.deepcopy(list(fields.get("items") or []))
    lines = [_build_line(position, raw) for position, raw in enumerate(items)]

    is_cash = payment_method == PAYMENT_CASH
    amount_tendered = fields.get("amount_tendered_cents") if is_cash else None
    change_given = fields.get("change_given_cents") if is_cash else None

    card_details = copy.deepcopy(fields.get("card_details")) if payment_method == PAYMENT_CARD else None
    momo_details = (
        copy.deepcopy(fields.get("momo_details")) if payment_method == PAYMENT_MOBILE_MONEY else None
    )

    subtotal_cents = int(fields.get("subtotal_cents") or 0)
    tax_cents = int(fields.get("tax_cents") or 0)
    total_amount_cents = fields.get("total_amount_cents")
    if total_amount_cents is None:
        total_amount_cents = subtotal_cents + tax_cents

    return Transaction(
        transaction_id=generate_transaction_id(),
        receipt_number=generate_receipt_number(),
        date=utcnow(),
        lines=lines,
        subtotal_cents=subtotal_cents,
        tax_cents=tax_cents,
        total_amount_cents=int(total_amount_cents),
        payment_method=payment_method,
        amount_tendered_cents=int(amount_tendered) if amount_tendered is not None else None,
        change_given_cents=int(change_given) if change_given is not None else None,
        card_details=card_details,
        momo_details=momo_details,
        status=TRANSACTION_STATUS_COMPLETED,
        cashier=fields.get("cashier") or "Staff",
        version_id=1,
    )

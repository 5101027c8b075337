"""
Checkout Service

WHY: A sale touches three things at once: the stock of every item in the
cart, the receipt counter and the ledger. They commit together so a failed
checkout leaves no half-sold cart behind.

Prices come from the catalogue at the moment of sale and are frozen into the
transaction lines. Tax is taken from store settings (receipt.tax_enabled /
receipt.tax_rate percent) and rounded half-up to the cent.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import Transaction
from ..models.sales import PAYMENT_CARD, PAYMENT_CASH, PAYMENT_METHODS, PAYMENT_MOBILE_MONEY
from ..validation import ValidationError, coerce_int, to_cents
from lelca_pos.time_utils import utcnow
from .concurrency import run_with_retry
from .factories import create_transaction
from .inventory_service import InsufficientStockError, apply_stock_delta, lock_items
from .ledger_service import add_transaction
from .settings_service import get_settings

logger = logging.getLogger(__name__)


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def compute_tax_cents(subtotal_cents: int, tax_rate_percent: float) -> int:
    """12.5% of 1999 cents -> 250 (half-up)."""
    tax = Decimal(subtotal_cents) * Decimal(str(tax_rate_percent)) / Decimal(100)
    return int(tax.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _normalize_cart(cart: list[dict]) -> "dict[str, int]":
    if not isinstance(cart, list) or not cart:
        raise SaleError("Cart is empty")

    quantities: dict[str, int] = {}
    for index, entry in enumerate(cart):
        if not isinstance(entry, dict):
            raise ValidationError(f"cart[{index}] must be an object")
        item_id = entry.get("item_id") or entry.get("id")
        if not item_id:
            raise ValidationError(f"cart[{index}].item_id is required")
        quantity = coerce_int(entry.get("quantity"), f"cart[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"cart[{index}].quantity must be positive")
        quantities[str(item_id)] = quantities.get(str(item_id), 0) + quantity
    return quantities


def _payment_fields(payment: dict, total_cents: int) -> dict:
    method = payment.get("method") or payment.get("payment_method")
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment method must be one of: {', '.join(PAYMENT_METHODS)}")

    fields: dict = {"payment_method": method}
    if method == PAYMENT_CASH:
        if payment.get("amount_tendered_cents") is not None:
            tendered = coerce_int(payment["amount_tendered_cents"], "amount_tendered_cents")
        else:
            tendered = to_cents(payment.get("amount_tendered"), "amount_tendered")
        if tendered < total_cents:
            raise SaleError(
                "Amount tendered is less than the total",
                details={"total_cents": total_cents, "amount_tendered_cents": tendered},
            )
        fields["amount_tendered_cents"] = tendered
        fields["change_given_cents"] = tendered - total_cents
    elif method == PAYMENT_CARD:
        fields["card_details"] = payment.get("card_details") or {}
    elif method == PAYMENT_MOBILE_MONEY:
        fields["momo_details"] = payment.get("momo_details") or {}
    return fields


def complete_sale(cart: list[dict], payment: dict, cashier: str | None = None) -> Transaction:
    """
    Sell the cart and record the transaction.

    Args:
        cart: [{item_id, quantity}]
        payment: {method, amount_tendered | amount_tendered_cents, card_details, momo_details}
        cashier: Operator display name

    Returns:
        The committed Transaction

    Raises:
        ValidationError: malformed cart or payment
        SaleError: empty cart, unknown item, insufficient stock, short cash
    """
    quantities = _normalize_cart(cart)
    payment = payment or {}
    tax_rate = get_settings().effective_tax_rate

    def _op():
        inventory = lock_items(quantities.keys())

        missing = [item_id for item_id in quantities if item_id not in inventory]
        if missing:
            raise SaleError("Item not found", details={"item_ids": missing})

        insufficient = [
            {
                "item_id": item_id,
                "item_name": inventory[item_id].item_name,
                "requested_quantity": qty,
                "on_hand": inventory[item_id].quantity,
            }
            for item_id, qty in quantities.items()
            if inventory[item_id].quantity < qty
        ]
        if insufficient:
            raise SaleError("Insufficient stock", details={"items": insufficient})

        lines = []
        for item_id, qty in quantities.items():
            item = inventory[item_id]
            lines.append({
                "item_id": item.id,
                "item_name": item.item_name,
                "quantity": qty,
                "unit_price_cents": item.price_cents,
                "line_total_cents": qty * item.price_cents,
            })
        subtotal_cents = sum(line["line_total_cents"] for line in lines)
        tax_cents = compute_tax_cents(subtotal_cents, tax_rate)
        total_cents = subtotal_cents + tax_cents

        fields = _payment_fields(payment, total_cents)
        fields.update({
            "items": lines,
            "subtotal_cents": subtotal_cents,
            "tax_cents": tax_cents,
            "total_amount_cents": total_cents,
            "cashier": cashier,
        })

        now = utcnow()
        try:
            for item_id, qty in quantities.items():
                apply_stock_delta(inventory[item_id], -qty, now=now)
        except InsufficientStockError as e:
            raise SaleError(str(e), details=e.details)

        transaction = create_transaction(fields)
        add_transaction(transaction)
        db.session.commit()
        return transaction

    transaction = run_with_retry(_op)
    logger.info(
        "Sale %s completed: %d cents via %s",
        transaction.receipt_number,
        transaction.total_amount_cents,
        transaction.payment_method,
    )
    return transaction

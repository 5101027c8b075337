from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Maximum on-hand quantity for a single item
MAX_QUANTITY = 1_000_000

MAX_ITEM_NAME_LENGTH = 255


class ValidationError(ValueError):
    """400-level input problem. `errors` holds one message per failed field."""

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: rejects floats, decimals and scientific notation.
    Plain digit strings (with optional leading minus) are accepted.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def to_cents(value: Any, field: str) -> int:
    """
    Convert a decimal currency amount (5, "5.00", 5.5) to integer cents,
    rounding half-up to the nearest cent.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    cents = (amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def cents_to_str(cents: int) -> str:
    """2000 -> '20.00'"""
    return str((Decimal(cents) / 100).quantize(Decimal("0.01")))


def validate_inventory_item(payload: dict, *, partial: bool = False) -> dict:
    """
    Validates + normalizes an inventory item payload.

    Accepts price either as `price` (decimal currency) or `price_cents`.
    partial=False: create semantics (item_name, quantity and price required)
    partial=True: update semantics (only provided fields are checked)

    Returns a cleaned dict with keys among: item_name, material_details,
    quantity, price_cents, qr_code, image. Raises ValidationError listing
    every failed field.
    """
    errors: list[str] = []
    cleaned: dict = {}

    if not partial or "item_name" in payload:
        name = payload.get("item_name")
        name = str(name).strip() if name is not None else ""
        if not name:
            errors.append("Item name is required")
        elif len(name) > MAX_ITEM_NAME_LENGTH:
            errors.append(f"Item name must be at most {MAX_ITEM_NAME_LENGTH} characters")
        else:
            cleaned["item_name"] = name

    if not partial or "material_details" in payload:
        details = payload.get("material_details")
        cleaned["material_details"] = str(details).strip() if details is not None else ""

    if not partial or "quantity" in payload:
        raw = payload.get("quantity")
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            errors.append("Valid quantity is required")
        else:
            try:
                quantity = coerce_int(raw, "quantity")
            except ValidationError as exc:
                errors.extend(exc.errors)
            else:
                if quantity < 0:
                    errors.append("Quantity cannot be negative")
                elif quantity > MAX_QUANTITY:
                    errors.append(f"Quantity cannot exceed {MAX_QUANTITY}")
                else:
                    cleaned["quantity"] = quantity

    price_given = "price" in payload or "price_cents" in payload
    if not partial or price_given:
        try:
            if payload.get("price_cents") is not None:
                price_cents = coerce_int(payload["price_cents"], "price_cents")
            elif payload.get("price") is not None and str(payload.get("price")).strip():
                price_cents = to_cents(payload["price"], "price")
            else:
                raise ValidationError("Valid price is required")
        except ValidationError as exc:
            errors.extend(exc.errors)
        else:
            if price_cents < 0:
                errors.append("Price cannot be negative")
            elif price_cents > MAX_PRICE_CENTS:
                errors.append("Price exceeds the maximum allowed")
            else:
                cleaned["price_cents"] = price_cents

    for blob in ("qr_code", "image"):
        if blob in payload:
            cleaned[blob] = payload[blob] or None

    if errors:
        raise ValidationError(errors)

    return cleaned

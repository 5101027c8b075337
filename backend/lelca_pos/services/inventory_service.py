# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/lelca_pos/services/inventory_service.py
"""
Inventory store invariants (authoritative)

- InventoryItem.quantity is the on-hand count and never goes negative.
- Every mutation of an item stamps last_updated; items not touched by an
  operation are left exactly as they were.
- Each public mutating function is one unit of work: all of its changes
  commit together or none do (run_with_retry rolls back on failure).
- Deleting an id that does not exist is a no-op. Updating one raises
  ItemNotFoundError. Bulk updates skip unknown ids.
- Stock helpers prefixed with `apply_` do not commit; checkout and refunds
  call them inside their own unit of work.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_

from ..extensions import db
from ..models import InventoryItem
from ..validation import ValidationError, coerce_int, validate_inventory_item
from lelca_pos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .factories import create_inventory_item
from .qr_service import QrEncoder, encode_item_qr, parse_qr_payload

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Raised for inventory operation errors."""
    pass


class ItemNotFoundError(InventoryError):
    code = "NOT_FOUND"


class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


# =============================================================================
# READS
# =============================================================================

def load_inventory() -> list[InventoryItem]:
    """All items in insertion order."""
    return (
        db.session.query(InventoryItem)
        .order_by(InventoryItem.date_added.asc(), InventoryItem.id.asc())
        .all()
    )


def get_item(item_id: str) -> InventoryItem | None:
    return db.session.get(InventoryItem, item_id)


def get_item_by_qr(payload: str) -> InventoryItem | None:
    """Resolve a scanned QR payload to its item."""
    item_id = parse_qr_payload(payload)
    return get_item(item_id) if item_id else None


def search_items(query: str | None) -> list[InventoryItem]:
    """Case-insensitive match on item name or material details."""
    if not query or not query.strip():
        return load_inventory()
    pattern = f"%{query.strip().lower()}%"
    return (
        db.session.query(InventoryItem)
        .filter(or_(
            func.lower(InventoryItem.item_name).like(pattern),
            func.lower(InventoryItem.material_details).like(pattern),
        ))
        .order_by(InventoryItem.date_added.asc(), InventoryItem.id.asc())
        .all()
    )


def total_inventory_value_cents() -> int:
    value = db.session.query(
        func.coalesce(func.sum(InventoryItem.price_cents * InventoryItem.quantity), 0)
    ).scalar()
    return int(value or 0)


# =============================================================================
# STOCK HELPERS (no commit)
# =============================================================================

def lock_items(item_ids) -> dict[str, InventoryItem]:
    """Load the given items for update, keyed by id. Unknown ids are absent."""
    ids = list(set(item_ids))
    if not ids:
        return {}
    rows = lock_for_update(
        db.session.query(InventoryItem).filter(InventoryItem.id.in_(ids))
    ).all()
    return {row.id: row for row in rows}


def apply_stock_delta(item: InventoryItem, delta: int, *, now=None) -> InventoryItem:
    """
    Add `delta` (may be negative) to an item's on-hand quantity and stamp
    last_updated. Caller commits.
    """
    new_quantity = item.quantity + delta
    if new_quantity < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {item.item_name}",
            details={"item_id": item.id, "on_hand": item.quantity, "requested": -delta},
        )
    item.quantity = new_quantity
    item.last_updated = now or utcnow()
    return item


# =============================================================================
# CREATE
# =============================================================================

def add_item(fields: dict, qr_encoder: QrEncoder | None = None) -> InventoryItem:
    """
    Validate and add a single item.

    The QR code is generated after the id exists; if no encoder is available
    or encoding fails the item is saved without a code.
    """
    cleaned = validate_inventory_item(fields)

    def _op():
        item = create_inventory_item(cleaned)
        if not item.qr_code:
            item.qr_code = encode_item_qr(item.id, item.item_name, qr_encoder)
        db.session.add(item)
        db.session.commit()
        return item

    item = run_with_retry(_op)
    logger.info("Added inventory item %s (%s)", item.id, item.item_name)
    return item


def bulk_add_items(rows: list[dict], qr_encoder: QrEncoder | None = None) -> list[InventoryItem]:
    """
    Validate every row, then add them all in one commit.

    Raises ValidationError listing the failing rows (1-based) and adds
    nothing when any row is invalid.
    """
    cleaned_rows = []
    errors = []
    for index, row in enumerate(rows, start=1):
        try:
            cleaned_rows.append(validate_inventory_item(row))
        except ValidationError as exc:
            errors.extend(f"Row {index}: {message}" for message in exc.errors)
    if errors:
        raise ValidationError(errors)

    def _op():
        items = []
        for cleaned in cleaned_rows:
            item = create_inventory_item(cleaned)
            if not item.qr_code:
                item.qr_code = encode_item_qr(item.id, item.item_name, qr_encoder)
            db.session.add(item)
            items.append(item)
        db.session.commit()
        return items

    items = run_with_retry(_op)
    logger.info("Bulk added %d inventory items", len(items))
    return items


# =============================================================================
# UPDATE
# =============================================================================

def _apply_patch(item: InventoryItem, patch: dict, now) -> None:
    for key, value in patch.items():
        setattr(item, key, value)
    item.last_updated = now


def update_item(item_id: str, partial: dict) -> InventoryItem:
    """Apply a partial update to one item and stamp last_updated."""
    patch = validate_inventory_item(partial, partial=True)

    def _op():
        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
        if item is None:
            raise ItemNotFoundError(f"Item {item_id} not found")
        _apply_patch(item, patch, utcnow())
        db.session.commit()
        return item

    return run_with_retry(_op)


def bulk_update_items(updates: list[dict]) -> list[InventoryItem]:
    """
    Apply [{id, ...partial}] updates in one commit.

    Unknown ids are skipped. Returns the updated items in request order.
    """
    patches: list[tuple[str, dict]] = []
    errors = []
    for index, update in enumerate(updates, start=1):
        if not isinstance(update, dict):
            errors.append(f"Update {index}: must be an object")
            continue
        item_id = update.get("id")
        if not item_id:
            errors.append(f"Update {index}: id is required")
            continue
        if not isinstance(item_id, str):
            errors.append(f"Update {index}: id must be a string")
            continue
        partial = {k: v for k, v in update.items() if k != "id"}
        try:
            patches.append((item_id, validate_inventory_item(partial, partial=True)))
        except ValidationError as exc:
            errors.extend(f"Update {index}: {message}" for message in exc.errors)
    if errors:
        raise ValidationError(errors)

    def _op():
        items = lock_items(item_id for item_id, _ in patches)
        now = utcnow()
        updated = []
        for item_id, patch in patches:
            item = items.get(item_id)
            if item is None:
                continue
            _apply_patch(item, patch, now)
            updated.append(item)
        db.session.commit()
        return updated

    return run_with_retry(_op)


def restock_item(item_id: str, quantity) -> InventoryItem:
    """Increase an item's on-hand quantity by a positive amount."""
    amount = coerce_int(quantity, "quantity")
    if amount <= 0:
        raise ValidationError("Restock quantity must be positive")

    def _op():
        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
        if item is None:
            raise ItemNotFoundError(f"Item {item_id} not found")
        apply_stock_delta(item, amount)
        db.session.commit()
        return item

    item = run_with_retry(_op)
    logger.info("Restocked %s by %d (now %d)", item.id, amount, item.quantity)
    return item


def save_inventory(items: list[dict]) -> list[InventoryItem]:
    """
    Replace the whole collection with `items`.

    Rows with an existing id are updated in place (last_updated stamped),
    rows without an id are created, and stored items missing from `items`
    are deleted. All-or-nothing.
    """
    incoming: list[tuple[str | None, dict]] = []
    errors = []
    for index, row in enumerate(items, start=1):
        try:
            incoming.append((row.get("id"), validate_inventory_item(row)))
        except ValidationError as exc:
            errors.extend(f"Row {index}: {message}" for message in exc.errors)
    if errors:
        raise ValidationError(errors)

    def _op():
        existing = {item.id: item for item in load_inventory()}
        keep: set[str] = set()
        now = utcnow()
        result = []
        for item_id, cleaned in incoming:
            item = existing.get(item_id) if item_id else None
            if item is None:
                item = create_inventory_item(cleaned)
                if item_id:
                    item.id = item_id
                db.session.add(item)
            else:
                _apply_patch(item, cleaned, now)
            keep.add(item.id)
            result.append(item)
        for item_id, item in existing.items():
            if item_id not in keep:
                db.session.delete(item)
        db.session.commit()
        return result

    return run_with_retry(_op)


# =============================================================================
# DELETE
# =============================================================================

def delete_item(item_id: str) -> bool:
    """Delete by id. Returns False (and does nothing) when the id is unknown."""
    def _op():
        item = db.session.get(InventoryItem, item_id)
        if item is None:
            return False
        db.session.delete(item)
        db.session.commit()
        return True

    return run_with_retry(_op)


def bulk_delete_items(item_ids: list[str]) -> int:
    """Delete every listed id that exists. Returns the remaining item count."""
    errors = [
        f"Id {index}: must be a string"
        for index, item_id in enumerate(item_ids, start=1)
        if not isinstance(item_id, str)
    ]
    if errors:
        raise ValidationError(errors)

    def _op():
        items = lock_items(item_ids)
        for item in items.values():
            db.session.delete(item)
        db.session.commit()
        return db.session.query(InventoryItem).count()

    return run_with_retry(_op)


def clear_inventory() -> int:
    """Delete every item. Returns how many were removed."""
    def _op():
        count = db.session.query(InventoryItem).delete()
        db.session.commit()
        return count

    return run_with_retry(_op)

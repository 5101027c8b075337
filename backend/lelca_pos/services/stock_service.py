"""
Stock alert classification.

Pure functions: a quantity plus the configured thresholds map to a stock
status. Thresholds are exclusive lower bounds, so a quantity equal to a
threshold lands in the higher status:

    quantity == 0                 -> OUT_OF_STOCK
    quantity <  critical_level    -> CRITICAL
    quantity <  threshold         -> LOW
    quantity <  2 * threshold     -> MEDIUM
    otherwise                     -> WELL_STOCKED

Restock suggestions target 3x the low-stock threshold. Nothing here touches
the database; callers apply a suggested delta through inventory_service.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Protocol


DEFAULT_LOW_STOCK_THRESHOLD = 10
DEFAULT_CRITICAL_LEVEL = 3


class StockStatus(str, Enum):
    OUT_OF_STOCK = "OUT_OF_STOCK"
    CRITICAL = "CRITICAL"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    WELL_STOCKED = "WELL_STOCKED"


STOCK_LABELS = {
    StockStatus.WELL_STOCKED: "Well Stocked",
    StockStatus.MEDIUM: "Medium Stock",
    StockStatus.LOW: "Low Stock",
    StockStatus.CRITICAL: "Critical",
    StockStatus.OUT_OF_STOCK: "Out of Stock",
}

# Most urgent first
STATUS_PRIORITY = {
    StockStatus.OUT_OF_STOCK: 0,
    StockStatus.CRITICAL: 1,
    StockStatus.LOW: 2,
    StockStatus.MEDIUM: 3,
    StockStatus.WELL_STOCKED: 4,
}


class Stocked(Protocol):
    quantity: int
    price_cents: int


def classify(
    quantity: int,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    critical_level: int = DEFAULT_CRITICAL_LEVEL,
) -> StockStatus:
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity < critical_level:
        return StockStatus.CRITICAL
    if quantity < low_stock_threshold:
        return StockStatus.LOW
    if quantity < low_stock_threshold * 2:
        return StockStatus.MEDIUM
    return StockStatus.WELL_STOCKED


def stock_label(status: StockStatus | str) -> str:
    try:
        return STOCK_LABELS[StockStatus(status)]
    except ValueError:
        return "Unknown"


def restock_suggestion(current_quantity: int, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> int:
    """Units to add to bring stock up to 3x the threshold (never negative)."""
    return max(0, low_stock_threshold * 3 - current_quantity)


def low_stock_items(items: Iterable[Stocked], low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> list:
    return [item for item in items if item.quantity < low_stock_threshold]


def critical_items(items: Iterable[Stocked], critical_level: int = DEFAULT_CRITICAL_LEVEL) -> list:
    return [item for item in items if 0 < item.quantity < critical_level]


def out_of_stock_items(items: Iterable[Stocked]) -> list:
    return [item for item in items if item.quantity == 0]


def sort_by_priority(
    items: Iterable[Stocked],
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    critical_level: int = DEFAULT_CRITICAL_LEVEL,
) -> list:
    """Most urgent status first; within a status, lowest quantity first."""
    return sorted(
        items,
        key=lambda item: (
            STATUS_PRIORITY[classify(item.quantity, low_stock_threshold, critical_level)],
            item.quantity,
        ),
    )


def sort_by_value(items: Iterable[Stocked]) -> list:
    """Highest stock value (price x quantity) first."""
    return sorted(items, key=lambda item: item.price_cents * item.quantity, reverse=True)


def value_at_risk_cents(items: Iterable[Stocked]) -> int:
    return sum(item.price_cents * item.quantity for item in items)


def stock_alerts(
    items: Iterable[Stocked],
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    critical_level: int = DEFAULT_CRITICAL_LEVEL,
) -> list[dict]:
    """
    Alert rows for every item below the low-stock threshold, most urgent
    first. Items must expose `to_dict()`.
    """
    alerts = []
    for item in sort_by_priority(low_stock_items(items, low_stock_threshold), low_stock_threshold, critical_level):
        status = classify(item.quantity, low_stock_threshold, critical_level)
        alerts.append({
            "item": item.to_dict(),
            "status": status.value,
            "label": stock_label(status),
            "suggested_restock": restock_suggestion(item.quantity, low_stock_threshold),
        })
    return alerts

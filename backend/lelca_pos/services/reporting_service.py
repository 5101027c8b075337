# Overview: Service-layer operations for reporting; dashboard and report figures over the ledger.

from __future__ import annotations

from collections import OrderedDict

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import InventoryItem, RefundRecord
from ..models.sales import PAYMENT_METHODS
from lelca_pos.time_utils import days_back, local_day_bounds, to_local
from . import ledger_service, stock_service
from .stock_service import StockStatus


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


PAYMENT_OTHER = "Other"

MAX_HISTORY_DAYS = 366


def _tz_name() -> str:
    return current_app.config.get("POS_TIMEZONE", "UTC")


def summary(start=None, end=None) -> dict:
    """Period totals (see ledger_service.aggregate) plus today's takings."""
    try:
        totals = ledger_service.aggregate(start, end)
    except ledger_service.LedgerError as e:
        raise ReportError(str(e))
    totals["todays_sales_cents"] = ledger_service.todays_sales_total_cents()
    return totals


def sales_history(days: int = 7) -> list[dict]:
    """
    One row per local day for the last `days` days, oldest first.

    Sales are bucketed by sale date, refunds by refund date.
    """
    if days < 1 or days > MAX_HISTORY_DAYS:
        raise ReportError(f"days must be between 1 and {MAX_HISTORY_DAYS}")

    tz = _tz_name()
    dates = days_back(days, tz)
    buckets: "OrderedDict[str, dict]" = OrderedDict(
        (d.isoformat(), {"date": d.isoformat(), "sales_cents": 0, "refunds_cents": 0, "transaction_count": 0})
        for d in dates
    )

    for txn in ledger_service.transactions_in_range(dates[0], dates[-1]):
        key = to_local(txn.date, tz).date().isoformat()
        if key in buckets:
            buckets[key]["sales_cents"] += txn.total_amount_cents
            buckets[key]["transaction_count"] += 1

    start_dt, end_dt = local_day_bounds(dates[0], dates[-1], tz)
    refunds = db.session.query(RefundRecord).filter(
        RefundRecord.refund_date >= start_dt,
        RefundRecord.refund_date <= end_dt,
    ).all()
    for refund in refunds:
        key = to_local(refund.refund_date, tz).date().isoformat()
        if key in buckets:
            buckets[key]["refunds_cents"] += refund.total_amount_cents

    return list(buckets.values())


def top_selling_items(start=None, end=None, limit: int = 10) -> list[dict]:
    """
    Items ranked by units sold in the period, grouped by the name on the line.

    `percent` is relative to the best seller (for progress bars).
    """
    totals: dict[str, dict] = {}
    for txn in ledger_service.transactions_in_range(start, end):
        for line in txn.lines:
            entry = totals.setdefault(
                line.item_name, {"name": line.item_name, "quantity": 0, "revenue_cents": 0}
            )
            entry["quantity"] += line.quantity
            entry["revenue_cents"] += line.line_total_cents

    ranked = sorted(totals.values(), key=lambda e: e["quantity"], reverse=True)
    max_qty = ranked[0]["quantity"] if ranked and ranked[0]["quantity"] else 1
    return [
        {**entry, "percent": round(entry["quantity"] / max_qty * 100)}
        for entry in ranked[:limit]
    ]


def payment_method_stats(start=None, end=None) -> list[dict]:
    """Value and count per payment method; methods with no takings are omitted."""
    stats = OrderedDict(
        (method, {"name": method, "value_cents": 0, "count": 0})
        for method in (*PAYMENT_METHODS, PAYMENT_OTHER)
    )
    for txn in ledger_service.transactions_in_range(start, end):
        entry = stats.get(txn.payment_method) or stats[PAYMENT_OTHER]
        entry["value_cents"] += txn.total_amount_cents
        entry["count"] += 1
    return [entry for entry in stats.values() if entry["value_cents"] > 0]


def hourly_sales_distribution(start=None, end=None) -> list[dict]:
    """24 buckets ("00:00" .. "23:00") by local hour of sale."""
    tz = _tz_name()
    hours = OrderedDict(
        (f"{h:02d}:00", {"time": f"{h:02d}:00", "sales_cents": 0, "count": 0}) for h in range(24)
    )
    for txn in ledger_service.transactions_in_range(start, end):
        bucket = hours[f"{to_local(txn.date, tz).hour:02d}:00"]
        bucket["sales_cents"] += txn.total_amount_cents
        bucket["count"] += 1
    return list(hours.values())


def inventory_metrics(
    low_stock_threshold: int = stock_service.DEFAULT_LOW_STOCK_THRESHOLD,
    critical_level: int = stock_service.DEFAULT_CRITICAL_LEVEL,
) -> dict:
    items = db.session.query(InventoryItem).order_by(InventoryItem.date_added.asc()).all()

    distribution = OrderedDict((status, 0) for status in StockStatus)
    for item in items:
        distribution[stock_service.classify(item.quantity, low_stock_threshold, critical_level)] += 1

    value = db.session.query(
        func.coalesce(func.sum(InventoryItem.price_cents * InventoryItem.quantity), 0)
    ).scalar()

    return {
        "total_items": len(items),
        "total_stock_units": sum(item.quantity for item in items),
        "inventory_value_cents": int(value or 0),
        "low_stock_items": [
            item.to_dict() for item in stock_service.low_stock_items(items, low_stock_threshold)
            if item.quantity > 0
        ],
        "out_of_stock_items": [item.to_dict() for item in stock_service.out_of_stock_items(items)],
        "value_at_risk_cents": stock_service.value_at_risk_cents(
            stock_service.low_stock_items(items, low_stock_threshold)
        ),
        "stock_distribution": [
            {"status": status.value, "name": stock_service.stock_label(status), "value": count}
            for status, count in distribution.items()
            if count > 0
        ],
    }

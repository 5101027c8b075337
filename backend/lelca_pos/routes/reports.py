# backend/lelca_pos/routes/reports.py
"""
Report routes.

Date ranges are inclusive local days (?start=YYYY-MM-DD&end=YYYY-MM-DD) in
the configured POS_TIMEZONE. Amounts are in cents.
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..services import reporting_service
from ..services.ledger_service import LedgerError
from ..services.reporting_service import ReportError
from ..services.settings_service import get_settings


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range():
    return request.args.get("start"), request.args.get("end")


@reports_bp.get("/summary")
@require_auth
def summary_route():
    start, end = _range()
    try:
        return jsonify(reporting_service.summary(start, end)), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/sales-history")
@require_auth
def sales_history_route():
    days = request.args.get("days", default=7, type=int)
    try:
        return jsonify({"days": reporting_service.sales_history(days)}), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/top-items")
@require_auth
def top_items_route():
    start, end = _range()
    limit = request.args.get("limit", default=10, type=int)
    try:
        return jsonify({"items": reporting_service.top_selling_items(start, end, limit)}), 200
    except (ReportError, LedgerError) as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/payment-methods")
@require_auth
def payment_methods_route():
    start, end = _range()
    try:
        return jsonify({"methods": reporting_service.payment_method_stats(start, end)}), 200
    except (ReportError, LedgerError) as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/hourly")
@require_auth
def hourly_route():
    start, end = _range()
    try:
        return jsonify({"hours": reporting_service.hourly_sales_distribution(start, end)}), 200
    except (ReportError, LedgerError) as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/inventory")
@require_auth
def inventory_route():
    settings = get_settings().inventory
    return jsonify(reporting_service.inventory_metrics(
        settings.low_stock_threshold, settings.critical_stock_level
    )), 200

# backend/lelca_pos/routes/system.py
"""
System health and version endpoints. Both are public.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import DocumentSequence, InventoryItem, SessionToken, Transaction
from ..services import settings_service
from lelca_pos.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def _timed_check(name: str, probe) -> dict:
    """
    Run `probe()` and wrap its details with status and latency.

    A probe that raises marks the check unhealthy; the cause is logged, not
    returned.
    """
    start_time = time.time()
    try:
        details = probe()
        status = {"status": "healthy", "details": details}
    except Exception:
        current_app.logger.exception("%s health check failed", name)
        status = {"status": "unhealthy", "error": f"{name} error"}
    status["latency_ms"] = round((time.time() - start_time) * 1000, 2)
    return status


def _database_probe() -> dict:
    return {
        "inventory_items": db.session.query(InventoryItem).count(),
        "transactions": db.session.query(Transaction).count(),
    }


def _ledger_probe() -> dict:
    counters = {seq.document_type: seq.counter for seq in db.session.query(DocumentSequence).all()}
    return {"counters": counters}


def _settings_probe() -> dict:
    settings = settings_service.get_settings()
    return {
        "schema_version": settings.schema_version,
        "stored": settings_service.settings_exist(),
    }


def _session_probe() -> dict:
    active = db.session.query(SessionToken).filter(
        SessionToken.is_revoked.is_(False),
        SessionToken.expires_at >= utcnow(),
    ).count()
    return {"active_sessions": active}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    checks = {
        "database": _timed_check("Database", _database_probe),
        "ledger": _timed_check("Ledger", _ledger_probe),
        "settings": _timed_check("Settings", _settings_probe),
        "session_service": _timed_check("Session service", _session_probe),
    }
    healthy = all(check["status"] == "healthy" for check in checks.values())

    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, 200 if healthy else 503


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    return {
        "api_version": "1.0.0",
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
        "timezone": current_app.config.get("POS_TIMEZONE", "UTC"),
    }

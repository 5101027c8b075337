from __future__ import annotations

from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_auth, require_role
from ..services import settings_service
from ..services.auth_service import ROLE_ADMIN
from ..services.settings_service import SettingsError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/")
@require_auth
def get_settings_route():
    """Any operator may read settings (receipts need the store details)."""
    return jsonify({"settings": settings_service.get_settings().to_dict()}), 200


@settings_bp.put("/")
@require_auth
@require_role(ROLE_ADMIN)
def update_settings_route():
    """
    Body: {"section": "inventory", "updates": {...}} to merge into one section,
    or a whole settings document (any known version) to import.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict) or not payload:
        return jsonify({"error": "settings document required"}), 400
    try:
        if "section" in payload:
            settings = settings_service.update_settings(payload["section"], payload.get("updates") or {})
        else:
            settings = settings_service.import_settings(payload)
        return jsonify({"settings": settings.to_dict()}), 200
    except SettingsError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.post("/reset")
@require_auth
@require_role(ROLE_ADMIN)
def reset_settings_route():
    return jsonify({"settings": settings_service.reset_settings().to_dict()}), 200

# backend/lelca_pos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/lelca_pos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///lelca_pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Day boundaries for reports ("today", date ranges) are computed in this zone
    POS_TIMEZONE = os.environ.get("POS_TIMEZONE", "UTC")

    # Bearer tokens issued by PIN login expire after this many seconds
    AUTH_TOKEN_MAX_AGE = int(os.environ.get("AUTH_TOKEN_MAX_AGE", str(12 * 60 * 60)))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Local operators. Single terminal, hardcoded PINs.
    POS_USERS = [
        {"id": 1, "name": "Admin User", "role": "admin", "pin": "1234"},
        {"id": 2, "name": "Store Keeper", "role": "storekeeper", "pin": "0000"},
    ]

    # Item QR codes are rendered as PNG data URLs unless disabled
    QR_CODES_ENABLED = os.environ.get("QR_CODES_ENABLED", "1").lower() not in ("0", "false", "no")

    # Callable payload -> image data URL replacing the built-in PNG encoder
    QR_ENCODER = None

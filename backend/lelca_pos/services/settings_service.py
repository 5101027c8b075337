# Overview: Service-layer operations for store settings; one versioned document with an explicit migration.

"""
Store settings.

The settings document has one canonical nested shape (SETTINGS_SCHEMA_VERSION).
Older shapes are converted by `migrate_settings` exactly once, when the
document is loaded, and the migrated document is written back. Consumers only
ever see `PosSettings`; there are no flat aliases.

Known older shapes:
- version 0: flat camelCase keys (lowStockThreshold, storeName, taxRate, ...)
- version 1: nested camelCase sections written by the browser client
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import asdict, dataclass

from ..extensions import db
from ..models import StoreSettings
from lelca_pos.time_utils import utcnow
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

SETTINGS_KEY = "store"
SETTINGS_SCHEMA_VERSION = 2


class SettingsError(Exception):
    """Raised for invalid settings updates."""
    pass


DEFAULT_SETTINGS: dict = {
    "store": {
        "name": "RetailPOS Store",
        "address": {"line1": "", "line2": "", "city": ""},
        "phone": "",
        "email": "",
    },
    "receipt": {
        "tax_enabled": True,
        "tax_rate": 12.5,
        "tax_name": "VAT",
        "slogan": "Quality and Elegance in Every Piece",
        "thank_you": "Thank you for your purchase!",
        "return_policy": "Returns accepted within 7 days with receipt and original packaging",
        "footer_note": "",
    },
    "inventory": {
        "low_stock_threshold": 10,
        "critical_stock_level": 3,
        "group_items": True,
        "show_stock_colors": True,
    },
    "notifications": {
        "low_stock_alerts": True,
        "out_of_stock_alerts": True,
        "daily_summary": True,
    },
}

# Flat version-0 keys -> (section, key)
_LEGACY_FLAT_KEYS = {
    "lowStockThreshold": ("inventory", "low_stock_threshold"),
    "criticalStockLevel": ("inventory", "critical_stock_level"),
    "storeName": ("store", "name"),
    "taxRate": ("receipt", "tax_rate"),
    "enableNotifications": ("notifications", "low_stock_alerts"),
}


@dataclass(frozen=True)
class StoreSection:
    name: str
    address: dict
    phone: str
    email: str


@dataclass(frozen=True)
class ReceiptSection:
    tax_enabled: bool
    tax_rate: float
    tax_name: str
    slogan: str
    thank_you: str
    return_policy: str
    footer_note: str


@dataclass(frozen=True)
class InventorySection:
    low_stock_threshold: int
    critical_stock_level: int
    group_items: bool
    show_stock_colors: bool


@dataclass(frozen=True)
class NotificationsSection:
    low_stock_alerts: bool
    out_of_stock_alerts: bool
    daily_summary: bool


@dataclass(frozen=True)
class PosSettings:
    schema_version: int
    store: StoreSection
    receipt: ReceiptSection
    inventory: InventorySection
    notifications: NotificationsSection

    @property
    def effective_tax_rate(self) -> float:
        return self.receipt.tax_rate if self.receipt.tax_enabled else 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_document(cls, doc: dict) -> "PosSettings":
        return cls(
            schema_version=SETTINGS_SCHEMA_VERSION,
            store=StoreSection(**doc["store"]),
            receipt=ReceiptSection(**doc["receipt"]),
            inventory=InventorySection(**doc["inventory"]),
            notifications=NotificationsSection(**doc["notifications"]),
        )


# =============================================================================
# MIGRATION
# =============================================================================

def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _merge_section(defaults: dict, overrides: dict) -> dict:
    """Keep only known keys; nested dicts are merged one level deep."""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if key not in merged:
            continue
        if isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **{k: v for k, v in value.items() if k in merged[key]}}
        else:
            merged[key] = value
    return merged


def detect_version(raw: dict) -> int:
    if "schema_version" in raw:
        return int(raw["schema_version"])
    if "inventory" not in raw and any(key in raw for key in _LEGACY_FLAT_KEYS):
        return 0
    return 1


def migrate_settings(raw: dict | None) -> dict:
    """
    Convert any known settings shape to the canonical nested document.

    Unknown keys are dropped, missing keys take their defaults.
    """
    if not raw:
        return {"schema_version": SETTINGS_SCHEMA_VERSION, **copy.deepcopy(DEFAULT_SETTINGS)}

    version = detect_version(raw)
    sections: dict[str, dict] = {}

    if version == 0:
        for legacy_key, (section, key) in _LEGACY_FLAT_KEYS.items():
            if raw.get(legacy_key) is not None:
                sections.setdefault(section, {})[key] = raw[legacy_key]
    elif version == 1:
        for section in DEFAULT_SETTINGS:
            values = raw.get(section)
            if isinstance(values, dict):
                sections[section] = {_snake(key): value for key, value in values.items()}
    else:
        sections = {section: raw.get(section) or {} for section in DEFAULT_SETTINGS}

    doc = {
        section: _merge_section(defaults, sections.get(section, {}))
        for section, defaults in DEFAULT_SETTINGS.items()
    }
    doc["schema_version"] = SETTINGS_SCHEMA_VERSION
    return doc


def validate_settings(doc: dict) -> None:
    inventory = doc["inventory"]
    receipt = doc["receipt"]
    errors = []

    threshold = inventory.get("low_stock_threshold")
    critical = inventory.get("critical_stock_level")
    if not isinstance(threshold, int) or isinstance(threshold, bool) or threshold < 1:
        errors.append("inventory.low_stock_threshold must be a positive integer")
    if not isinstance(critical, int) or isinstance(critical, bool) or critical < 0:
        errors.append("inventory.critical_stock_level must be a non-negative integer")
    elif isinstance(threshold, int) and critical > threshold:
        errors.append("inventory.critical_stock_level cannot exceed low_stock_threshold")

    rate = receipt.get("tax_rate")
    if not isinstance(rate, (int, float)) or isinstance(rate, bool) or not 0 <= rate <= 100:
        errors.append("receipt.tax_rate must be a number between 0 and 100")

    if not str(doc["store"].get("name") or "").strip():
        errors.append("store.name is required")

    if errors:
        raise SettingsError("; ".join(errors))


# =============================================================================
# LOAD / SAVE
# =============================================================================

def _get_row() -> StoreSettings | None:
    return db.session.query(StoreSettings).filter_by(key=SETTINGS_KEY).first()


def settings_exist() -> bool:
    return _get_row() is not None


def _write(doc: dict) -> None:
    row = _get_row()
    data = {section: doc[section] for section in DEFAULT_SETTINGS}
    if row is None:
        row = StoreSettings(key=SETTINGS_KEY)
        db.session.add(row)
    row.schema_version = SETTINGS_SCHEMA_VERSION
    row.data = data
    row.updated_at = utcnow()


def import_settings(raw: dict) -> PosSettings:
    """Store a document of any known shape (e.g. exported from the browser client)."""
    doc = migrate_settings(raw)
    validate_settings(doc)

    def _op():
        _write(doc)
        db.session.commit()

    run_with_retry(_op)
    return PosSettings.from_document(doc)


def get_settings() -> PosSettings:
    """
    Load the settings document, migrating and persisting it first when it
    was written by an older version.
    """
    row = _get_row()
    if row is None:
        return PosSettings.from_document(migrate_settings(None))

    if row.schema_version == SETTINGS_SCHEMA_VERSION:
        return PosSettings.from_document(migrate_settings({"schema_version": row.schema_version, **row.data}))

    raw = dict(row.data)
    if row.schema_version is not None:
        raw.setdefault("schema_version", row.schema_version)
    doc = migrate_settings(raw)
    logger.info("Migrating store settings from version %s to %s", row.schema_version, SETTINGS_SCHEMA_VERSION)

    def _op():
        _write(doc)
        db.session.commit()

    run_with_retry(_op)
    return PosSettings.from_document(doc)


def update_settings(section: str, updates: dict) -> PosSettings:
    """Merge `updates` into one section and persist."""
    if section not in DEFAULT_SETTINGS:
        raise SettingsError(f"Unknown settings section: {section}")
    if not isinstance(updates, dict):
        raise SettingsError("updates must be an object")

    current = get_settings().to_dict()
    current[section] = _merge_section(current[section], updates)
    doc = migrate_settings(current)
    validate_settings(doc)

    def _op():
        _write(doc)
        db.session.commit()

    run_with_retry(_op)
    return PosSettings.from_document(doc)


def reset_settings() -> PosSettings:
    doc = migrate_settings(None)

    def _op():
        _write(doc)
        db.session.commit()

    run_with_retry(_op)
    return PosSettings.from_document(doc)

from __future__ import annotations

from ..extensions import db
from lelca_pos.time_utils import to_utc_z

class StoreSettings(db.Model):
    """
    Versioned store configuration document.

    One row (key="store"). `data` always holds the canonical nested shape for
    `schema_version`; older shapes are migrated by settings_service on load.
    """
    __tablename__ = "store_settings"
    __table_args__ = (
        db.UniqueConstraint("key", name="uq_store_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, default="store")
    schema_version = db.Column(db.Integer, nullable=False)
    data = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "schema_version": self.schema_version,
            "data": self.data,
            "updated_at": to_utc_z(self.updated_at),
        }

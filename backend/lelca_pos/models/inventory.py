from __future__ import annotations

from ..extensions import db
from lelca_pos.time_utils import to_utc_z

class InventoryItem(db.Model):
    """
    Catalogue item with its on-hand stock.

    QUANTITY: `quantity` is the authoritative on-hand count. It is mutated in
    place by edits, checkout deduction, restock and refund restoration, and
    must never go negative.

    CONCURRENCY: version_id is an optimistic lock. Two read-modify-writes of
    the same row cannot both commit; the loser raises StaleDataError and is
    retried by services.concurrency.run_with_retry.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_nonneg"),
        db.CheckConstraint("price_cents >= 0", name="ck_inventory_items_price_nonneg"),
        db.Index("ix_inventory_items_name", "item_name"),
    )

    # Opaque string id: item-<ms>-<random>
    id = db.Column(db.String(64), primary_key=True)

    item_name = db.Column(db.String(255), nullable=False)
    material_details = db.Column(db.Text, nullable=False, default="")

    quantity = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Display-only blobs (QR data URL, image URL/data URL)
    qr_code = db.Column(db.Text, nullable=True)
    image = db.Column(db.Text, nullable=True)

    date_added = db.Column(db.DateTime, nullable=False)
    last_updated = db.Column(db.DateTime, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id!r} name={self.item_name!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_name": self.item_name,
            "material_details": self.material_details,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "qr_code": self.qr_code,
            "image": self.image,
            "date_added": to_utc_z(self.date_added),
            "last_updated": to_utc_z(self.last_updated),
            "version_id": self.version_id,
        }

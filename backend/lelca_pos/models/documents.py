from __future__ import annotations

from ..extensions import db
from lelca_pos.time_utils import to_utc_z

class DocumentSequence(db.Model):
    """
    Persisted monotonic counters (receipt numbers, refund note numbers).

    WHY: Counters live in the same database as the documents they number, so
    an issuance is committed or rolled back together with its document.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    # Last issued value; 0 means nothing issued yet
    counter = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "counter": self.counter,
            "updated_at": to_utc_z(self.updated_at),
        }

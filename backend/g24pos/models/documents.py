from __future__ import annotations

from ..extensions import db
from g24pos.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic document sequences per (document type, period).

    WHY: order and purchase order numbers embed the business date and a
    running counter. Keeping the counter in the database instead of
    deriving it from the current row count keeps numbers unique after
    restarts and deletions.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "period", name="uq_doc_sequences_type_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    period = db.Column(db.String(8), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }

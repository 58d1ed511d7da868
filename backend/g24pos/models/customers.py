from __future__ import annotations

from ..extensions import db
from g24pos.time_utils import to_iso_date


class Customer(db.Model):
    """
    Customer master data for tracking purchases and loyalty.

    Phone is the lookup key used at checkout, so it is unique.

    Denormalized aggregates (total_spent, visit_count, loyalty_points,
    last_visit) are updated in the same transaction as the order that
    earns them. tier is a stored label and is not recomputed from spend.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("phone", name="uq_customers_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    total_spent = db.Column(db.Integer, nullable=False, default=0)
    visit_count = db.Column(db.Integer, nullable=False, default=0)
    last_visit = db.Column(db.Date, nullable=True)
    member_since = db.Column(db.Date, nullable=False)
    tier = db.Column(db.String(16), nullable=False, default="Bronze")

    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "loyalty_points": self.loyalty_points,
            "total_spent": self.total_spent,
            "visit_count": self.visit_count,
            "last_visit": to_iso_date(self.last_visit),
            "member_since": to_iso_date(self.member_since),
            "tier": self.tier,
            "version_id": self.version_id,
        }

from __future__ import annotations

from ..extensions import db
from g24pos.time_utils import to_utc_z


class StoreSettings(db.Model):
    """
    Single-row store profile (receipt header, currency and tax).

    The row is created from Config.DEFAULT_STORE_SETTINGS on first access
    by services/settings_service.py.
    """
    __tablename__ = "store_settings"

    id = db.Column(db.Integer, primary_key=True)

    store_name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(512), nullable=False, default="")
    phone = db.Column(db.String(32), nullable=False, default="")
    email = db.Column(db.String(255), nullable=False, default="")
    tax_number = db.Column(db.String(64), nullable=False, default="")
    currency = db.Column(db.String(8), nullable=False, default="VND")

    # Percent, e.g. 10 for 10%
    tax_rate = db.Column(db.Float, nullable=False, default=0)
    enable_tax = db.Column(db.Boolean, nullable=False, default=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    SERIALIZED_FIELDS = (
        "store_name",
        "address",
        "phone",
        "email",
        "tax_number",
        "currency",
        "tax_rate",
        "enable_tax",
    )

    def to_dict(self) -> dict:
        return {field: getattr(self, field) for field in self.SERIALIZED_FIELDS}

    def to_admin_dict(self) -> dict:
        data = self.to_dict()
        data["updated_at"] = to_utc_z(self.updated_at)
        return data

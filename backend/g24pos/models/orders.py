from __future__ import annotations

from ..extensions import db
from g24pos.time_utils import to_utc_z, to_iso_date


ORDER_STATUSES = ("completed", "refunded", "partial-refund")


class Order(db.Model):
    """
    Completed checkout.

    order_number is DH<YYYYMMDD><seq>, allocated from a persisted per-day
    document sequence so it stays unique across restarts.

    Line items are snapshots (name, barcode, price) taken at sale time and
    survive product deletion.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_date_status", "order_date", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)

    subtotal = db.Column(db.Integer, nullable=False, default=0)
    tax = db.Column(db.Integer, nullable=False, default=0)
    discount = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, default="cash")

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    cashier = db.Column(db.String(128), nullable=False, default="")

    order_date = db.Column(db.Date, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderLine.line_number",
    )
    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "items": [line.to_dict() for line in self.lines],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "discount": self.discount,
            "total": self.total,
            "payment_method": self.payment_method,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "status": self.status,
            "cashier": self.cashier,
            "date": to_iso_date(self.order_date),
            "time": self.created_at.strftime("%H:%M:%S") if self.created_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class OrderLine(db.Model):
    """Cart item snapshot. product_id is a plain column so lines outlive their product."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.UniqueConstraint("order_id", "line_number", name="uq_order_lines_order_line"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=False)
    price = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.product_id,
            "name": self.name,
            "barcode": self.barcode,
            "price": self.price,
            "cost_price": self.cost_price,
            "quantity": self.quantity,
            "total": self.total,
        }

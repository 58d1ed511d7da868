from __future__ import annotations

from ..extensions import db
from g24pos.time_utils import to_utc_z


SHIFT_STATUSES = ("OPEN", "CLOSED")

# Signed effect of each cash transaction on the drawer balance
CASH_TRANSACTION_TYPES = {"SALE": 1, "PAYIN": 1, "REFUND": -1, "PAYOUT": -1}
DRAWER_EVENT_TYPES = ("SHIFT_OPEN", "SHIFT_CLOSE", "NO_SALE") + tuple(CASH_TRANSACTION_TYPES)


class HeldOrder(db.Model):
    """
    A parked cart.

    Lines are snapshots priced when the cart was held. Holding does not
    reserve stock; stock is checked again when the cart is checked out.
    """
    __tablename__ = "held_orders"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    items = db.Column(db.JSON, nullable=False)
    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    total = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": list(self.items or []),
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "total": self.total,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class Shift(db.Model):
    """
    Cashier shift and the cash drawer it owns.

    LIFECYCLE:
    - OPEN: drawer open, cash transactions and sales are counted
    - CLOSED: closing count taken, variance = closing - expected

    At most one shift is OPEN at a time. Closed shifts are not modified.
    """
    __tablename__ = "shifts"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    cashier = db.Column(db.String(128), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)

    # Cash amounts in the store currency's smallest unit
    opening_balance = db.Column(db.Integer, nullable=False, default=0)
    expected_balance = db.Column(db.Integer, nullable=False, default=0)
    closing_balance = db.Column(db.Integer, nullable=True)
    variance = db.Column(db.Integer, nullable=True)

    total_sales = db.Column(db.Integer, nullable=False, default=0)
    total_transactions = db.Column(db.Integer, nullable=False, default=0)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    drawer_events = db.relationship(
        "CashDrawerEvent",
        backref="shift",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CashDrawerEvent.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashier": self.cashier,
            "status": self.status,
            "opening_balance": self.opening_balance,
            "expected_balance": self.expected_balance,
            "closing_balance": self.closing_balance,
            "variance": self.variance,
            "total_sales": self.total_sales,
            "total_transactions": self.total_transactions,
            "started_at": to_utc_z(self.started_at),
            "ended_at": to_utc_z(self.ended_at),
            "notes": self.notes,
        }


class CashDrawerEvent(db.Model):
    """Drawer audit trail: shift open/close counts, no-sale opens and cash movements."""
    __tablename__ = "cash_drawer_events"
    __table_args__ = (
        db.Index("ix_drawer_events_shift_occurred", "shift_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = db.Column(db.String(16), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=True)
    balance_after = db.Column(db.Integer, nullable=False)
    reference = db.Column(db.String(64), nullable=True)
    reason = db.Column(db.String(255), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "type": self.event_type,
            "amount": self.amount,
            "balance_after": self.balance_after,
            "reference": self.reference,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }

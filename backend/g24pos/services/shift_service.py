# Overview: Cashier shifts and the cash drawer; opening/closing counts and cash movements.

"""
Shift and Cash Drawer Service

The store runs one register, so at most one shift is OPEN at a time and the
open shift owns the cash drawer. Every change to the drawer is logged as a
CashDrawerEvent carrying the balance it left behind.

Balances:
    expected_balance = opening_balance + SALE + PAYIN - REFUND - PAYOUT
    variance         = closing_balance - expected_balance   (on end_shift)

Cash orders posted while a shift is open are counted by
record_order_in_shift(), which runs inside the order's own transaction.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import CashDrawerEvent, Order, Shift
from ..models.registers import CASH_TRANSACTION_TYPES
from .concurrency import lock_for_update, run_with_retry
from g24pos.time_utils import utcnow


class ShiftError(Exception):
    """Raised for shift and cash drawer errors."""


class ShiftNotFoundError(LookupError):
    pass


def _amount(value, name: str, *, positive: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0 or (positive and value == 0):
        qualifier = "positive" if positive else "non-negative"
        raise ShiftError(f"{name} must be a {qualifier} integer")
    return value


def get_current_shift(*, lock: bool = False) -> Shift | None:
    q = db.session.query(Shift).filter(Shift.status == "OPEN")
    if lock:
        q = lock_for_update(q)
    return q.order_by(Shift.id.desc()).first()


def _open_shift_or_raise() -> Shift:
    shift = get_current_shift(lock=True)
    if shift is None:
        raise ShiftError("Cash drawer is not open; start a shift first")
    return shift


def _log_drawer_event(
    shift: Shift,
    event_type: str,
    *,
    amount: int | None = None,
    reference: str | None = None,
    reason: str | None = None,
) -> CashDrawerEvent:
    event = CashDrawerEvent(
        shift_id=shift.id,
        event_type=event_type,
        amount=amount,
        balance_after=shift.closing_balance if event_type == "SHIFT_CLOSE" else shift.expected_balance,
        reference=reference,
        reason=reason,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.flush()
    return event


def _apply_cash(shift: Shift, kind: str, amount: int, reference: str | None) -> CashDrawerEvent:
    balance = shift.expected_balance + CASH_TRANSACTION_TYPES[kind] * amount
    if balance < 0:
        raise ShiftError(f"Cash drawer holds {shift.expected_balance}, cannot pay out {amount}")
    shift.expected_balance = balance
    return _log_drawer_event(shift, kind, amount=amount, reference=reference)


def start_shift(*, cashier: str, opening_balance: int) -> Shift:
    """
    Open a shift and its cash drawer with the counted opening balance.

    Raises:
        ShiftError: missing cashier, bad amount, or a shift is already open
    """
    if not isinstance(cashier, str) or not cashier.strip():
        raise ShiftError("cashier is required")
    opening = _amount(opening_balance, "opening_balance")

    def _op():
        existing = get_current_shift(lock=True)
        if existing is not None:
            raise ShiftError(f"A shift is already open (shift {existing.id}, {existing.cashier})")

        shift = Shift(
            cashier=cashier.strip(),
            status="OPEN",
            opening_balance=opening,
            expected_balance=opening,
            started_at=utcnow(),
        )
        db.session.add(shift)
        db.session.flush()
        _log_drawer_event(shift, "SHIFT_OPEN", amount=opening, reason="Shift opened")
        db.session.commit()
        return shift

    shift = run_with_retry(_op)
    current_app.logger.info("Shift %s opened by %s with %s", shift.id, shift.cashier, shift.opening_balance)
    return shift


def end_shift(*, closing_balance: int, notes: str | None = None) -> Shift:
    """
    Close the open shift with the counted drawer balance.

    Raises:
        ShiftError: bad amount or no open shift
    """
    closing = _amount(closing_balance, "closing_balance")

    def _op():
        shift = get_current_shift(lock=True)
        if shift is None:
            raise ShiftError("No open shift")

        shift.status = "CLOSED"
        shift.ended_at = utcnow()
        shift.closing_balance = closing
        shift.variance = closing - shift.expected_balance
        shift.notes = notes
        _log_drawer_event(shift, "SHIFT_CLOSE", amount=closing, reason=f"Shift closed. Variance: {shift.variance}")
        db.session.commit()
        return shift

    shift = run_with_retry(_op)
    current_app.logger.info("Shift %s closed, variance=%s", shift.id, shift.variance)
    return shift


def open_cash_drawer(*, reason: str) -> CashDrawerEvent:
    """Open the drawer without a sale. The reason is kept on the audit trail."""
    if not isinstance(reason, str) or not reason.strip():
        raise ShiftError("reason is required to open the drawer without a sale")

    def _op():
        shift = _open_shift_or_raise()
        event = _log_drawer_event(shift, "NO_SALE", reason=reason.strip())
        db.session.commit()
        return event

    return run_with_retry(_op)


def add_cash_transaction(*, type: str, amount: int, reference: str | None = None) -> CashDrawerEvent:
    """
    Record cash entering (SALE, PAYIN) or leaving (REFUND, PAYOUT) the drawer.

    Raises:
        ShiftError: unknown type, non-positive amount, no open shift, or a
            withdrawal larger than the drawer balance
    """
    kind = type.upper() if isinstance(type, str) else type
    if kind not in CASH_TRANSACTION_TYPES:
        raise ShiftError(f"type must be one of: {', '.join(CASH_TRANSACTION_TYPES)}")
    amount = _amount(amount, "amount", positive=True)

    def _op():
        shift = _open_shift_or_raise()
        event = _apply_cash(shift, kind, amount, reference)
        db.session.commit()
        return event

    return run_with_retry(_op)


def record_order_in_shift(order: Order) -> Shift | None:
    """
    Count an order against the open shift, if any. Flush only; the order's
    unit of work commits.
    """
    shift = get_current_shift(lock=True)
    if shift is None:
        return None

    shift.total_sales += order.total
    shift.total_transactions += 1
    if order.payment_method == "cash" and order.total > 0:
        _apply_cash(shift, "SALE", order.total, order.order_number)
    return shift


def get_cash_drawer() -> dict:
    """
    Drawer state: the open shift's drawer, else the last closed count.
    """
    shift = get_current_shift() or db.session.query(Shift).order_by(Shift.id.desc()).first()
    if shift is None:
        return {"is_open": False, "shift_id": None, "opening_balance": 0, "current_balance": 0, "transactions": []}

    is_open = shift.status == "OPEN"
    return {
        "is_open": is_open,
        "shift_id": shift.id,
        "opening_balance": shift.opening_balance,
        "current_balance": shift.expected_balance if is_open else shift.closing_balance,
        "transactions": [e.to_dict() for e in reversed(shift.drawer_events)],
    }


def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if shift is None:
        raise ShiftNotFoundError("Shift not found")
    return shift


def list_shifts(*, status: str | None = None) -> list[Shift]:
    q = db.session.query(Shift)
    if status:
        q = q.filter(Shift.status == status)
    return q.order_by(Shift.started_at.desc(), Shift.id.desc()).all()

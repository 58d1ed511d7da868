# Overview: Flask API routes for cashier shifts and the cash drawer.

# backend/g24pos/routes/shifts.py
"""
Shift routes.

Shift lifecycle: start -> end (closed shifts are never modified).
The cash drawer belongs to the open shift; every drawer change is logged.
"""
from flask import Blueprint, request

from ..services.shift_service import (
    ShiftError,
    ShiftNotFoundError,
    add_cash_transaction,
    end_shift,
    get_cash_drawer,
    get_current_shift,
    get_shift,
    list_shifts,
    open_cash_drawer,
    start_shift,
)

shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.get("")
def list_shifts_route():
    shifts = list_shifts(status=request.args.get("status"))
    return {"items": [s.to_dict() for s in shifts]}


@shifts_bp.get("/current")
def current_shift_route():
    shift = get_current_shift()
    return {"shift": shift.to_dict() if shift else None}


@shifts_bp.get("/<int:shift_id>")
def get_shift_route(shift_id: int):
    try:
        shift = get_shift(shift_id)
    except ShiftNotFoundError:
        return {"error": "Shift not found"}, 404

    result = shift.to_dict()
    result["drawer_events"] = [e.to_dict() for e in shift.drawer_events]
    return result


@shifts_bp.post("/start")
def start_shift_route():
    """
    Body:
        cashier: str
        opening_balance: int (counted cash in the drawer)
    """
    payload = request.get_json(silent=True) or {}

    try:
        shift = start_shift(cashier=payload.get("cashier"), opening_balance=payload.get("opening_balance", 0))
    except ShiftError as e:
        return {"error": str(e)}, 400

    return shift.to_dict(), 201


@shifts_bp.post("/end")
def end_shift_route():
    """
    Body:
        closing_balance: int (counted cash in the drawer)
        notes: optional
    """
    payload = request.get_json(silent=True) or {}
    if payload.get("closing_balance") is None:
        return {"error": "closing_balance is required"}, 400

    try:
        shift = end_shift(closing_balance=payload["closing_balance"], notes=payload.get("notes"))
    except ShiftError as e:
        return {"error": str(e)}, 400

    return shift.to_dict(), 200


@shifts_bp.get("/drawer")
def cash_drawer_route():
    return get_cash_drawer()


@shifts_bp.post("/drawer/open")
def open_drawer_route():
    payload = request.get_json(silent=True) or {}

    try:
        event = open_cash_drawer(reason=payload.get("reason"))
    except ShiftError as e:
        return {"error": str(e)}, 400

    return event.to_dict(), 201


@shifts_bp.post("/drawer/transactions")
def add_cash_transaction_route():
    """
    Body:
        type: sale | payin | refund | payout
        amount: positive int
        reference: optional
    """
    payload = request.get_json(silent=True) or {}

    try:
        event = add_cash_transaction(
            type=payload.get("type"),
            amount=payload.get("amount"),
            reference=payload.get("reference"),
        )
    except ShiftError as e:
        return {"error": str(e)}, 400

    return event.to_dict(), 201

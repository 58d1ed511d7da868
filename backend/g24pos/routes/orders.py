# Overview: Flask API routes for orders; checkout and order history.

# backend/g24pos/routes/orders.py
"""
Order routes.

POST /api/orders is the checkout: the server prices the cart, computes tax
from the store settings, decrements stock and accrues customer stats in one
transaction. Client-supplied totals are ignored.
"""
from flask import Blueprint, current_app, request
from ..services.orders_service import (
    OrderError,
    OrderNotFoundError,
    add_order,
    get_order,
    get_orders_by_date_range,
    list_orders,
    update_order,
)
from ..services.held_orders_service import (
    get_held_order,
    hold_order,
    list_held_orders,
    remove_held_order,
)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
def list_orders_route():
    """
    List orders, newest first.

    Query params:
    - status: completed | refunded | partial-refund (optional)
    - start, end: YYYY-MM-DD (optional, both required for a date range)
    """
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        if start or end:
            orders = get_orders_by_date_range(start, end)
        else:
            orders = list_orders(status=request.args.get("status"))
    except OrderError as e:
        return {"error": str(e)}, 400
    except ValueError:
        return {"error": "start and end must be YYYY-MM-DD"}, 400

    return {"items": [o.to_dict() for o in orders]}


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    order = get_order(order_id)
    if order is None:
        return {"error": "Order not found"}, 404
    return order.to_dict()


@orders_bp.post("")
def create_order_route():
    """
    Checkout.

    Body:
        items: [{product_id, quantity}]
        payment_method: cash | card | transfer
        discount: int (optional)
        customer_name, customer_phone, cashier: optional
        order_date: YYYY-MM-DD (optional, defaults to today)
    """
    payload = request.get_json(silent=True) or {}

    try:
        order = add_order(
            items=payload.get("items"),
            payment_method=payload.get("payment_method", "cash"),
            discount=payload.get("discount", 0),
            customer_name=payload.get("customer_name"),
            customer_phone=payload.get("customer_phone"),
            cashier=payload.get("cashier") or "",
            order_date=payload.get("order_date"),
        )
    except OrderError as e:
        body = {"error": str(e)}
        body.update(e.details)
        return body, 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return {"error": "Failed to create order"}, 500

    return order.to_dict(), 201


@orders_bp.get("/held")
def list_held_orders_route():
    return {"items": [h.to_dict() for h in list_held_orders()]}


@orders_bp.post("/held")
def hold_order_route():
    """
    Park a cart for later.

    Body:
        items: [{product_id, quantity}]
        customer_name, customer_phone, notes: optional
    """
    payload = request.get_json(silent=True) or {}

    try:
        held = hold_order(
            items=payload.get("items"),
            customer_name=payload.get("customer_name"),
            customer_phone=payload.get("customer_phone"),
            notes=payload.get("notes"),
        )
    except OrderError as e:
        body = {"error": str(e)}
        body.update(e.details)
        return body, 400

    return held.to_dict(), 201


@orders_bp.get("/held/<int:held_id>")
def get_held_order_route(held_id: int):
    held = get_held_order(held_id)
    if held is None:
        return {"error": "Held order not found"}, 404
    return held.to_dict()


@orders_bp.delete("/held/<int:held_id>")
def remove_held_order_route(held_id: int):
    if not remove_held_order(held_id):
        return {"error": "Held order not found"}, 404
    return {"ok": True}, 200


@orders_bp.put("/<int:order_id>")
def update_order_route(order_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    try:
        order = update_order(order_id=order_id, patch=payload)
    except OrderNotFoundError:
        return {"error": "Order not found"}, 404
    except OrderError as e:
        return {"error": str(e)}, 400

    return order.to_dict(), 200

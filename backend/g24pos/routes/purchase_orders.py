# Overview: Flask API routes for purchase orders; creation, reorder generation and status changes.

from flask import Blueprint, current_app, request
from ..models.purchasing import PURCHASE_ORDER_STATUSES
from ..services.purchase_order_service import (
    PurchaseOrderError,
    PurchaseOrderNotFoundError,
    create_purchase_order,
    generate_auto_reorders,
    get_purchase_order,
    list_purchase_orders,
    set_purchase_order_status,
    suggest_reorders,
)

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
def list_purchase_orders_route():
    status = request.args.get("status")
    if status and status not in PURCHASE_ORDER_STATUSES:
        return {"error": f"status must be one of: {', '.join(PURCHASE_ORDER_STATUSES)}"}, 400
    return {"items": [po.to_dict() for po in list_purchase_orders(status=status)]}


@purchase_orders_bp.get("/<int:po_id>")
def get_purchase_order_route(po_id: int):
    po = get_purchase_order(po_id)
    if po is None:
        return {"error": "Purchase order not found"}, 404
    return po.to_dict()


@purchase_orders_bp.post("")
def create_purchase_order_route():
    """
    Create a DRAFT purchase order.

    Body:
        supplier_id, supplier_name: str
        items: [{product_id?, product_name?, barcode?, quantity_ordered, unit_cost}]
        expected_date: ISO-8601 (optional)
        notes, created_by: str (optional)
    """
    payload = request.get_json(silent=True) or {}

    try:
        po = create_purchase_order(
            supplier_id=payload.get("supplier_id"),
            supplier_name=payload.get("supplier_name"),
            items=payload.get("items") or [],
            expected_date=payload.get("expected_date"),
            notes=payload.get("notes"),
            created_by=payload.get("created_by") or "SYSTEM",
        )
    except PurchaseOrderError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return {"error": "Failed to create purchase order"}, 500

    return po.to_dict(), 201


@purchase_orders_bp.post("/auto-reorder")
def auto_reorder_route():
    """One DRAFT purchase order per supplier for every low-stock product."""
    orders = generate_auto_reorders()
    return {"items": [po.to_dict() for po in orders]}, 201


@purchase_orders_bp.get("/suggestions")
def suggestions_route():
    limit = request.args.get("limit", default=5, type=int)
    return {"items": suggest_reorders(limit=limit)}


@purchase_orders_bp.post("/<int:po_id>/status")
def set_status_route(po_id: int):
    """
    Move a purchase order to a new status.

    Body:
        status: target status
        received_quantities: {product_id: quantity} (optional, RECEIVED only)
    """
    payload = request.get_json(silent=True) or {}
    status = payload.get("status")
    if not status:
        return {"error": "status is required"}, 400

    received = payload.get("received_quantities")
    if received is not None:
        try:
            received = {int(k): int(v) for k, v in received.items()}
        except (AttributeError, TypeError, ValueError):
            return {"error": "received_quantities must map product ids to integers"}, 400
        if any(v < 0 for v in received.values()):
            return {"error": "received quantities must be >= 0"}, 400

    try:
        po = set_purchase_order_status(po_id=po_id, status=status, received_quantities=received)
    except PurchaseOrderNotFoundError:
        return {"error": "Purchase order not found"}, 404
    except PurchaseOrderError as e:
        return {"error": str(e)}, 400

    return po.to_dict(), 200

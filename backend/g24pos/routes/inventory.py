# backend/g24pos/routes/inventory.py
"""
Inventory management routes: filtered product views, the stock movement
ledger, alerts, demand forecasts and bulk operations.

Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
"""
from flask import Blueprint, current_app, request

from ..models import StockMovement
from ..models.inventory import ALERT_PRIORITIES, MOVEMENT_TYPES
from ..services.alert_service import (
    AlertNotFoundError,
    get_alerts,
    mark_alert_as_read,
    mark_all_alerts_as_read,
)
from ..services.bulk_service import (
    BulkOperationError,
    BulkOperationNotFoundError,
    bulk_update_products,
    get_bulk_operation,
    list_bulk_operations,
)
from ..services.inventory_service import (
    InventoryError,
    ProductNotFoundError,
    add_stock_movement,
    get_inventory_forecasts,
    get_products,
    get_stock_movements,
)
from g24pos.time_utils import parse_iso_datetime
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id",
        "type",
        "quantity",
        "reason",
        "reference",
        "user_id",
        "cost",
        "notes",
        "location",
        "timestamp",
    },
    required_on_create={"product_id", "type", "quantity", "reason"},
)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@inventory_bp.get("/products")
def inventory_products_route():
    """
    Filtered product view.

    Query params (all optional):
    - category, supplier, search, location: str
    - low_stock, expiring, is_active: bool
    """
    is_active = request.args.get("is_active")
    products = get_products(
        category=request.args.get("category"),
        supplier=request.args.get("supplier"),
        low_stock=request.args.get("low_stock", default=False, type=_as_bool),
        expiring=request.args.get("expiring", default=False, type=_as_bool),
        search=request.args.get("search"),
        location=request.args.get("location"),
        is_active=_as_bool(is_active) if is_active is not None else None,
    )
    return {"items": [p.to_dict() for p in products]}


@inventory_bp.get("/movements")
def list_movements_route():
    """
    Stock movements, newest first.

    Query params:
    - product_id: int (optional)
    - type: movement type (optional)
    - since: ISO-8601 datetime (optional)
    - limit: int (optional)
    """
    movement_type = request.args.get("type")
    if movement_type and movement_type not in MOVEMENT_TYPES:
        return {"error": f"type must be one of: {', '.join(MOVEMENT_TYPES)}"}, 400

    try:
        since = parse_iso_datetime(request.args.get("since"))
    except ValueError:
        return {"error": "since must be an ISO-8601 datetime"}, 400

    movements = get_stock_movements(
        product_id=request.args.get("product_id", type=int),
        type=movement_type,
        since=since,
        limit=request.args.get("limit", type=int),
    )
    return {"items": [m.to_dict() for m in movements]}


@inventory_bp.post("/movements")
def create_movement_route():
    """
    Record a stock movement and apply it to the product.

    IN/OUT quantities are non-negative; ADJUSTMENT/EXPIRED/DAMAGED are
    signed; TRANSFER only moves the product to "location".
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockMovement, payload=payload, policy=MOVEMENT_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        movement = add_stock_movement(**patch)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except InventoryError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to record stock movement")
        return {"error": "Failed to record stock movement"}, 500

    return movement.to_dict(), 201


@inventory_bp.get("/alerts")
def list_alerts_route():
    """
    Alerts ordered CRITICAL > HIGH > MEDIUM > LOW.

    Query params:
    - unread: bool (optional)
    - priority: LOW | MEDIUM | HIGH | CRITICAL (optional)
    """
    priority = request.args.get("priority")
    if priority and priority not in ALERT_PRIORITIES:
        return {"error": f"priority must be one of: {', '.join(ALERT_PRIORITIES)}"}, 400

    alerts = get_alerts(
        unread_only=request.args.get("unread", default=False, type=_as_bool),
        priority=priority,
    )
    return {"items": [a.to_dict() for a in alerts]}


@inventory_bp.post("/alerts/<int:alert_id>/read")
def mark_alert_read_route(alert_id: int):
    try:
        alert = mark_alert_as_read(alert_id)
    except AlertNotFoundError:
        return {"error": "Alert not found"}, 404
    return alert.to_dict(), 200


@inventory_bp.post("/alerts/read-all")
def mark_all_alerts_read_route():
    return {"updated": mark_all_alerts_as_read()}, 200


@inventory_bp.get("/forecasts")
def forecasts_route():
    days = request.args.get("days", default=7, type=int)
    if days <= 0:
        return {"error": "days must be positive"}, 400
    return {"items": get_inventory_forecasts(days=days)}


@inventory_bp.get("/bulk")
def list_bulk_operations_route():
    return {"items": [op.to_dict() for op in list_bulk_operations()]}


@inventory_bp.get("/bulk/<int:op_id>")
def get_bulk_operation_route(op_id: int):
    try:
        op = get_bulk_operation(op_id)
    except BulkOperationNotFoundError:
        return {"error": "Bulk operation not found"}, 404
    return op.to_dict()


@inventory_bp.post("/bulk")
def create_bulk_operation_route():
    """
    Apply one update to many products.

    Body:
        product_ids: [int]
        updates: {field: value} (or {"quantity": int} for STOCK_ADJUSTMENT)
        type: PRICE_UPDATE | CATEGORY_CHANGE | SUPPLIER_CHANGE | STOCK_ADJUSTMENT
        async: bool (optional) - process in the background and return 202
    """
    payload = request.get_json(silent=True) or {}
    run_async = bool(payload.get("async", False))

    try:
        op = bulk_update_products(
            product_ids=payload.get("product_ids"),
            updates=payload.get("updates"),
            type=payload.get("type", "PRICE_UPDATE"),
            run_async=run_async,
        )
    except BulkOperationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to run bulk operation")
        return {"error": "Failed to run bulk operation"}, 500

    return op.to_dict(), 202 if run_async else 201

# Overview: Supplier purchase orders; manual creation, auto reorders and receiving.

"""
Purchase Order Lifecycle

STATE MACHINE:
    DRAFT -> PENDING -> APPROVED -> ORDERED -> RECEIVED
    CANCELLED is reachable from any non-terminal state.

RULES:
1. Cannot skip states (DRAFT -> ORDERED is forbidden)
2. RECEIVED and CANCELLED are terminal
3. Entering RECEIVED stamps received_date and posts one IN stock movement
   per line, referenced by the PO number, in the same transaction
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderLine
from ..models.purchasing import PURCHASE_ORDER_STATUSES
from .concurrency import run_with_retry
from .document_service import next_document_number
from .inventory_service import get_products, record_stock_movement
from g24pos.time_utils import parse_iso_datetime, utcnow


FORWARD_TRANSITIONS = {
    ("DRAFT", "PENDING"),
    ("PENDING", "APPROVED"),
    ("APPROVED", "ORDERED"),
    ("ORDERED", "RECEIVED"),
}
TERMINAL_STATUSES = {"RECEIVED", "CANCELLED"}

SUGGESTION_LEAD_DAYS = 7


class PurchaseOrderError(ValueError):
    """Raised for invalid purchase order input or lifecycle transitions."""


class PurchaseOrderNotFoundError(LookupError):
    pass


def validate_status(status: str) -> None:
    if status not in PURCHASE_ORDER_STATUSES:
        raise PurchaseOrderError(
            f"Invalid status '{status}'. Must be one of: {', '.join(PURCHASE_ORDER_STATUSES)}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check a status change against the lifecycle.

    Same-state transitions are allowed no-ops.
    """
    validate_status(from_status)
    validate_status(to_status)

    if from_status == to_status:
        return True
    if from_status in TERMINAL_STATUSES:
        return False
    if to_status == "CANCELLED":
        return True
    return (from_status, to_status) in FORWARD_TRANSITIONS


def reorder_quantity(product: Product) -> int:
    """Auto reorder heuristic: max(min_stock * 2, AUTO_REORDER_MIN_QUANTITY)."""
    return max(product.min_stock * 2, current_app.config["AUTO_REORDER_MIN_QUANTITY"])


def _build_line(item: dict) -> PurchaseOrderLine:
    quantity = item.get("quantity_ordered")
    unit_cost = item.get("unit_cost", 0)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise PurchaseOrderError("quantity_ordered must be a positive integer")
    if isinstance(unit_cost, bool) or not isinstance(unit_cost, int) or unit_cost < 0:
        raise PurchaseOrderError("unit_cost must be a non-negative integer")

    product_id = item.get("product_id")
    product_name = item.get("product_name")
    barcode = item.get("barcode")
    if product_id is not None and (product_name is None or barcode is None):
        product = db.session.get(Product, product_id)
        if product is None:
            raise PurchaseOrderError(f"Unknown product {product_id}")
        product_name = product_name or product.name
        barcode = barcode or product.barcode
    if not product_name:
        raise PurchaseOrderError("product_name is required")

    return PurchaseOrderLine(
        product_id=product_id,
        product_name=product_name,
        barcode=barcode or "",
        quantity_ordered=quantity,
        quantity_received=item.get("quantity_received"),
        unit_cost=unit_cost,
        total_cost=item.get("total_cost", unit_cost * quantity),
    )


def _create_purchase_order_inner(
    *,
    supplier_id: str,
    supplier_name: str,
    items: list[dict],
    expected_date: datetime | None = None,
    notes: str | None = None,
    created_by: str = "SYSTEM",
) -> PurchaseOrder:
    if not supplier_id or not supplier_name:
        raise PurchaseOrderError("supplier_id and supplier_name are required")
    if not items:
        raise PurchaseOrderError("A purchase order needs at least one item")

    lines = [_build_line(item) for item in items]
    now = utcnow()
    po = PurchaseOrder(
        order_number=next_document_number(document_type="PURCHASE_ORDER", prefix="PO", business_date=now.date()),
        supplier_id=supplier_id,
        supplier_name=supplier_name,
        status="DRAFT",
        total_amount=sum(line.total_cost for line in lines),
        order_date=now,
        expected_date=expected_date,
        notes=notes,
        created_by=created_by,
    )
    po.lines.extend(lines)
    db.session.add(po)
    db.session.flush()
    return po


def create_purchase_order(
    *,
    supplier_id: str,
    supplier_name: str,
    items: list[dict],
    expected_date=None,
    notes: str | None = None,
    created_by: str = "SYSTEM",
) -> PurchaseOrder:
    if isinstance(expected_date, str):
        try:
            expected_date = parse_iso_datetime(expected_date)
        except ValueError:
            raise PurchaseOrderError("expected_date must be an ISO-8601 datetime")

    def _op():
        po = _create_purchase_order_inner(
            supplier_id=supplier_id,
            supplier_name=supplier_name,
            items=items,
            expected_date=expected_date,
            notes=notes,
            created_by=created_by,
        )
        db.session.commit()
        return po

    return run_with_retry(_op)


def _group_by_supplier(products: list[Product]) -> dict[str, list[Product]]:
    groups: dict[str, list[Product]] = {}
    for product in products:
        groups.setdefault(product.supplier, []).append(product)
    return groups


def generate_auto_reorders() -> list[PurchaseOrder]:
    """
    One DRAFT purchase order per supplier covering its low-stock products.
    """
    def _op():
        low_stock = get_products(low_stock=True)
        orders = []
        for supplier, products in _group_by_supplier(low_stock).items():
            items = []
            for product in products:
                qty = reorder_quantity(product)
                items.append({
                    "product_id": product.id,
                    "product_name": product.name,
                    "barcode": product.barcode,
                    "quantity_ordered": qty,
                    "unit_cost": product.cost_price,
                    "total_cost": product.cost_price * qty,
                })
            orders.append(_create_purchase_order_inner(
                supplier_id=supplier,
                supplier_name=supplier,
                items=items,
                notes="Auto reorder for low stock",
            ))
        db.session.commit()
        return orders

    orders = run_with_retry(_op)
    current_app.logger.info("Generated %s auto reorder purchase order(s)", len(orders))
    return orders


def suggest_reorders(*, limit: int = 5) -> list[dict]:
    """
    Preview of per-product reorders for low-stock items. Nothing is saved.

    Quantity tops the product up to max_stock, with the configured minimum.
    """
    min_qty = current_app.config["AUTO_REORDER_MIN_QUANTITY"]
    now = utcnow()
    suggestions = []
    for product in get_products(low_stock=True)[:limit]:
        target = product.max_stock if product.max_stock is not None else product.min_stock
        quantity = max(target - product.stock, min_qty)
        suggestions.append({
            "supplier_id": product.supplier,
            "supplier_name": product.supplier,
            "status": "PENDING",
            "items": [{
                "product_id": product.id,
                "product_name": product.name,
                "barcode": product.barcode,
                "quantity_ordered": quantity,
                "unit_cost": product.cost_price,
                "total_cost": quantity * product.cost_price,
            }],
            "total_amount": quantity * product.cost_price,
            "expected_date": (now + timedelta(days=SUGGESTION_LEAD_DAYS)).isoformat() + "Z",
            "notes": f"Suggested reorder for low-stock product: {product.name}",
            "created_by": "SYSTEM",
        })
    return suggestions


def get_purchase_order(po_id: int) -> PurchaseOrder | None:
    return db.session.get(PurchaseOrder, po_id)


def list_purchase_orders(*, status: str | None = None) -> list[PurchaseOrder]:
    q = db.session.query(PurchaseOrder)
    if status:
        validate_status(status)
        q = q.filter(PurchaseOrder.status == status)
    return q.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc()).all()


def _receive_lines(po: PurchaseOrder, received: dict[int, int] | None) -> None:
    for line in po.lines:
        qty = line.quantity_ordered
        if received and line.product_id in received:
            qty = received[line.product_id]
        line.quantity_received = qty
        if line.product_id is None or qty == 0:
            continue
        product = db.session.get(Product, line.product_id)
        if product is None:
            # Product deleted since ordering; keep the receipt on the PO only
            continue
        record_stock_movement(
            product=product,
            type="IN",
            quantity=qty,
            reason="Purchase order received",
            reference=po.order_number,
            cost=line.unit_cost,
        )


def set_purchase_order_status(
    *,
    po_id: int,
    status: str,
    received_quantities: dict[int, int] | None = None,
) -> PurchaseOrder:
    """
    Move a purchase order along its lifecycle.

    Raises:
        PurchaseOrderNotFoundError: unknown id
        PurchaseOrderError: invalid status or transition
    """
    def _op():
        po = db.session.get(PurchaseOrder, po_id)
        if po is None:
            raise PurchaseOrderNotFoundError("Purchase order not found")
        if not can_transition(po.status, status):
            raise PurchaseOrderError(f"Cannot move purchase order from {po.status} to {status}")
        if po.status == status:
            return po

        if status == "RECEIVED":
            po.received_date = utcnow()
            _receive_lines(po, received_quantities)
        po.status = status
        db.session.commit()
        return po

    po = run_with_retry(_op)
    current_app.logger.info("Purchase order %s is now %s", po.order_number, po.status)
    return po

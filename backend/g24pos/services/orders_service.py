# Overview: Checkout and order history; one transaction per order.

"""
Orders Service

add_order() is a single unit of work. In one transaction it:

1. validates every cart line against the catalog and checks that the summed
   quantity per product is covered by current stock,
2. allocates DH<YYYYMMDD><seq> from the persisted document sequence,
3. prices the lines from current product prices and computes
   subtotal / tax / discount / total from the store settings,
4. accrues customer stats when customer_phone matches a customer
   (total_spent, visit_count, last_visit, loyalty points),
5. posts one OUT stock movement per line (which stamps last_sold_date and
   runs alert rules),
6. inserts the order and counts it against the open shift, if any (cash
   orders also enter the drawer balance).

Any failure rolls everything back, so a half-applied order cannot exist.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Order, OrderLine, Product
from ..models.orders import ORDER_STATUSES
from ..validation import PAYMENT_METHODS
from .concurrency import lock_for_update, run_with_retry
from .customers_service import find_customer_by_phone
from .document_service import next_document_number
from .inventory_service import record_stock_movement
from .settings_service import get_store_settings
from .shift_service import record_order_in_shift
from g24pos.time_utils import parse_iso_date, today, utcnow

ORDER_MUTABLE_FIELDS = {"status", "payment_method", "customer_name", "customer_phone", "cashier"}


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderNotFoundError(LookupError):
    pass


def normalize_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise OrderError("Cannot create an order with no items")

    normalized = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise OrderError(f"Item {i + 1} must be an object")
        product_id = item.get("product_id", item.get("id"))
        quantity = item.get("quantity")
        if isinstance(product_id, str) and product_id.isdigit():
            product_id = int(product_id)
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise OrderError(f"Item {i + 1} is missing a product id")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise OrderError(f"Item {i + 1} quantity must be a positive integer")
        normalized.append((product_id, quantity))
    return normalized


def _load_and_validate_stock(items: list[tuple[int, int]]) -> dict[int, Product]:
    product_ids = sorted({pid for pid, _ in items})
    products = {
        p.id: p
        for p in lock_for_update(
            db.session.query(Product).filter(Product.id.in_(product_ids))
        ).all()
    }

    missing = [pid for pid in product_ids if pid not in products]
    if missing:
        raise OrderError("Unknown products in order", details={"product_ids": missing})

    requested: dict[int, int] = {}
    for product_id, quantity in items:
        requested[product_id] = requested.get(product_id, 0) + quantity

    insufficient = []
    for product_id, qty in requested.items():
        on_hand = products[product_id].stock
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise OrderError(
            "Insufficient stock to complete order",
            details={"items": insufficient},
        )
    return products


def compute_tax(subtotal: int, *, tax_rate: float, enable_tax: bool) -> int:
    if not enable_tax or not tax_rate:
        return 0
    tax = (Decimal(subtotal) * Decimal(str(tax_rate)) / Decimal(100))
    return int(tax.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def loyalty_points_for(total: int) -> int:
    return total // current_app.config["LOYALTY_POINT_UNIT"]


def add_order(
    *,
    items: list,
    payment_method: str = "cash",
    discount: int = 0,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    cashier: str = "",
    order_date: date | str | None = None,
) -> Order:
    """
    Create a completed order and apply its side effects atomically.

    Raises:
        OrderError: invalid items, unknown products, insufficient stock,
            invalid payment method or discount
    """
    if payment_method not in PAYMENT_METHODS:
        raise OrderError(f"payment_method must be one of: {', '.join(sorted(PAYMENT_METHODS))}")
    if isinstance(discount, bool) or not isinstance(discount, int) or discount < 0:
        raise OrderError("discount must be a non-negative integer")

    normalized = normalize_items(items)
    if isinstance(order_date, str):
        try:
            order_date = parse_iso_date(order_date)
        except ValueError:
            raise OrderError("order_date must be YYYY-MM-DD")
    business_date = order_date or today()
    settings = get_store_settings()

    def _op():
        products = _load_and_validate_stock(normalized)

        now = utcnow()
        order_number = next_document_number(
            document_type="ORDER",
            prefix="DH",
            business_date=business_date,
        )

        order = Order(
            order_number=order_number,
            payment_method=payment_method,
            customer_name=customer_name,
            customer_phone=customer_phone,
            cashier=cashier or "",
            status="completed",
            order_date=business_date,
            created_at=now,
        )

        subtotal = 0
        for i, (product_id, quantity) in enumerate(normalized):
            product = products[product_id]
            line_total = product.price * quantity
            subtotal += line_total
            order.lines.append(OrderLine(
                line_number=i + 1,
                product_id=product.id,
                name=product.name,
                barcode=product.barcode,
                price=product.price,
                cost_price=product.cost_price,
                quantity=quantity,
                total=line_total,
            ))

        tax = compute_tax(subtotal, tax_rate=settings.tax_rate, enable_tax=settings.enable_tax)
        order.subtotal = subtotal
        order.tax = tax
        order.discount = min(discount, subtotal + tax)
        order.total = subtotal + tax - order.discount

        customer = find_customer_by_phone(customer_phone) if customer_phone else None
        if customer is not None:
            customer.total_spent += order.total
            customer.visit_count += 1
            customer.last_visit = business_date
            customer.loyalty_points += loyalty_points_for(order.total)
            order.customer_id = customer.id
            if not order.customer_name:
                order.customer_name = customer.name

        for product_id, quantity in normalized:
            record_stock_movement(
                product=products[product_id],
                type="OUT",
                quantity=quantity,
                reason="Sale",
                reference=order_number,
                timestamp=now,
                user_id=cashier or None,
            )

        db.session.add(order)
        record_order_in_shift(order)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Order %s posted: %s line(s), total=%s", order.order_number, len(order.lines), order.total
    )
    return order


def update_order(*, order_id: int, patch: dict) -> Order:
    """
    Update order metadata. Stock and customer stats are not touched.
    """
    if "status" in patch and patch["status"] not in ORDER_STATUSES:
        raise OrderError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
    if "payment_method" in patch and patch["payment_method"] not in PAYMENT_METHODS:
        raise OrderError(f"payment_method must be one of: {', '.join(sorted(PAYMENT_METHODS))}")

    def _op():
        order = db.session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError("Order not found")
        for k, v in patch.items():
            if k in ORDER_MUTABLE_FIELDS:
                setattr(order, k, v)
        db.session.commit()
        return order

    return run_with_retry(_op)


def list_orders(*, status: str | None = None) -> list[Order]:
    q = db.session.query(Order)
    if status:
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order(order_id: int) -> Order | None:
    return db.session.get(Order, order_id)


def get_orders_by_date_range(start: date | str, end: date | str) -> list[Order]:
    """Orders whose business date falls within [start, end] inclusive."""
    start_d = parse_iso_date(start) if isinstance(start, str) else start
    end_d = parse_iso_date(end) if isinstance(end, str) else end
    if start_d is None or end_d is None:
        raise OrderError("start and end dates are required")
    return (
        db.session.query(Order)
        .filter(Order.order_date >= start_d, Order.order_date <= end_d)
        .order_by(Order.order_date.asc(), Order.id.asc())
        .all()
    )

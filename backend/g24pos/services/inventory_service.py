# Overview: Service-layer operations for inventory; stock ledger, filters and forecasts.

# backend/g24pos/services/inventory_service.py

"""
G24 POS Inventory Invariants (authoritative)

Single source of truth:
- Product.stock is the only on-hand quantity. Orders, manual stock updates,
  product edits, purchase order receipts and bulk adjustments all change it
  through record_stock_movement(), so every change has a ledger row.

Movement semantics:
- IN       stock += quantity, stamps last_restock_date (quantity >= 0)
- OUT      stock -= quantity, stamps last_sold_date    (quantity >= 0)
- ADJUSTMENT / EXPIRED / DAMAGED
           stock += quantity (signed)
- TRANSFER location change only, stock unchanged

Business invariants:
- Stock may never go negative; a movement that would do so is rejected.
- Alert rules run against the product after every movement.
"""

import math
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, StockMovement
from g24pos.time_utils import utcnow, parse_iso_datetime
from .alert_service import check_product_alerts
from .concurrency import lock_for_update, run_with_retry


MOVEMENT_TYPES = {"IN", "OUT", "ADJUSTMENT", "EXPIRED", "DAMAGED", "TRANSFER"}
SIGNED_MOVEMENT_TYPES = {"ADJUSTMENT", "EXPIRED", "DAMAGED"}


class InventoryError(ValueError):
    """Raised when a stock movement violates an inventory rule."""


class ProductNotFoundError(LookupError):
    """Raised when a product id does not resolve."""


def _parse_timestamp(value) -> datetime:
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        dt = parse_iso_datetime(value)
        if dt is None:
            raise InventoryError("invalid timestamp")
        return dt
    raise InventoryError("invalid timestamp")


def get_product_or_raise(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFoundError("Product not found")
    return product


def stock_delta_for(movement_type: str, quantity: int) -> int:
    if movement_type == "IN":
        return quantity
    if movement_type == "OUT":
        return -quantity
    if movement_type in SIGNED_MOVEMENT_TYPES:
        return quantity
    return 0


def record_stock_movement(
    *,
    product: Product,
    type: str,
    quantity: int,
    reason: str,
    reference: str | None = None,
    timestamp=None,
    user_id: str | None = None,
    cost: int | None = None,
    notes: str | None = None,
    location: dict | None = None,
) -> StockMovement:
    """Core movement logic without locking, retry or commit.

    Called by add_stock_movement() and by every other write path that
    changes stock (orders, purchase order receipts, product edits).
    """
    if type not in MOVEMENT_TYPES:
        raise InventoryError(f"Invalid movement type '{type}'")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InventoryError("quantity must be an integer")
    if type in ("IN", "OUT") and quantity < 0:
        raise InventoryError(f"quantity must be >= 0 for {type}")

    ts = _parse_timestamp(timestamp)
    delta = stock_delta_for(type, quantity)
    if product.stock + delta < 0:
        raise InventoryError(
            f"movement would make stock negative for product {product.id} "
            f"(on hand {product.stock}, change {delta})"
        )

    movement = StockMovement(
        product_id=product.id,
        type=type,
        quantity=quantity,
        reason=reason,
        reference=reference,
        timestamp=ts,
        user_id=user_id,
        cost=cost,
        notes=notes,
        location=location,
    )
    db.session.add(movement)

    product.stock += delta
    if type == "IN":
        product.last_restock_date = ts
    elif type == "OUT":
        product.last_sold_date = ts
    elif type == "TRANSFER" and location is not None:
        product.location = location
    product.updated_at = utcnow()

    db.session.flush()
    check_product_alerts(product)
    return movement


def add_stock_movement(
    *,
    product_id: int,
    type: str,
    quantity: int,
    reason: str,
    reference: str | None = None,
    timestamp=None,
    user_id: str | None = None,
    cost: int | None = None,
    notes: str | None = None,
    location: dict | None = None,
) -> StockMovement:
    """
    Append a stock movement and apply it to the product.

    Raises:
        ProductNotFoundError: unknown product_id
        InventoryError: invalid type/quantity or negative resulting stock
    """
    def _op():
        product = get_product_or_raise(product_id, lock=True)
        movement = record_stock_movement(
            product=product,
            type=type,
            quantity=quantity,
            reason=reason,
            reference=reference,
            timestamp=timestamp,
            user_id=user_id,
            cost=cost,
            notes=notes,
            location=location,
        )
        db.session.commit()
        return movement

    return run_with_retry(_op)


def get_stock_movements(
    *,
    product_id: int | None = None,
    type: str | None = None,
    since: datetime | None = None,
    limit: int | None = None,
) -> list[StockMovement]:
    """Movements newest first."""
    q = db.session.query(StockMovement)
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if type:
        q = q.filter(StockMovement.type == type)
    if since is not None:
        q = q.filter(StockMovement.timestamp >= since)

    q = q.order_by(StockMovement.timestamp.desc(), StockMovement.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def prune_stock_movements(*, retention_days: int) -> int:
    """
    Delete movements older than retention_days.

    Product.stock is authoritative, so on-hand quantities are unaffected;
    only the history older than the window is dropped.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = (
        db.session.query(StockMovement)
        .filter(StockMovement.timestamp < cutoff)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted


def get_products(
    *,
    category: str | None = None,
    supplier: str | None = None,
    low_stock: bool = False,
    expiring: bool = False,
    search: str | None = None,
    location: str | None = None,
    is_active: bool | None = None,
) -> list[Product]:
    """
    Filtered product view. Pure read; never mutates.

    - low_stock: stock <= min_stock
    - expiring: expiry date within EXPIRY_WARNING_DAYS (expired included)
    - search: case-insensitive over name, barcode, sku and tags
    - location: substring of "zone-aisle-shelf-position"
    """
    q = db.session.query(Product)

    if category:
        q = q.filter(Product.category == category)
    if supplier:
        q = q.filter(Product.supplier == supplier)
    if low_stock:
        q = q.filter(Product.stock <= Product.min_stock)
    if expiring:
        horizon = (utcnow() + timedelta(days=current_app.config["EXPIRY_WARNING_DAYS"])).date()
        q = q.filter(Product.expiry_date.isnot(None), Product.expiry_date <= horizon)
    if is_active is not None:
        q = q.filter(Product.is_active.is_(is_active))

    products = q.order_by(Product.name.asc(), Product.id.asc()).all()

    # tags live in a JSON column, so text search runs in Python
    if search:
        needle = search.lower()
        products = [p for p in products if _matches_search(p, needle)]
    if location:
        products = [p for p in products if p.location_code and location in p.location_code]

    return products


def _matches_search(product: Product, needle: str) -> bool:
    if needle in product.name.lower() or needle in product.barcode.lower():
        return True
    if product.sku and needle in product.sku.lower():
        return True
    return any(needle in str(tag).lower() for tag in (product.tags or []))


def get_inventory_forecasts(*, days: int = 7) -> list[dict]:
    """
    Demand forecast per product from OUT movements in the trailing window.

    avg_daily_demand = sum(OUT quantity in last FORECAST_WINDOW_DAYS) / window
    predicted_demand = ceil(avg * days)
    recommended_reorder_point = max(min_stock, ceil(avg * 5))
    recommended_order_quantity = max(AUTO_REORDER_MIN_QUANTITY, ceil(avg * 14))
    """
    window = current_app.config["FORECAST_WINDOW_DAYS"]
    min_order = current_app.config["AUTO_REORDER_MIN_QUANTITY"]
    since = utcnow() - timedelta(days=window)

    demand_rows = (
        db.session.query(
            StockMovement.product_id,
            func.coalesce(func.sum(StockMovement.quantity), 0).label("units"),
        )
        .filter(StockMovement.type == "OUT", StockMovement.timestamp >= since)
        .group_by(StockMovement.product_id)
        .all()
    )
    demand = {row.product_id: int(row.units or 0) for row in demand_rows}

    forecasts = []
    for product in db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all():
        avg_daily = demand.get(product.id, 0) / window
        forecasts.append({
            "product_id": product.id,
            "product_name": product.name,
            "current_stock": product.stock,
            "average_daily_demand": round(avg_daily, 4),
            "predicted_demand": math.ceil(avg_daily * days),
            "recommended_reorder_point": max(product.min_stock, math.ceil(avg_daily * 5)),
            "recommended_order_quantity": max(min_order, math.ceil(avg_daily * 14)),
            "days_of_cover": round(product.stock / avg_daily, 1) if avg_daily > 0 else None,
            "horizon_days": days,
        })
    return forecasts

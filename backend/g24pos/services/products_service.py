# backend/g24pos/services/products_service.py
"""
Products Service

Catalog CRUD plus the two stock shortcuts the POS screens use
(update_stock, get_low_stock_products).

STOCK: product rows never have their stock assigned directly here. The
initial quantity, manual edits and update_stock() deltas are all posted
as stock movements, which keeps alerts and the movement history in step
with the on-hand number.
"""
from __future__ import annotations
from flask import current_app
from ..extensions import db
from ..models import Product
from ..validation import ConflictError, ValidationError
from .alert_service import check_product_alerts, record_price_change_alert
from .inventory_service import ProductNotFoundError, get_product_or_raise, record_stock_movement
from .concurrency import run_with_retry
from g24pos.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {
    "name", "barcode", "sku", "description", "image_url",
    "price", "cost_price", "min_stock", "max_stock",
    "category", "subcategory", "supplier", "supplier_code", "brand",
    "tags", "weight", "expiry_date", "manufacture_date", "location", "is_active",
}

# Fields whose change can flip an alert rule without a stock movement
ALERT_FIELDS = {"min_stock", "max_stock", "expiry_date"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique_barcode(barcode: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Barcode already exists.")


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def find_product_by_barcode(barcode: str) -> Product | None:
    return db.session.query(Product).filter_by(barcode=barcode.strip()).first()


def add_product(*, patch: dict) -> Product:
    """
    Create a product using a validated patch dict.

    The requested initial stock is posted as an IN movement
    ("Initial stock", reference INITIAL) after the row exists.

    Raises:
        ConflictError: If the barcode already exists
    """
    barcode = patch.get("barcode")
    if not barcode:
        raise ValueError("barcode is required")

    initial_stock = patch.get("stock") or 0

    def _op():
        _ensure_unique_barcode(barcode)

        p = Product(stock=0)
        apply_product_patch(p, patch)
        db.session.add(p)
        db.session.flush()  # ensure p.id exists before the first movement

        record_stock_movement(
            product=p,
            type="IN",
            quantity=initial_stock,
            reason="Initial stock",
            reference="INITIAL",
        )
        db.session.commit()
        return p

    p = run_with_retry(_op)
    current_app.logger.info("Product created id=%s barcode=%s stock=%s", p.id, p.barcode, p.stock)
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Update a product.

    A "stock" key is converted into an ADJUSTMENT movement of
    (new - current). A price change records a PRICE_CHANGE alert.

    Raises:
        ProductNotFoundError: If the product does not exist
        ConflictError: If the new barcode already exists
        ValidationError: If max_stock would end up below min_stock
        InventoryError: If the requested stock is negative
    """
    def _op():
        p = get_product_or_raise(product_id, lock=True)

        if "barcode" in patch and patch["barcode"] != p.barcode:
            _ensure_unique_barcode(patch["barcode"], exclude_id=p.id)

        min_stock = patch.get("min_stock", p.min_stock)
        max_stock = patch.get("max_stock", p.max_stock)
        if max_stock is not None and min_stock is not None and max_stock < min_stock:
            raise ValidationError("max_stock must be >= min_stock")

        old_price = p.price
        apply_product_patch(p, patch)
        p.updated_at = utcnow()

        if "stock" in patch and patch["stock"] is not None and patch["stock"] != p.stock:
            record_stock_movement(
                product=p,
                type="ADJUSTMENT",
                quantity=patch["stock"] - p.stock,
                reason="Stock edited",
            )
        elif ALERT_FIELDS & patch.keys():
            db.session.flush()
            check_product_alerts(p)

        if "price" in patch and patch["price"] != old_price:
            db.session.flush()
            record_price_change_alert(p, old_price)

        db.session.commit()
        return p

    return run_with_retry(_op)


def delete_product(*, product_id: int) -> bool:
    """
    Hard-delete a product with its movements and alerts.

    Order and purchase order lines keep their snapshots.

    Returns:
        True if deleted, False if not found
    """
    p = db.session.get(Product, product_id)
    if not p:
        return False

    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Product deleted id=%s", product_id)
    return True


def update_stock(*, product_id: int, delta: int) -> Product:
    """
    Apply a signed stock change, flooring the result at zero.

    stock' = max(0, stock + delta). The effective change is posted as an
    ADJUSTMENT movement; a change that floors to nothing posts no movement.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValueError("delta must be an integer")

    def _op():
        p = get_product_or_raise(product_id, lock=True)
        effective = max(0, p.stock + delta) - p.stock
        if effective:
            record_stock_movement(
                product=p,
                type="ADJUSTMENT",
                quantity=effective,
                reason="Manual stock update",
                notes=None if effective == delta else f"requested {delta}, floored at zero",
            )
        db.session.commit()
        return p

    return run_with_retry(_op)


def get_low_stock_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )


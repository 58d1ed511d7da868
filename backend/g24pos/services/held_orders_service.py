# Overview: Parked carts that a cashier can hold and recall later.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import HeldOrder, Product
from .concurrency import run_with_retry
from .orders_service import OrderError, normalize_items
from g24pos.time_utils import utcnow


def hold_order(
    *,
    items: list,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    notes: str | None = None,
) -> HeldOrder:
    """
    Park a cart. Lines are priced from the catalog now; stock is neither
    checked nor reserved.

    Raises:
        OrderError: empty cart, malformed lines or unknown products
    """
    normalized = normalize_items(items)

    def _op():
        product_ids = sorted({pid for pid, _ in normalized})
        products = {
            p.id: p for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
        }
        missing = [pid for pid in product_ids if pid not in products]
        if missing:
            raise OrderError("Unknown products in order", details={"product_ids": missing})

        lines = []
        for product_id, quantity in normalized:
            product = products[product_id]
            lines.append({
                "product_id": product.id,
                "name": product.name,
                "barcode": product.barcode,
                "price": product.price,
                "quantity": quantity,
                "total": product.price * quantity,
            })

        held = HeldOrder(
            items=lines,
            customer_name=customer_name,
            customer_phone=customer_phone,
            total=sum(line["total"] for line in lines),
            notes=notes,
            created_at=utcnow(),
        )
        db.session.add(held)
        db.session.commit()
        return held

    held = run_with_retry(_op)
    current_app.logger.info("Cart held id=%s: %s line(s), total=%s", held.id, len(held.items), held.total)
    return held


def list_held_orders() -> list[HeldOrder]:
    return db.session.query(HeldOrder).order_by(HeldOrder.created_at.asc(), HeldOrder.id.asc()).all()


def get_held_order(held_id: int) -> HeldOrder | None:
    return db.session.get(HeldOrder, held_id)


def remove_held_order(held_id: int) -> bool:
    held = db.session.get(HeldOrder, held_id)
    if held is None:
        return False
    db.session.delete(held)
    db.session.commit()
    return True

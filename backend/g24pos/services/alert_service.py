# Overview: Threshold alerts derived from product stock and expiry state.

"""
Inventory alert rules (evaluated after every stock movement):

    LOW_STOCK     0 < stock <= min_stock          HIGH if stock <= min_stock * 0.5 else MEDIUM
    OUT_OF_STOCK  stock == 0                      CRITICAL
    EXPIRING      0 < days_until_expiry <= 7      HIGH if <= 3 days else MEDIUM
    EXPIRED       days_until_expiry <= 0          CRITICAL
    OVERSTOCK     max_stock set, stock > max      LOW

Alerts are idempotent while unread: a new alert is only inserted when no
unread alert with the same (type, product_id) exists. Reading an alert
re-arms its rule.
"""

from __future__ import annotations

import math
from datetime import datetime, time, timedelta

from flask import current_app

from ..extensions import db
from ..models import InventoryAlert, Product
from g24pos.time_utils import utcnow


PRIORITY_RANK = {"CRITICAL": 4, "HIGH": 3, "MEDIUM": 2, "LOW": 1}


class AlertNotFoundError(LookupError):
    pass


def days_until_expiry(product: Product, now: datetime | None = None) -> int | None:
    """Whole days (rounded up) until the product's expiry date at 00:00 UTC."""
    if product.expiry_date is None:
        return None
    now = now or utcnow()
    expires_at = datetime.combine(product.expiry_date, time.min)
    return math.ceil((expires_at - now).total_seconds() / 86400)


def _create_alert(
    *,
    type: str,
    product: Product,
    message: str,
    priority: str,
    action_required: str | None = None,
    now: datetime | None = None,
) -> InventoryAlert | None:
    existing = (
        db.session.query(InventoryAlert)
        .filter_by(type=type, product_id=product.id, is_read=False)
        .first()
    )
    if existing is not None:
        return None

    alert = InventoryAlert(
        type=type,
        product_id=product.id,
        product_name=product.name,
        message=message,
        priority=priority,
        action_required=action_required,
        is_read=False,
        created_at=now or utcnow(),
    )
    db.session.add(alert)
    db.session.flush()
    return alert


def check_product_alerts(product: Product, now: datetime | None = None) -> list[InventoryAlert]:
    """
    Evaluate all threshold rules for one product.

    Flushes new alerts into the current transaction; the caller commits.
    Returns the alerts that were actually created.
    """
    now = now or utcnow()
    created: list[InventoryAlert | None] = []

    if 0 < product.stock <= product.min_stock:
        created.append(_create_alert(
            type="LOW_STOCK",
            product=product,
            message=f"{product.name} is running low ({product.stock} left)",
            priority="HIGH" if product.stock <= product.min_stock * 0.5 else "MEDIUM",
            action_required="Reorder stock",
            now=now,
        ))

    if product.stock == 0:
        created.append(_create_alert(
            type="OUT_OF_STOCK",
            product=product,
            message=f"{product.name} is out of stock",
            priority="CRITICAL",
            action_required="Place an urgent order",
            now=now,
        ))

    days = days_until_expiry(product, now)
    if days is not None:
        warning_days = current_app.config["EXPIRY_WARNING_DAYS"]
        urgent_days = current_app.config["EXPIRY_URGENT_DAYS"]
        if 0 < days <= warning_days:
            created.append(_create_alert(
                type="EXPIRING",
                product=product,
                message=f"{product.name} expires in {days} day(s)",
                priority="HIGH" if days <= urgent_days else "MEDIUM",
                action_required="Run a promotion to sell quickly",
                now=now,
            ))
        elif days <= 0:
            created.append(_create_alert(
                type="EXPIRED",
                product=product,
                message=f"{product.name} has expired",
                priority="CRITICAL",
                action_required="Remove from shelf",
                now=now,
            ))

    if product.max_stock is not None and product.stock > product.max_stock:
        created.append(_create_alert(
            type="OVERSTOCK",
            product=product,
            message=f"{product.name} is overstocked ({product.stock}/{product.max_stock})",
            priority="LOW",
            action_required="Consider a promotion",
            now=now,
        ))

    return [a for a in created if a is not None]


def record_price_change_alert(product: Product, old_price: int) -> InventoryAlert | None:
    return _create_alert(
        type="PRICE_CHANGE",
        product=product,
        message=f"{product.name} price changed from {old_price} to {product.price}",
        priority="LOW",
        action_required="Update shelf labels",
    )


def get_alerts(*, unread_only: bool = False, priority: str | None = None) -> list[InventoryAlert]:
    """
    Alerts sorted CRITICAL > HIGH > MEDIUM > LOW; ties keep creation order.
    """
    q = db.session.query(InventoryAlert)
    if unread_only:
        q = q.filter(InventoryAlert.is_read.is_(False))
    if priority:
        q = q.filter(InventoryAlert.priority == priority)

    alerts = q.order_by(InventoryAlert.id.asc()).all()
    # sorted() is stable, so insertion order survives within a priority
    return sorted(alerts, key=lambda a: -PRIORITY_RANK.get(a.priority, 0))


def mark_alert_as_read(alert_id: int) -> InventoryAlert:
    alert = db.session.get(InventoryAlert, alert_id)
    if alert is None:
        raise AlertNotFoundError("Alert not found")
    if not alert.is_read:
        alert.is_read = True
        alert.read_at = utcnow()
        db.session.commit()
    return alert


def mark_all_alerts_as_read() -> int:
    now = utcnow()
    updated = (
        db.session.query(InventoryAlert)
        .filter(InventoryAlert.is_read.is_(False))
        .update({"is_read": True, "read_at": now}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def prune_alerts(*, retention_days: int) -> int:
    """
    Delete read alerts older than retention_days.

    Unread alerts are kept regardless of age.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = (
        db.session.query(InventoryAlert)
        .filter(InventoryAlert.is_read.is_(True), InventoryAlert.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted

# Overview: Read-side inventory analytics over orders, products and purchase orders.

"""
Inventory Analytics

Every figure is derived from the same tables the POS writes to; nothing is
cached or stored separately.

Sales figures only count lines of orders with status "completed".
Cost of goods sold uses the cost_price snapshot on each order line, so a
later cost change does not rewrite history.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Order, OrderLine, Product, PurchaseOrder
from g24pos.time_utils import to_utc_z, utcnow


class AnalyticsError(ValueError):
    pass


def _sales_by_product() -> dict[int, dict]:
    rows = (
        db.session.query(
            OrderLine.product_id,
            func.coalesce(func.sum(OrderLine.quantity), 0).label("units"),
            func.coalesce(func.sum(OrderLine.total), 0).label("revenue"),
            func.coalesce(func.sum(OrderLine.quantity * OrderLine.cost_price), 0).label("cost"),
        )
        .join(Order, Order.id == OrderLine.order_id)
        .filter(Order.status == "completed")
        .group_by(OrderLine.product_id)
        .all()
    )
    return {
        row.product_id: {
            "units": int(row.units or 0),
            "revenue": int(row.revenue or 0),
            "cost": int(row.cost or 0),
        }
        for row in rows
    }


def turnover_rate(units_sold: int, stock: int) -> float:
    """Share of available units (sold + on hand) that were sold."""
    available = units_sold + stock
    if available <= 0:
        return 0.0
    return round(units_sold / available, 4)


def _product_performance(products: list[Product], sales: dict[int, dict], now: datetime) -> list[dict]:
    rows = []
    for p in products:
        s = sales.get(p.id, {"units": 0, "revenue": 0, "cost": 0})
        since = p.last_restock_date or p.created_at
        rows.append({
            "product_id": p.id,
            "product_name": p.name,
            "category": p.category,
            "units_sold": s["units"],
            "revenue": s["revenue"],
            "profit": s["revenue"] - s["cost"],
            "current_stock": p.stock,
            "turnover_rate": turnover_rate(s["units"], p.stock),
            "days_in_stock": (now - since).days if since else None,
        })
    return rows


def get_top_selling_products(*, limit: int = 10) -> list[dict]:
    """Products ranked by revenue, highest first."""
    sales = _sales_by_product()
    products = db.session.query(Product).filter(Product.id.in_(list(sales))).all() if sales else []
    rows = _product_performance(products, sales, utcnow())
    rows.sort(key=lambda r: (-r["revenue"], -r["units_sold"], r["product_id"]))
    return rows[:limit]


def get_slow_moving_products(*, limit: int = 10) -> list[dict]:
    """Active products ranked by units sold, lowest first."""
    sales = _sales_by_product()
    products = db.session.query(Product).filter(Product.is_active.is_(True)).all()
    rows = _product_performance(products, sales, utcnow())
    rows.sort(key=lambda r: (r["units_sold"], -r["current_stock"], r["product_id"]))
    return rows[:limit]


def margin_percent(price: int, cost_price: int) -> float | None:
    if price <= 0:
        return None
    return round((price - cost_price) / price * 100, 2)


def get_category_breakdown() -> list[dict]:
    sales = _sales_by_product()
    groups: dict[str, list[Product]] = {}
    for p in db.session.query(Product).order_by(Product.category.asc(), Product.id.asc()).all():
        groups.setdefault(p.category or "", []).append(p)

    breakdown = []
    for category, products in groups.items():
        margins = [m for m in (margin_percent(p.price, p.cost_price) for p in products) if m is not None]
        units = sum(sales.get(p.id, {}).get("units", 0) for p in products)
        stock = sum(p.stock for p in products)
        breakdown.append({
            "category": category,
            "product_count": len(products),
            "total_value": sum(p.price * p.stock for p in products),
            "average_margin": round(sum(margins) / len(margins), 2) if margins else None,
            "turnover_rate": turnover_rate(units, stock),
        })
    breakdown.sort(key=lambda r: -r["total_value"])
    return breakdown


def get_supplier_performance() -> list[dict]:
    """
    Per-supplier purchasing figures.

    lead time = received_date - order_date (days), over RECEIVED orders
    on time   = received on or before expected_date, over RECEIVED orders
                that carry an expected_date

    Quality is not tracked anywhere, so quality_rating is always None.
    """
    product_counts = dict(
        db.session.query(Product.supplier, func.count(Product.id))
        .group_by(Product.supplier)
        .all()
    )
    pos_by_supplier: dict[str, list[PurchaseOrder]] = {}
    for po in db.session.query(PurchaseOrder).filter(PurchaseOrder.status != "CANCELLED").all():
        pos_by_supplier.setdefault(po.supplier_name, []).append(po)

    suppliers = sorted(set(product_counts) | set(pos_by_supplier))
    rows = []
    for supplier in suppliers:
        pos = pos_by_supplier.get(supplier, [])
        received = [po for po in pos if po.status == "RECEIVED" and po.received_date]
        lead_times = [(po.received_date - po.order_date).total_seconds() / 86400 for po in received]
        with_expected = [po for po in received if po.expected_date]
        on_time = [po for po in with_expected if po.received_date <= po.expected_date]
        rows.append({
            "supplier": supplier,
            "product_count": int(product_counts.get(supplier, 0)),
            "purchase_order_count": len(pos),
            "total_value": sum(po.total_amount for po in pos),
            "average_lead_time_days": round(sum(lead_times) / len(lead_times), 1) if lead_times else None,
            "on_time_delivery": round(len(on_time) / len(with_expected) * 100, 1) if with_expected else None,
            "quality_rating": None,
        })
    return rows


def _month_start(d: date, months_back: int) -> date:
    index = d.year * 12 + (d.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def get_monthly_trends(*, months: int = 12) -> list[dict]:
    """
    Calendar-month series, oldest first, ending with the current month.
    """
    if months <= 0:
        raise AnalyticsError("months must be positive")

    today = utcnow().date()
    first = _month_start(today, months - 1)
    buckets: dict[str, dict] = {}
    for i in range(months - 1, -1, -1):
        key = _month_start(today, i).strftime("%Y-%m")
        buckets[key] = {"month": key, "revenue": 0, "cost": 0, "profit": 0, "units_sold": 0, "new_products": 0}

    daily = (
        db.session.query(
            Order.order_date,
            func.coalesce(func.sum(OrderLine.total), 0).label("revenue"),
            func.coalesce(func.sum(OrderLine.quantity * OrderLine.cost_price), 0).label("cost"),
            func.coalesce(func.sum(OrderLine.quantity), 0).label("units"),
        )
        .join(OrderLine, OrderLine.order_id == Order.id)
        .filter(Order.status == "completed", Order.order_date >= first)
        .group_by(Order.order_date)
        .all()
    )
    for row in daily:
        bucket = buckets.get(row.order_date.strftime("%Y-%m"))
        if bucket is None:
            continue
        bucket["revenue"] += int(row.revenue or 0)
        bucket["cost"] += int(row.cost or 0)
        bucket["units_sold"] += int(row.units or 0)

    created = (
        db.session.query(Product.created_at)
        .filter(Product.created_at >= datetime.combine(first, datetime.min.time()))
        .all()
    )
    for (created_at,) in created:
        bucket = buckets.get(created_at.strftime("%Y-%m"))
        if bucket is not None:
            bucket["new_products"] += 1

    for bucket in buckets.values():
        bucket["profit"] = bucket["revenue"] - bucket["cost"]
    return list(buckets.values())


def get_inventory_analytics() -> dict:
    """Dashboard summary combining every projection above."""
    now = utcnow()
    horizon = (now + timedelta(days=current_app.config["EXPIRY_WARNING_DAYS"])).date()
    products = db.session.query(Product).all()
    sales = _sales_by_product()
    performance = _product_performance(products, sales, now)

    sold = [r for r in performance if r["units_sold"] > 0]
    average_turnover = round(sum(r["turnover_rate"] for r in sold) / len(sold), 4) if sold else 0.0

    return {
        "generated_at": to_utc_z(now),
        "total_products": len(products),
        "total_value": sum(p.price * p.stock for p in products),
        "total_cost_value": sum(p.cost_price * p.stock for p in products),
        "low_stock_items": sum(1 for p in products if 0 < p.stock <= p.min_stock),
        "out_of_stock_items": sum(1 for p in products if p.stock == 0),
        "expiring_items": sum(1 for p in products if p.expiry_date and p.expiry_date <= horizon),
        "average_turnover": average_turnover,
        "top_selling_products": get_top_selling_products(limit=10),
        "slow_moving_products": get_slow_moving_products(limit=10),
        "category_breakdown": get_category_breakdown(),
        "supplier_performance": get_supplier_performance(),
        "monthly_trends": get_monthly_trends(months=12),
    }

# Overview: Whole-store JSON export/import, reset and headline stats.

"""
Data Utilities

Export blob (pretty printed, 2-space indent):

    {
      "format_version": 1,
      "products": [...],
      "customers": [...],
      "orders": [...],
      "store_settings": {...},
      "exported_at": "2025-01-10T08:00:00Z"
    }

import_data() replaces the store wholesale in one transaction. Ids and
timestamps are kept so import_data(export_data()) is lossless for the
exported collections. Stock movements, alerts, purchase orders, bulk
operations and held carts reference the replaced products and are cleared.
Shifts and their drawer history are kept; clear_all_data() removes them
too. Document sequences are rebuilt from the imported order numbers so new
numbers never collide with imported ones.
"""

from __future__ import annotations

import json
import re

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    BulkOperation,
    CashDrawerEvent,
    Customer,
    DocumentSequence,
    HeldOrder,
    InventoryAlert,
    Order,
    OrderLine,
    Product,
    PurchaseOrder,
    PurchaseOrderLine,
    Shift,
    StockMovement,
)
from .settings_service import get_store_settings, reset_store_settings
from g24pos.time_utils import parse_iso_date, parse_iso_datetime, to_utc_z, today, utcnow


FORMAT_VERSION = 1

ORDER_NUMBER_RE = re.compile(r"^(DH|PO)(\d{8})(\d+)$")
SEQUENCE_TYPES = {"DH": "ORDER", "PO": "PURCHASE_ORDER"}


class DataImportError(ValueError):
    """Raised when an import blob cannot be parsed or applied."""


def _exportable(row: dict) -> dict:
    # version_id is a per-database write counter; imported rows restart at 1
    row.pop("version_id", None)
    return row


def export_data() -> str:
    settings = get_store_settings()
    blob = {
        "format_version": FORMAT_VERSION,
        "products": [
            _exportable(p.to_dict()) for p in db.session.query(Product).order_by(Product.id.asc()).all()
        ],
        "customers": [
            _exportable(c.to_dict()) for c in db.session.query(Customer).order_by(Customer.id.asc()).all()
        ],
        "orders": [o.to_dict() for o in db.session.query(Order).order_by(Order.id.asc()).all()],
        "store_settings": settings.to_dict(),
        "exported_at": to_utc_z(utcnow()),
    }
    return json.dumps(blob, indent=2, ensure_ascii=False)


def _wipe() -> None:
    # Children first; bulk deletes skip ORM cascades
    for model in (
        OrderLine,
        Order,
        PurchaseOrderLine,
        PurchaseOrder,
        StockMovement,
        InventoryAlert,
        BulkOperation,
        HeldOrder,
        DocumentSequence,
        Customer,
        Product,
    ):
        db.session.query(model).delete(synchronize_session=False)
    db.session.flush()
    # Imported rows reuse ids, so stale identities must not linger
    db.session.expunge_all()


def _product_from_dict(d: dict) -> Product:
    p = Product(
        id=d.get("id"),
        name=d["name"],
        barcode=d["barcode"],
        sku=d.get("sku"),
        description=d.get("description"),
        image_url=d.get("image_url"),
        price=int(d.get("price") or 0),
        cost_price=int(d.get("cost_price") or 0),
        stock=int(d.get("stock") or 0),
        min_stock=int(d.get("min_stock") or 0),
        max_stock=d.get("max_stock"),
        category=d.get("category") or "",
        subcategory=d.get("subcategory"),
        supplier=d.get("supplier") or "",
        supplier_code=d.get("supplier_code"),
        brand=d.get("brand"),
        tags=list(d.get("tags") or []),
        weight=d.get("weight"),
        expiry_date=parse_iso_date(d.get("expiry_date")),
        manufacture_date=parse_iso_date(d.get("manufacture_date")),
        is_active=d.get("is_active", True),
        last_restock_date=parse_iso_datetime(d.get("last_restock_date")),
        last_sold_date=parse_iso_datetime(d.get("last_sold_date")),
    )
    p.location = d.get("location")
    now = utcnow()
    p.created_at = parse_iso_datetime(d.get("created_at")) or now
    p.updated_at = parse_iso_datetime(d.get("updated_at")) or now
    return p


def _customer_from_dict(d: dict) -> Customer:
    return Customer(
        id=d.get("id"),
        name=d["name"],
        phone=d["phone"],
        email=d.get("email"),
        address=d.get("address"),
        loyalty_points=int(d.get("loyalty_points") or 0),
        total_spent=int(d.get("total_spent") or 0),
        visit_count=int(d.get("visit_count") or 0),
        last_visit=parse_iso_date(d.get("last_visit")),
        member_since=parse_iso_date(d.get("member_since")) or today(),
        tier=d.get("tier") or "Bronze",
    )


def _order_from_dict(d: dict, customer_ids: set[int]) -> Order:
    created_at = parse_iso_datetime(d.get("created_at")) or utcnow()
    order = Order(
        id=d.get("id"),
        order_number=d["order_number"],
        subtotal=int(d.get("subtotal") or 0),
        tax=int(d.get("tax") or 0),
        discount=int(d.get("discount") or 0),
        total=int(d.get("total") or 0),
        payment_method=d.get("payment_method") or "cash",
        customer_id=d.get("customer_id") if d.get("customer_id") in customer_ids else None,
        customer_name=d.get("customer_name"),
        customer_phone=d.get("customer_phone"),
        status=d.get("status") or "completed",
        cashier=d.get("cashier") or "",
        order_date=parse_iso_date(d.get("date")) or created_at.date(),
        created_at=created_at,
    )
    for i, item in enumerate(d.get("items") or []):
        quantity = int(item["quantity"])
        price = int(item.get("price") or 0)
        order.lines.append(OrderLine(
            line_number=i + 1,
            product_id=item.get("id", item.get("product_id")),
            name=item["name"],
            barcode=item.get("barcode") or "",
            price=price,
            cost_price=int(item.get("cost_price") or 0),
            quantity=quantity,
            total=int(item.get("total", price * quantity)),
        ))
    return order


def _rebuild_sequences(order_numbers: list[str]) -> None:
    highest: dict[tuple[str, str], int] = {}
    for number in order_numbers:
        m = ORDER_NUMBER_RE.match(number or "")
        if not m:
            continue
        key = (SEQUENCE_TYPES[m.group(1)], m.group(2))
        highest[key] = max(highest.get(key, 0), int(m.group(3)))

    for (document_type, period), last in highest.items():
        db.session.add(DocumentSequence(document_type=document_type, period=period, next_number=last + 1))
    db.session.flush()


def import_data(text: str) -> dict:
    """
    Replace all store data with the contents of an export blob.

    Missing collections import as empty, missing settings as defaults.
    "storeSettings" is accepted as an alias of "store_settings".

    Returns:
        Counts of imported records

    Raises:
        DataImportError: malformed JSON, a non-object blob or an invalid record
    """
    try:
        blob = json.loads(text)
    except (TypeError, ValueError):
        raise DataImportError("Invalid JSON data format")
    if not isinstance(blob, dict):
        raise DataImportError("Invalid JSON data format")

    products = blob.get("products") or []
    customers = blob.get("customers") or []
    orders = blob.get("orders") or []
    settings = blob.get("store_settings", blob.get("storeSettings")) or {}
    if not all(isinstance(c, list) for c in (products, customers, orders)) or not isinstance(settings, dict):
        raise DataImportError("Invalid JSON data format")

    try:
        _wipe()
        db.session.add_all([_product_from_dict(d) for d in products])
        customer_rows = [_customer_from_dict(d) for d in customers]
        db.session.add_all(customer_rows)
        db.session.flush()

        customer_ids = {c.id for c in customer_rows}
        order_rows = [_order_from_dict(d, customer_ids) for d in orders]
        db.session.add_all(order_rows)
        db.session.flush()

        _rebuild_sequences([o.order_number for o in order_rows])
        reset_store_settings(settings)
        db.session.commit()
    except DataImportError:
        db.session.rollback()
        raise
    except (KeyError, TypeError, ValueError) as e:
        db.session.rollback()
        raise DataImportError(f"Invalid record in import: {e}")
    except IntegrityError as e:
        db.session.rollback()
        raise DataImportError(f"Conflicting records in import: {e.orig}")
    except Exception:
        db.session.rollback()
        raise

    counts = {"products": len(products), "customers": len(customers), "orders": len(orders)}
    current_app.logger.info(
        "Imported %s products, %s customers, %s orders",
        counts["products"], counts["customers"], counts["orders"],
    )
    return counts


def clear_all_data() -> None:
    """Empty every collection, shift history included, and restore default settings."""
    try:
        _wipe()
        db.session.query(CashDrawerEvent).delete(synchronize_session=False)
        db.session.query(Shift).delete(synchronize_session=False)
        reset_store_settings()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info("All store data cleared")


def get_system_stats() -> dict:
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total), 0))
        .filter(Order.order_date == today())
        .scalar()
    )
    return {
        "total_products": db.session.query(func.count(Product.id)).scalar() or 0,
        "total_customers": db.session.query(func.count(Customer.id)).scalar() or 0,
        "total_orders": db.session.query(func.count(Order.id)).scalar() or 0,
        "low_stock_count": (
            db.session.query(func.count(Product.id))
            .filter(Product.stock <= Product.min_stock)
            .scalar() or 0
        ),
        "today_revenue": int(revenue or 0),
    }

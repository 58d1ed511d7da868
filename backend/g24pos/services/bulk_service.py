# Overview: Batched product updates with per-item progress tracking.

"""
Bulk Operations

A BulkOperation row is created in PROCESSING and then each product is
updated in its own transaction. A failed item is rolled back on its own and
recorded as "<product_id>: <error>"; successful items stay committed.

Final status:
    COMPLETED  no item failed
    FAILED     at least one item failed (processed_items still counts the
               successes)

With run_async=True the items are processed on a background thread that
pushes its own application context; the caller gets the PROCESSING record
back immediately.
"""

from __future__ import annotations

import threading
import time

from flask import current_app

from ..extensions import db
from ..models import BulkOperation, Product
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_product, validate_payload
from .inventory_service import add_stock_movement
from .products_service import PRODUCT_MUTABLE_FIELDS, update_product
from g24pos.time_utils import utcnow


BULK_OPERATION_TYPES = ("PRICE_UPDATE", "CATEGORY_CHANGE", "SUPPLIER_CHANGE", "STOCK_ADJUSTMENT")

BULK_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    extra_fields={"location"},
)


class BulkOperationError(ValueError):
    pass


class BulkOperationNotFoundError(LookupError):
    pass


def _clean_updates(updates: dict) -> dict:
    try:
        patch = validate_payload(model=Product, payload=updates, policy=BULK_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        raise BulkOperationError(str(e))
    return patch


def _validate_request(product_ids, updates, type: str) -> None:
    if type not in BULK_OPERATION_TYPES:
        raise BulkOperationError(f"type must be one of: {', '.join(BULK_OPERATION_TYPES)}")
    if not isinstance(product_ids, list) or not product_ids:
        raise BulkOperationError("product_ids must be a non-empty list")
    if not isinstance(updates, dict) or not updates:
        raise BulkOperationError("updates must be a non-empty object")

    if type == "STOCK_ADJUSTMENT":
        qty = updates.get("quantity")
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise BulkOperationError("STOCK_ADJUSTMENT requires an integer 'quantity'")
        return

    _clean_updates(updates)


def _apply_one(product_id: int, updates: dict, type: str) -> None:
    if type == "STOCK_ADJUSTMENT":
        add_stock_movement(
            product_id=product_id,
            type="ADJUSTMENT",
            quantity=updates["quantity"],
            reason=updates.get("reason") or "Bulk stock adjustment",
            reference=updates.get("reference"),
        )
    else:
        update_product(product_id=product_id, patch=_clean_updates(updates))


def _process(op_id: int) -> BulkOperation:
    op = db.session.get(BulkOperation, op_id)
    delay = current_app.config.get("BULK_OPERATION_DELAY_SECONDS", 0)
    errors: list[str] = []
    processed = 0

    for product_id in list(op.product_ids):
        try:
            _apply_one(product_id, op.updates, op.type)
            processed += 1
        except Exception as e:
            # update paths roll back their own transaction before re-raising
            db.session.rollback()
            errors.append(f"{product_id}: {e}")

        op = db.session.get(BulkOperation, op_id)
        op.processed_items = processed
        op.failed_items = len(errors)
        op.errors = list(errors)
        db.session.commit()

        if delay:
            time.sleep(delay)

    op.status = "FAILED" if errors else "COMPLETED"
    op.completed_at = utcnow()
    db.session.commit()

    current_app.logger.info(
        "Bulk operation %s %s: %s processed, %s failed",
        op.id, op.status, op.processed_items, op.failed_items,
    )
    return op


def _run_in_background(app, op_id: int) -> threading.Thread:
    def worker():
        with app.app_context():
            try:
                _process(op_id)
            except Exception:
                app.logger.exception("Bulk operation %s crashed", op_id)
                db.session.rollback()
                op = db.session.get(BulkOperation, op_id)
                if op is not None:
                    op.status = "FAILED"
                    op.completed_at = utcnow()
                    db.session.commit()
            finally:
                db.session.remove()

    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    return thread


def bulk_update_products(
    *,
    product_ids: list[int],
    updates: dict,
    type: str = "PRICE_UPDATE",
    run_async: bool = False,
) -> BulkOperation:
    """
    Apply the same update to many products.

    Raises:
        BulkOperationError: invalid type, empty product list or unknown fields
    """
    _validate_request(product_ids, updates, type)

    op = BulkOperation(
        type=type,
        status="PROCESSING",
        total_items=len(product_ids),
        processed_items=0,
        failed_items=0,
        errors=[],
        product_ids=list(product_ids),
        updates=dict(updates),
        started_at=utcnow(),
    )
    db.session.add(op)
    db.session.commit()

    if run_async:
        _run_in_background(current_app._get_current_object(), op.id)
        return op

    return _process(op.id)


def get_bulk_operation(op_id: int) -> BulkOperation:
    op = db.session.get(BulkOperation, op_id)
    if op is None:
        raise BulkOperationNotFoundError("Bulk operation not found")
    return op


def list_bulk_operations() -> list[BulkOperation]:
    return db.session.query(BulkOperation).order_by(BulkOperation.started_at.desc(), BulkOperation.id.desc()).all()

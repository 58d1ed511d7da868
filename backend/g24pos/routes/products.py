# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/g24pos/routes/products.py
"""
Product catalog routes.

STOCK: "stock" is accepted on create (initial quantity) and update (target
quantity), but the service posts it as a stock movement rather than writing
the column. POST /<id>/stock applies a signed delta floored at zero.
"""
from flask import Blueprint, current_app, request
from ..services.products_service import (
    PRODUCT_MUTABLE_FIELDS,
    add_product,
    delete_product,
    find_product_by_barcode,
    get_low_stock_products,
    get_product,
    list_products,
    update_product,
    update_stock,
)
from ..services.inventory_service import InventoryError, ProductNotFoundError
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS | {"stock"},
    required_on_create={"name", "barcode", "price"},
    extra_fields={"location"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    return {"items": [p.to_dict() for p in list_products()]}


@products_bp.get("/low-stock")
def low_stock_route():
    """Products at or below their minimum stock level."""
    return {"items": [p.to_dict() for p in get_low_stock_products()]}


@products_bp.get("/barcode/<string:barcode>")
def product_by_barcode_route(barcode: str):
    product = find_product_by_barcode(barcode)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    product = get_product(product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    The optional "stock" field becomes an "Initial stock" IN movement.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = add_product(patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValueError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Failed to create product"}, 500

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = update_product(product_id=product_id, patch=patch)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except (ValidationError, InventoryError) as e:
        return {"error": str(e)}, 400

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    if not delete_product(product_id=product_id):
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200


@products_bp.post("/<int:product_id>/stock")
def update_stock_route(product_id: int):
    """
    Apply a signed stock delta.

    Body: {"delta": int}. The result is floored at zero.
    """
    payload = request.get_json(silent=True) or {}
    delta = payload.get("delta")
    if isinstance(delta, bool) or not isinstance(delta, int):
        return {"error": "delta must be an integer"}, 400

    try:
        product = update_stock(product_id=product_id, delta=delta)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404

    return product.to_dict(), 200

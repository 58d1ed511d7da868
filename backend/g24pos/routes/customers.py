# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, request
from ..services.customers_service import (
    CUSTOMER_MUTABLE_FIELDS,
    CustomerNotFoundError,
    add_customer,
    delete_customer,
    find_customer_by_phone,
    get_customer,
    list_customers,
    update_customer,
)
from ..models import Customer
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_customer,
    ValidationError,
    ConflictError,
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=CUSTOMER_MUTABLE_FIELDS,
    required_on_create={"name", "phone"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    return {"items": [c.to_dict() for c in list_customers()]}


@customers_bp.get("/phone/<string:phone>")
def customer_by_phone_route(phone: str):
    customer = find_customer_by_phone(phone)
    if customer is None:
        return {"error": "Customer not found"}, 404
    return customer.to_dict()


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    customer = get_customer(customer_id)
    if customer is None:
        return {"error": "Customer not found"}, 404
    return customer.to_dict()


@customers_bp.post("")
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = add_customer(patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Failed to create customer"}, 500

    return created.to_dict(), 201


@customers_bp.put("/<int:customer_id>")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = update_customer(customer_id=customer_id, patch=patch)
    except CustomerNotFoundError:
        return {"error": "Customer not found"}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return updated.to_dict(), 200


@customers_bp.delete("/<int:customer_id>")
def delete_customer_route(customer_id: int):
    if not delete_customer(customer_id=customer_id):
        return {"error": "Customer not found"}, 404
    return {"ok": True}, 200

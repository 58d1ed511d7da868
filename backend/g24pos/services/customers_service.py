# Overview: Service-layer operations for customers; CRUD and phone lookup.

from __future__ import annotations

from ..extensions import db
from ..models import Customer
from ..validation import ConflictError
from .concurrency import run_with_retry
from g24pos.time_utils import today

CUSTOMER_MUTABLE_FIELDS = {
    "name", "phone", "email", "address",
    "loyalty_points", "total_spent", "visit_count", "last_visit", "tier",
}


class CustomerNotFoundError(LookupError):
    pass


def _ensure_unique_phone(phone: str, *, exclude_id: int | None = None) -> None:
    q = db.session.query(Customer).filter(Customer.phone == phone)
    if exclude_id is not None:
        q = q.filter(Customer.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Phone number already registered.")


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(customer_id: int) -> Customer | None:
    return db.session.get(Customer, customer_id)


def find_customer_by_phone(phone: str) -> Customer | None:
    if not phone:
        return None
    return db.session.query(Customer).filter_by(phone=phone.strip()).first()


def add_customer(*, patch: dict) -> Customer:
    """
    Register a customer. member_since is set to today.

    Raises:
        ConflictError: phone already belongs to another customer
    """
    def _op():
        _ensure_unique_phone(patch["phone"])
        c = Customer(member_since=today())
        for k, v in patch.items():
            if k in CUSTOMER_MUTABLE_FIELDS:
                setattr(c, k, v)
        db.session.add(c)
        db.session.commit()
        return c

    return run_with_retry(_op)


def update_customer(*, customer_id: int, patch: dict) -> Customer:
    def _op():
        c = db.session.get(Customer, customer_id)
        if c is None:
            raise CustomerNotFoundError("Customer not found")
        if "phone" in patch and patch["phone"] != c.phone:
            _ensure_unique_phone(patch["phone"], exclude_id=c.id)
        for k, v in patch.items():
            if k in CUSTOMER_MUTABLE_FIELDS:
                setattr(c, k, v)
        db.session.commit()
        return c

    return run_with_retry(_op)


def delete_customer(*, customer_id: int) -> bool:
    c = db.session.get(Customer, customer_id)
    if c is None:
        return False
    db.session.delete(c)
    db.session.commit()
    return True

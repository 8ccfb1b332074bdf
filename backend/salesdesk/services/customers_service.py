# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..errors import Conflict, NotFound
from ..models import Customer, Sale, User
from .concurrency import unit_of_work

# total_purchases is owned by sales_service and never patched directly
CUSTOMER_MUTABLE_FIELDS = {"name", "email", "phone", "address", "customer_type"}


def _ensure_email_available(email: str | None, exclude_id: int | None = None) -> None:
    if not email:
        return
    query = db.session.query(Customer.id).filter(Customer.email == email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first() is not None:
        raise Conflict("Email already exists")


def list_customers() -> list[dict]:
    """All customers, newest first, with creator username and sale count."""
    rows = (
        db.session.query(Customer, User.username, func.count(Sale.id))
        .outerjoin(User, Customer.created_by == User.id)
        .outerjoin(Sale, Sale.customer_id == Customer.id)
        .group_by(Customer.id, User.username)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .all()
    )
    items = []
    for customer, username, sale_count in rows:
        item = customer.to_dict()
        item["created_by_username"] = username
        item["total_sales"] = int(sale_count or 0)
        items.append(item)
    return items


def create_customer(*, patch: dict, actor_id: int) -> Customer:
    _ensure_email_available(patch.get("email"))

    customer = Customer(customer_type="individual", total_purchases=0, created_by=actor_id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)

    with unit_of_work():
        db.session.add(customer)
    return customer


def update_customer(*, customer_id: int, patch: dict) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFound("Customer not found")

    if patch.get("email") and patch["email"] != customer.email:
        _ensure_email_available(patch["email"], exclude_id=customer.id)

    with unit_of_work():
        for k, v in patch.items():
            if k in CUSTOMER_MUTABLE_FIELDS:
                setattr(customer, k, v)
    return customer


def delete_customer(*, customer_id: int) -> None:
    """
    Hard-delete a customer with no sales history.

    Raises:
        NotFound: customer absent
        Conflict: at least one sale is attributed to the customer
    """
    with unit_of_work():
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise NotFound("Customer not found")

        has_sales = db.session.query(Sale.id).filter(Sale.customer_id == customer_id).first()
        if has_sales is not None:
            raise Conflict("Cannot delete customer that has sales history")

        db.session.delete(customer)

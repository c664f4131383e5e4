# Overview: Service-layer operations for customers and their outstanding dues.

from __future__ import annotations

import math

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, InvalidInputError
from ..models import Bill, Customer
from .concurrency import unit_of_work
from .tenant_service import get_owned, owned_query, require_owned


DUPLICATE_PHONE = "A customer with this phone number already exists."

MAX_PER_PAGE = 100


def _phone_taken(owner_id: int, phone: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Customer.id).filter(Customer.owner_id == owner_id, Customer.phone == phone)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return query.first() is not None


def create_customer(owner_id: int, patch: dict) -> Customer:
    if _phone_taken(owner_id, patch["phone"]):
        raise ConflictError(DUPLICATE_PHONE, details={"phone": patch["phone"]})

    customer = Customer(
        owner_id=owner_id,
        name=patch["name"],
        phone=patch["phone"],
        whatsapp=patch.get("whatsapp") or "",
        address=patch.get("address") or "",
    )
    try:
        with unit_of_work():
            db.session.add(customer)
    except IntegrityError:
        # Unique (owner_id, phone) caught a concurrent insert
        raise ConflictError(DUPLICATE_PHONE, details={"phone": patch["phone"]})
    return customer


def find_customer(owner_id: int, customer_id) -> Customer | None:
    return get_owned(Customer, owner_id, customer_id)


def get_customer(owner_id: int, customer_id) -> Customer:
    return require_owned(Customer, owner_id, customer_id, "Customer")


def update_customer(owner_id: int, customer_id: int, patch: dict) -> Customer:
    customer = get_customer(owner_id, customer_id)
    if "phone" in patch and _phone_taken(owner_id, patch["phone"], exclude_id=customer.id):
        raise ConflictError(DUPLICATE_PHONE, details={"phone": patch["phone"]})
    try:
        with unit_of_work():
            for key, value in patch.items():
                setattr(customer, key, value)
    except IntegrityError:
        raise ConflictError(DUPLICATE_PHONE, details={"phone": patch.get("phone")})
    return customer


def delete_customer(owner_id: int, customer_id: int) -> None:
    """Soft delete. Refused while the customer owns any non-deleted bill."""
    customer = get_customer(owner_id, customer_id)
    bill_count = owned_query(Bill, owner_id).filter(Bill.customer_id == customer.id).count()
    if bill_count > 0:
        raise ConflictError(
            f"Cannot delete customer with {bill_count} bill(s). Delete bills first.",
            details={"bill_count": bill_count},
        )
    with unit_of_work():
        customer.is_deleted = True


def sum_outstanding_due(owner_id: int, customer_id: int) -> int:
    total = (
        owned_query(Bill, owner_id)
        .with_entities(func.coalesce(func.sum(Bill.due_cents), 0))
        .filter(Bill.customer_id == customer_id)
        .scalar()
    )
    return int(total or 0)


def customer_summary(owner_id: int, customer_id: int) -> dict:
    """Customer record with its bills (newest first) and billing totals."""
    customer = get_customer(owner_id, customer_id)
    bills = (
        owned_query(Bill, owner_id)
        .filter(Bill.customer_id == customer.id)
        .order_by(Bill.created_at.desc(), Bill.id.desc())
        .all()
    )
    return {
        "customer": customer.to_dict(),
        "bills": [b.to_dict(include_lines=False) for b in bills],
        "summary": {
            "total_bills": len(bills),
            "total_billed_cents": sum(b.total_cents for b in bills),
            "total_received_cents": sum(b.received_cents for b in bills),
            "total_due_cents": sum(b.due_cents for b in bills),
        },
    }


def search_customers(owner_id: int, q: str) -> list[Customer]:
    q = (q or "").strip()
    if not q:
        raise InvalidInputError("Search query is required")
    pattern = f"%{q}%"
    return (
        owned_query(Customer, owner_id)
        .filter(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .all()
    )


def list_customers_with_due(owner_id: int, page: int = 1, per_page: int = 5) -> dict:
    """
    Paginated customers, each with its outstanding due, highest due first.

    Ordering happens in SQL so pagination is stable across pages.
    """
    page = max(page or 1, 1)
    per_page = min(max(per_page or 1, 1), MAX_PER_PAGE)

    due_subq = (
        db.session.query(
            Bill.customer_id.label("customer_id"),
            func.sum(Bill.due_cents).label("total_due"),
        )
        .filter(Bill.owner_id == owner_id, Bill.is_deleted.is_(False))
        .group_by(Bill.customer_id)
        .subquery()
    )
    total_due = func.coalesce(due_subq.c.total_due, 0)

    base = owned_query(Customer, owner_id)
    total_count = base.count()

    rows = (
        base.outerjoin(due_subq, due_subq.c.customer_id == Customer.id)
        .with_entities(Customer, total_due.label("total_due"))
        .order_by(total_due.desc(), Customer.id.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    total_pages = math.ceil(total_count / per_page) if total_count else 0
    customers = []
    for customer, due in rows:
        data = customer.to_dict()
        data["total_due_cents"] = int(due or 0)
        customers.append(data)

    return {
        "customers": customers,
        "pagination": {
            "current_page": page,
            "per_page": per_page,
            "total_pages": total_pages,
            "total_count": total_count,
            "has_more": page < total_pages,
        },
    }

# Overview: Service-layer operations for billing; bill creation, payments and due allocation.

"""
Billing Engine

Turns a cart of heterogeneous lines (generic stock, serialized units,
services) into a bill, then records payments against it.

DESIGN PRINCIPLES:
- One transaction per bill: stock decrements, serial flips, the bill insert
  and work order completion commit together or not at all
- Fail fast: the first failing line aborts the bill; later lines are never read
- Snapshot pricing: each line captures the catalog cost at billing time
- Payment state (received, due, status) is always recomputed from the
  pure helpers in allocation.py
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InvalidInputError, NotFoundError
from ..models import Bill, BillLine, BillPayment, Customer
from ..models.billing import LINE_GENERIC, LINE_SERIALIZED, LINE_SERVICE, LINE_TYPES, PAYMENT_METHODS
from ..models.catalog import ITEM_GENERIC, ITEM_SERIALIZED
from ..money import format_cents
from ..validation import coerce_int
from . import catalog_service, work_order_service
from .allocation import allocate_fifo, due_amount, payment_status
from .concurrency import lock_for_update, run_with_retry
from .document_service import DOC_BILL, next_document_number
from .tenant_service import owned_query, require_owned


# =============================================================================
# CART RESOLUTION
# =============================================================================

def _normalize_cart(lines) -> list[dict]:
    if not isinstance(lines, list) or not lines:
        raise InvalidInputError("Bill must contain at least one line")

    cart = []
    for index, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise InvalidInputError("Each bill line must be an object", details={"line": index})
        line_type = raw.get("line_type")
        if line_type not in LINE_TYPES:
            raise InvalidInputError(
                f"line_type must be one of {', '.join(LINE_TYPES)}",
                details={"line": index, "line_type": line_type},
            )
        if raw.get("item_ref") in (None, ""):
            raise InvalidInputError("item_ref is required", details={"line": index})

        qty = raw.get("qty")
        if line_type == LINE_SERIALIZED:
            qty = 1
        elif qty in (None, ""):
            if line_type == LINE_GENERIC:
                raise InvalidInputError("qty is required for generic lines", details={"line": index})
            qty = 1
        else:
            qty = coerce_int(qty, "qty")
            if qty <= 0:
                raise InvalidInputError("qty must be > 0", details={"line": index})

        serial_no = (raw.get("serial_no") or "").strip() or None
        if line_type == LINE_SERIALIZED and serial_no is None:
            raise InvalidInputError("serial_no is required for serialized lines", details={"line": index})

        cart.append({
            "line_type": line_type,
            "item_ref": raw["item_ref"],
            "qty": qty,
            "serial_no": serial_no,
        })
    return cart


def _resolve_line(owner_id: int, position: int, line: dict) -> BillLine:
    """Validate one cart line against the catalog and apply its stock effect."""
    line_type = line["line_type"]
    qty = line["qty"]

    if line_type == LINE_SERVICE:
        service = catalog_service.find_service(owner_id, line["item_ref"])
        if service is None:
            raise NotFoundError(f"Service not found: {line['item_ref']}", details={"line": position})
        return BillLine(
            position=position,
            line_type=LINE_SERVICE,
            item_ref=service.id,
            name=service.name,
            qty=qty,
            unit_price_cents=service.price_cents,
            purchase_price_cents_at_sale=0,
            line_amount_cents=service.price_cents * qty,
        )

    item_type = ITEM_SERIALIZED if line_type == LINE_SERIALIZED else ITEM_GENERIC
    item = catalog_service.find_item(owner_id, line["item_ref"], item_type=item_type)
    if item is None:
        raise NotFoundError(f"Item not found: {line['item_ref']}", details={"line": position})

    if line_type == LINE_SERIALIZED:
        catalog_service.mark_serial_sold(item.id, line["serial_no"])
    else:
        catalog_service.decrement_stock(owner_id, item.id, qty)

    return BillLine(
        position=position,
        line_type=line_type,
        item_ref=item.id,
        name=item.name,
        serial_no=line["serial_no"],
        qty=qty,
        unit_price_cents=item.sale_price_cents,
        purchase_price_cents_at_sale=item.purchase_price_cents,
        line_amount_cents=item.sale_price_cents * qty,
    )


def _apply_payment(bill: Bill, amount_cents: int, note: str | None) -> None:
    bill.payments.append(BillPayment(amount_cents=amount_cents, note=note or ""))
    bill.received_cents += amount_cents
    bill.due_cents = due_amount(bill.received_cents, bill.total_cents)
    bill.status = payment_status(bill.received_cents, bill.total_cents)


# =============================================================================
# BILL CREATION
# =============================================================================

def create_bill(
    owner_id: int,
    customer_id,
    lines,
    *,
    discount_cents=0,
    initial_payment_cents=0,
    payment_method: str = "cash",
    work_order_id=None,
) -> Bill:
    """
    Create a bill from cart lines.

    Every stock decrement and serial flip is part of the same transaction as
    the bill insert; any failure (missing item, insufficient stock,
    unavailable serial, bad discount) rolls all of them back.

    Raises:
        NotFoundError: customer, item, service or work order outside the owner's scope
        InsufficientStockError: a generic line asks for more than is in stock
        ConflictError: a serial is not available, or the work order already has a bill
        InvalidInputError: malformed cart, discount or payment
    """
    cart = _normalize_cart(lines)

    discount_cents = coerce_int(discount_cents or 0, "discount_cents")
    if discount_cents < 0:
        raise InvalidInputError("discount_cents must be >= 0")
    initial_payment_cents = coerce_int(initial_payment_cents or 0, "initial_payment_cents")
    if initial_payment_cents < 0:
        raise InvalidInputError("initial_payment_cents must be >= 0")

    payment_method = payment_method or "cash"
    if payment_method not in PAYMENT_METHODS:
        raise InvalidInputError(
            f"payment_method must be one of {', '.join(PAYMENT_METHODS)}",
            details={"payment_method": payment_method},
        )

    def _op():
        customer = require_owned(Customer, owner_id, customer_id, "Customer")

        bill_lines = [_resolve_line(owner_id, position, line) for position, line in enumerate(cart)]

        subtotal = sum(line.line_amount_cents for line in bill_lines)
        if discount_cents > subtotal:
            raise InvalidInputError(
                "Discount cannot exceed subtotal",
                details={"discount_cents": discount_cents, "subtotal_cents": subtotal},
            )
        total = subtotal - discount_cents

        bill = Bill(
            owner_id=owner_id,
            customer_id=customer.id,
            bill_number=next_document_number(owner_id=owner_id, document_type=DOC_BILL),
            subtotal_cents=subtotal,
            discount_cents=discount_cents,
            total_cents=total,
            received_cents=0,
            due_cents=total,
            status=payment_status(0, total),
            payment_method=payment_method,
        )
        bill.lines = bill_lines
        if initial_payment_cents > 0:
            _apply_payment(bill, initial_payment_cents, "Initial payment")
        db.session.add(bill)
        db.session.flush()

        for line in bill_lines:
            if line.line_type == LINE_SERIALIZED:
                catalog_service.annotate_serial_sale(
                    line.item_ref,
                    line.serial_no,
                    customer_name=customer.name,
                    bill_number=bill.bill_number,
                )

        if work_order_id not in (None, ""):
            work_order = work_order_service.on_bill_created(owner_id, work_order_id, bill.id)
            bill.work_order_id = work_order.id

        db.session.commit()
        return bill

    bill = run_with_retry(_op)
    current_app.logger.info(
        "Bill %s created for owner %s: total=%s received=%s status=%s",
        bill.bill_number, owner_id, bill.total_cents, bill.received_cents, bill.status,
    )
    return bill


# =============================================================================
# PAYMENTS
# =============================================================================

def _require_positive_amount(amount_cents) -> int:
    if amount_cents in (None, ""):
        raise InvalidInputError("Valid payment amount is required")
    amount_cents = coerce_int(amount_cents, "amount_cents")
    if amount_cents <= 0:
        raise InvalidInputError("Valid payment amount is required", details={"amount_cents": amount_cents})
    return amount_cents


def record_payment(owner_id: int, bill_id, amount_cents, note: str | None = None) -> Bill:
    """Add a payment to one bill. Overpayment marks it paid with zero due."""
    amount_cents = _require_positive_amount(amount_cents)

    def _op():
        bill = lock_for_update(
            owned_query(Bill, owner_id).filter(Bill.id == coerce_int(bill_id, "bill_id"))
        ).first()
        if bill is None:
            raise NotFoundError("Bill not found", details={"id": bill_id})
        _apply_payment(bill, amount_cents, note)
        db.session.commit()
        return bill

    bill = run_with_retry(_op)
    current_app.logger.info(
        "Payment of %s recorded on bill %s (status=%s, due=%s)",
        amount_cents, bill.bill_number, bill.status, bill.due_cents,
    )
    return bill


def pay_customer_due(owner_id: int, customer_id, amount_cents, note: str | None = None) -> dict:
    """
    Spread one payment across a customer's open bills, oldest first.

    The cap (amount <= total outstanding due) is checked before any bill is
    touched, so the allocation either applies in full or not at all.

    Returns:
        {"bills": [touched bills], "total_applied_cents": int}
    """
    amount_cents = _require_positive_amount(amount_cents)

    def _op():
        customer = require_owned(Customer, owner_id, customer_id, "Customer")
        open_bills = lock_for_update(
            owned_query(Bill, owner_id)
            .filter(Bill.customer_id == customer.id, Bill.due_cents > 0)
            .order_by(Bill.created_at.asc(), Bill.id.asc())
        ).all()
        if not open_bills:
            raise InvalidInputError(
                "No pending bills found for this customer",
                details={"customer_id": customer.id},
            )

        allocations = allocate_fifo([b.due_cents for b in open_bills], amount_cents)

        touched = []
        for bill, applied in zip(open_bills, allocations):
            if applied == 0:
                break
            _apply_payment(bill, applied, note)
            touched.append(bill)
        db.session.commit()
        return touched

    touched = run_with_retry(_op)
    current_app.logger.info(
        "Payment of %s distributed across %d bill(s) for customer %s",
        format_cents(amount_cents), len(touched), customer_id,
    )
    return {"bills": touched, "total_applied_cents": amount_cents}


# =============================================================================
# READ ACCESSORS
# =============================================================================

def get_bill(owner_id: int, bill_id) -> Bill:
    return require_owned(Bill, owner_id, bill_id, "Bill")


def list_bills(owner_id: int) -> list[dict]:
    """All bills, newest first, each with the customer's name and phone."""
    bills = owned_query(Bill, owner_id).order_by(Bill.created_at.desc(), Bill.id.desc()).all()
    result = []
    for bill in bills:
        data = bill.to_dict(include_lines=False)
        data["customer"] = {"id": bill.customer.id, "name": bill.customer.name, "phone": bill.customer.phone}
        result.append(data)
    return result


def list_customer_bills(owner_id: int, customer_id) -> list[Bill]:
    customer = require_owned(Customer, owner_id, customer_id, "Customer")
    return (
        owned_query(Bill, owner_id)
        .filter(Bill.customer_id == customer.id)
        .order_by(Bill.created_at.desc(), Bill.id.desc())
        .all()
    )

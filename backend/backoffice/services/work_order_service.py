# Overview: Service-layer operations for work orders (scheduled service visits).

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..extensions import db
from ..errors import ConflictError, InvalidInputError
from ..models import Bill, Customer, WorkOrder
from ..models.work_orders import WORK_ORDER_COMPLETED, WORK_ORDER_PENDING
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .document_service import DOC_WORK_ORDER, next_document_number
from .tenant_service import owned_query, require_owned


def _validate_schedule_date(schedule_date: date, today: date | None = None) -> None:
    today = today or utcnow().date()
    if schedule_date < today:
        raise InvalidInputError("Schedule date cannot be in the past")


def create_work_order(
    owner_id: int,
    customer_id: int,
    *,
    note: str,
    schedule_date: date,
    schedule_time: str | None = None,
    today: date | None = None,
) -> WorkOrder:
    note = (note or "").strip()
    if not note:
        raise InvalidInputError("note is required")
    if schedule_date is None:
        raise InvalidInputError("schedule_date is required")
    _validate_schedule_date(schedule_date, today)

    def _op():
        customer = require_owned(Customer, owner_id, customer_id, "Customer")
        work_order = WorkOrder(
            owner_id=owner_id,
            customer_id=customer.id,
            work_order_number=next_document_number(owner_id=owner_id, document_type=DOC_WORK_ORDER),
            note=note,
            schedule_date=schedule_date,
            schedule_time=schedule_time,
            status=WORK_ORDER_PENDING,
        )
        db.session.add(work_order)
        db.session.commit()
        return work_order

    return run_with_retry(_op)


def get_work_order(owner_id: int, work_order_id) -> WorkOrder:
    return require_owned(WorkOrder, owner_id, work_order_id, "Work order")


def pending_query(owner_id: int):
    """Pending work orders, earliest schedule first (untimed visits lead their day)."""
    return (
        owned_query(WorkOrder, owner_id)
        .filter(WorkOrder.status == WORK_ORDER_PENDING)
        .order_by(
            WorkOrder.schedule_date.asc(),
            func.coalesce(WorkOrder.schedule_time, "").asc(),
            WorkOrder.id.asc(),
        )
    )


def list_pending(owner_id: int) -> list[WorkOrder]:
    return pending_query(owner_id).all()


def count_pending(owner_id: int) -> int:
    return owned_query(WorkOrder, owner_id).filter(WorkOrder.status == WORK_ORDER_PENDING).count()


def list_completed(owner_id: int) -> list[WorkOrder]:
    return (
        owned_query(WorkOrder, owner_id)
        .filter(WorkOrder.status == WORK_ORDER_COMPLETED)
        .order_by(WorkOrder.completed_at.desc(), WorkOrder.id.desc())
        .all()
    )


def list_for_customer(owner_id: int, customer_id) -> list[WorkOrder]:
    customer = require_owned(Customer, owner_id, customer_id, "Customer")
    return (
        owned_query(WorkOrder, owner_id)
        .filter(WorkOrder.customer_id == customer.id)
        .order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc())
        .all()
    )


def update_work_order(owner_id: int, work_order_id: int, patch: dict, today: date | None = None) -> WorkOrder:
    """Edit note and schedule. Rescheduling re-arms the reminder."""
    work_order = get_work_order(owner_id, work_order_id)
    if work_order.status == WORK_ORDER_COMPLETED:
        raise ConflictError("Completed work orders cannot be edited")

    if "note" in patch:
        note = (patch["note"] or "").strip()
        if not note:
            raise InvalidInputError("note cannot be blank")
        patch["note"] = note
    if "schedule_date" in patch:
        if patch["schedule_date"] is None:
            raise InvalidInputError("schedule_date cannot be null")
        _validate_schedule_date(patch["schedule_date"], today)

    rescheduled = any(
        key in patch and patch[key] != getattr(work_order, key)
        for key in ("schedule_date", "schedule_time")
    )

    with unit_of_work():
        for key, value in patch.items():
            setattr(work_order, key, value)
        if rescheduled:
            work_order.reminder_sent = False
    return work_order


def mark_completed(owner_id: int, work_order_id: int) -> WorkOrder:
    def _op():
        work_order = lock_for_update(
            owned_query(WorkOrder, owner_id).filter(WorkOrder.id == work_order_id)
        ).first()
        if work_order is None:
            require_owned(WorkOrder, owner_id, work_order_id, "Work order")
        if work_order.status == WORK_ORDER_COMPLETED:
            raise InvalidInputError("Work order is already completed")
        work_order.status = WORK_ORDER_COMPLETED
        work_order.completed_at = utcnow()
        db.session.commit()
        return work_order

    return run_with_retry(_op)


def delete_work_order(owner_id: int, work_order_id: int) -> None:
    work_order = get_work_order(owner_id, work_order_id)
    if work_order.bill_id is not None:
        raise ConflictError(
            "Work order is linked to a bill and cannot be deleted",
            details={"bill_id": work_order.bill_id},
        )
    with unit_of_work():
        db.session.delete(work_order)


def on_bill_created(owner_id: int, work_order_id: int, bill_id: int) -> WorkOrder:
    """
    Complete a work order because a bill now covers it.

    Runs inside the caller's transaction; does not commit.
    """
    work_order = get_work_order(owner_id, work_order_id)
    bill = require_owned(Bill, owner_id, bill_id, "Bill")
    if bill.customer_id != work_order.customer_id:
        raise InvalidInputError(
            "Bill and work order belong to different customers",
            details={"work_order_id": work_order.id, "bill_id": bill.id},
        )
    if work_order.bill_id is not None and work_order.bill_id != bill_id:
        raise ConflictError(
            f"Work order {work_order.work_order_number} is already linked to another bill",
            details={"work_order_id": work_order.id, "bill_id": work_order.bill_id},
        )
    work_order.bill_id = bill_id
    work_order.status = WORK_ORDER_COMPLETED
    work_order.completed_at = work_order.completed_at or utcnow()
    return work_order


def link_bill(owner_id: int, work_order_id: int, bill_id: int) -> WorkOrder:
    """Attach an existing bill to a work order and complete it."""
    def _op():
        bill = require_owned(Bill, owner_id, bill_id, "Bill")
        work_order = get_work_order(owner_id, work_order_id)
        if bill.work_order_id is not None and bill.work_order_id != work_order.id:
            raise ConflictError("Bill is already linked to another work order")
        on_bill_created(owner_id, work_order.id, bill.id)
        bill.work_order_id = work_order.id
        db.session.commit()
        return work_order

    return run_with_retry(_op)

# Overview: Service-layer operations for dashboard analytics; period metrics and picker data.

"""
Dashboard Aggregator

Period metrics are derived from bills only, using the cost snapshot stored
on each bill line. Stock, pending work orders and the period picker data are
computed independently of the selected period.

Service revenue recognition:
- bill fully paid (due == 0): service amounts count positive
- bill with any due left: service amounts count negative
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from ..errors import InvalidInputError
from ..models import Bill
from ..models.billing import LINE_SERVICE
from ..time_utils import (
    MONTH_NAMES,
    add_months,
    days_ago,
    end_of_day,
    month_bounds,
    start_of_day,
    to_utc_z,
    utcnow,
)
from .catalog_service import total_stock
from .tenant_service import owned_query
from .work_order_service import count_pending, pending_query


FILTER_PERIOD = "period"
FILTER_MONTH_YEAR = "monthYear"

DEFAULT_PERIOD = "1month"

# Periods measured in days; the rest shift by calendar months.
_DAY_PERIODS = {"1week": 7, "1month": 30}
_MONTH_PERIODS = {"3months": 3, "6months": 6, "1year": 12}


def resolve_period(
    filter_type: str | None = None,
    period: str | None = None,
    month=None,
    year=None,
    now: datetime | None = None,
) -> dict:
    """
    Turn dashboard filter arguments into a [start, end] window.

    Unknown period names fall back to the last 30 days.
    """
    now = now or utcnow()
    filter_type = filter_type or FILTER_PERIOD

    if filter_type == FILTER_MONTH_YEAR:
        try:
            month = int(month)
            year = int(year)
        except (TypeError, ValueError):
            raise InvalidInputError("Month and year are required for monthYear filter type")
        if not 1 <= month <= 12 or year < 1:
            raise InvalidInputError(
                "Month and year are required for monthYear filter type",
                details={"month": month, "year": year},
            )
        start, end = month_bounds(year, month)
        return {
            "filter_type": FILTER_MONTH_YEAR,
            "period": None,
            "month": month,
            "year": year,
            "start": start,
            "end": end,
        }

    if filter_type != FILTER_PERIOD:
        raise InvalidInputError(
            f"filter_type must be '{FILTER_PERIOD}' or '{FILTER_MONTH_YEAR}'",
            details={"filter_type": filter_type},
        )

    period = period or DEFAULT_PERIOD
    if period in _MONTH_PERIODS:
        start = add_months(now, -_MONTH_PERIODS[period])
    else:
        start = days_ago(now, _DAY_PERIODS.get(period, 30))

    return {
        "filter_type": FILTER_PERIOD,
        "period": period,
        "month": None,
        "year": None,
        "start": start_of_day(start),
        "end": end_of_day(now),
    }


def summarize_bills(bills) -> dict:
    """Financial metrics over a collection of bills (all values in cents)."""
    billed = collected = outstanding = expenses = services = 0

    for bill in bills:
        billed += bill.total_cents
        collected += bill.received_cents
        outstanding += bill.due_cents

        bill_services = 0
        for line in bill.lines:
            if line.line_type == LINE_SERVICE:
                bill_services += line.line_amount_cents
            else:
                expenses += line.purchase_price_cents_at_sale * line.qty

        if bill.due_cents == 0:
            services += bill_services
        else:
            services -= bill_services

    net_profit = collected - expenses
    return {
        "billed_amount_cents": billed,
        "amount_collected_cents": collected,
        "outstanding_amount_cents": outstanding,
        "total_expenses_cents": expenses,
        "net_profit_cents": net_profit,
        "services_amount_cents": services,
        "gross_profit_cents": net_profit + services,
    }


def bills_in_period(owner_id: int, period_start: datetime, period_end: datetime) -> list[Bill]:
    return (
        owned_query(Bill, owner_id)
        .options(selectinload(Bill.lines))
        .filter(Bill.created_at >= period_start, Bill.created_at <= period_end)
        .order_by(Bill.created_at.asc(), Bill.id.asc())
        .all()
    )


def get_metrics(owner_id: int, period_start: datetime, period_end: datetime) -> dict:
    return summarize_bills(bills_in_period(owner_id, period_start, period_end))


def available_months(owner_id: int, now: datetime | None = None) -> tuple[list[dict], list[int]]:
    """Every calendar month (and year) from the owner's earliest bill through now."""
    now = now or utcnow()
    earliest = (
        owned_query(Bill, owner_id, include_deleted=True)
        .with_entities(func.min(Bill.created_at))
        .scalar()
    )
    if earliest is None:
        return [], []

    years = list(range(earliest.year, now.year + 1))
    months = []
    year, month = earliest.year, earliest.month
    while (year, month) <= (now.year, now.month):
        months.append({
            "month": month,
            "year": year,
            "label": f"{MONTH_NAMES[month - 1]} {year}",
        })
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months, years


def pending_works(owner_id: int) -> list[dict]:
    return [
        {
            "id": wo.id,
            "work_order_number": wo.work_order_number,
            "schedule_date": wo.schedule_date.isoformat(),
            "schedule_time": wo.schedule_time,
            "has_scheduled_time": wo.has_scheduled_time,
            "note": wo.note,
            "status": wo.status,
            "customer": wo.customer.contact_dict() if wo.customer else {"name": "Unknown"},
        }
        for wo in pending_query(owner_id).all()
    ]


def build_dashboard(owner_id: int, args: dict | None = None, now: datetime | None = None) -> dict:
    """
    Full dashboard payload for the filter arguments in `args`
    (filter_type, period, month, year).

    Read-only: nothing is written to the session.
    """
    args = args or {}
    now = now or utcnow()
    window = resolve_period(
        args.get("filter_type"),
        args.get("period"),
        args.get("month"),
        args.get("year"),
        now=now,
    )

    bills = bills_in_period(owner_id, window["start"], window["end"])
    if window["filter_type"] == FILTER_MONTH_YEAR and not bills:
        return {"no_data": True, "message": "This month's record is not in the database"}

    months, years = available_months(owner_id, now)
    return {
        "filter_info": {
            "filter_type": window["filter_type"],
            "period": window["period"],
            "month": window["month"],
            "year": window["year"],
            "start_date": to_utc_z(window["start"]),
            "end_date": to_utc_z(window["end"]),
        },
        "current_metrics": {
            "total_stock": total_stock(owner_id),
            "pending_work_orders": count_pending(owner_id),
        },
        "period_metrics": summarize_bills(bills),
        "available_months": months,
        "available_years": years,
        "pending_works": pending_works(owner_id),
    }

# Overview: Service-layer operations for push notifications; device tokens and work order reminders.

"""
Notification Dispatcher

Delivery is delegated to a push transport configured as PUSH_TRANSPORT
(a dotted path to a transport class/factory, or an instance). A transport
exposes:

    send(tokens: list[str], title: str, body: str, data: dict) -> list[bool]

returning one success flag per token, in order. Tokens reported as failed
are removed; delivered tokens have last_seen_at refreshed.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..errors import InvalidInputError
from ..models import Customer, DeviceToken, WorkOrder
from ..models.work_orders import WORK_ORDER_PENDING
from ..time_utils import utcnow
from .concurrency import unit_of_work
from .identity_service import load_object


REMINDER_TITLE = "Work Order Reminder"


class LoggingPushTransport:
    """Transport that only logs; used when no real transport is configured."""

    def send(self, tokens, title, body, data):
        current_app.logger.info("Push (not delivered) to %d device(s): %s", len(tokens), title)
        return [True] * len(tokens)


def get_transport():
    transport = current_app.config.get("PUSH_TRANSPORT")
    if not transport:
        return LoggingPushTransport()
    if isinstance(transport, str):
        transport = load_object(transport)
    if isinstance(transport, type):
        transport = transport()
    return transport


# =============================================================================
# DEVICE TOKENS
# =============================================================================

def register_token(user_id: int, token: str, device: str | None = None) -> tuple[DeviceToken, bool]:
    """Register a device token. Returns (row, created); re-registering is a no-op."""
    token = (token or "").strip()
    if not token:
        raise InvalidInputError("Device token is required")

    existing = db.session.query(DeviceToken).filter_by(user_id=user_id, token=token).first()
    if existing is not None:
        return existing, False

    row = DeviceToken(user_id=user_id, token=token, device=(device or "web"))
    with unit_of_work():
        db.session.add(row)
    return row, True


def remove_token(user_id: int, token: str) -> int:
    token = (token or "").strip()
    if not token:
        raise InvalidInputError("Device token is required")
    with unit_of_work():
        removed = (
            db.session.query(DeviceToken)
            .filter_by(user_id=user_id, token=token)
            .delete(synchronize_session=False)
        )
    return removed


def purge_stale_device_tokens(days: int | None = None, now: datetime | None = None) -> int:
    """Delete tokens not seen within `days` (default DEVICE_TOKEN_RETENTION_DAYS)."""
    if days is None:
        days = current_app.config.get("DEVICE_TOKEN_RETENTION_DAYS", 60)
    cutoff = (now or utcnow()) - timedelta(days=days)
    with unit_of_work():
        removed = (
            db.session.query(DeviceToken)
            .filter(DeviceToken.last_seen_at < cutoff)
            .delete(synchronize_session=False)
        )
    current_app.logger.info("Purged %d device token(s) older than %d day(s)", removed, days)
    return removed


# =============================================================================
# DELIVERY
# =============================================================================

def send_notification(user_id: int, title: str, body: str, data: dict | None = None) -> dict:
    rows = db.session.query(DeviceToken).filter_by(user_id=user_id).order_by(DeviceToken.id).all()
    if not rows:
        current_app.logger.info("No device tokens found for user %s", user_id)
        return {"success": False, "message": "No device tokens found", "success_count": 0, "failure_count": 0}

    tokens = [row.token for row in rows]
    payload = {key: str(value) for key, value in (data or {}).items()}
    results = list(get_transport().send(tokens, title, body, payload))

    delivered = [t for t, ok in zip(tokens, results) if ok]
    failed = [t for t, ok in zip(tokens, results) if not ok]

    with unit_of_work():
        if failed:
            db.session.query(DeviceToken).filter(
                DeviceToken.user_id == user_id, DeviceToken.token.in_(failed)
            ).delete(synchronize_session=False)
        if delivered:
            db.session.execute(
                update(DeviceToken)
                .where(DeviceToken.user_id == user_id, DeviceToken.token.in_(delivered))
                .values(last_seen_at=utcnow()),
                execution_options={"synchronize_session": False},
            )

    if failed:
        current_app.logger.warning("Removed %d failed device token(s) for user %s", len(failed), user_id)
    return {"success": True, "success_count": len(delivered), "failure_count": len(failed)}


def due_reminders(today: date, current_time: str) -> list[WorkOrder]:
    return (
        db.session.query(WorkOrder)
        .filter(
            WorkOrder.status == WORK_ORDER_PENDING,
            WorkOrder.reminder_sent.is_(False),
            WorkOrder.schedule_time.isnot(None),
            WorkOrder.schedule_date == today,
            WorkOrder.schedule_time == current_time,
        )
        .order_by(WorkOrder.id)
        .all()
    )


def send_work_order_reminders(now: datetime | None = None) -> dict:
    """
    Notify owners of pending work orders scheduled for this exact minute.

    `now` is wall-clock time, the same clock schedule_time is entered in.
    Each work order is reminded at most once.
    """
    now = now or datetime.now()
    current_time = now.strftime("%H:%M")
    work_orders = due_reminders(now.date(), current_time)
    current_app.logger.info("Found %d work order(s) to notify at %s", len(work_orders), current_time)

    for work_order in work_orders:
        customer = db.session.get(Customer, work_order.customer_id)
        send_notification(
            work_order.owner_id,
            REMINDER_TITLE,
            f"{customer.name if customer else 'Customer'}\n{work_order.note}",
            {"work_order_id": work_order.id, "type": "work_order_reminder"},
        )
        with unit_of_work():
            work_order.reminder_sent = True

    return {"success": True, "notified": len(work_orders)}

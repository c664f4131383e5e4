from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z, utcnow


WORK_ORDER_PENDING = "pending"
WORK_ORDER_COMPLETED = "completed"


class WorkOrder(db.Model):
    """
    Scheduled service visit for a customer.

    Transitions pending -> completed manually or when a bill referencing it
    is created (bill_id is then set).
    """
    __tablename__ = "work_orders"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "work_order_number", name="uq_work_orders_owner_number"),
        db.Index("ix_work_orders_owner_status_schedule", "owner_id", "status", "schedule_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    work_order_number = db.Column(db.String(64), nullable=False)
    note = db.Column(db.Text, nullable=False)

    schedule_date = db.Column(db.Date, nullable=False)
    # "HH:MM" 24-hour; NULL when the visit has no fixed time
    schedule_time = db.Column(db.String(5), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=WORK_ORDER_PENDING, index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reminder_sent = db.Column(db.Boolean, nullable=False, default=False)
    # Plain reference; bills.work_order_id carries the foreign key
    bill_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("work_orders", lazy=True))

    @property
    def has_scheduled_time(self) -> bool:
        return bool(self.schedule_time)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "customer_id": self.customer_id,
            "customer": self.customer.contact_dict() if self.customer else None,
            "work_order_number": self.work_order_number,
            "note": self.note,
            "schedule_date": self.schedule_date.isoformat() if self.schedule_date else None,
            "schedule_time": self.schedule_time,
            "has_scheduled_time": self.has_scheduled_time,
            "status": self.status,
            "completed_at": to_utc_z(self.completed_at),
            "bill_id": self.bill_id,
            "created_at": to_utc_z(self.created_at),
        }

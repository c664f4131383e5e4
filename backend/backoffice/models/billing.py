from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z, utcnow


LINE_GENERIC = "generic"
LINE_SERIALIZED = "serialized"
LINE_SERVICE = "service"
LINE_TYPES = (LINE_GENERIC, LINE_SERIALIZED, LINE_SERVICE)

BILL_PENDING = "pending"
BILL_PARTIAL = "partial"
BILL_PAID = "paid"

PAYMENT_METHODS = ("cash", "upi")


class Bill(db.Model):
    """
    Bill document: immutable core (lines, subtotal, discount, total) plus a
    mutable payment tail (received, due, status, payment history).

    INVARIANTS:
    - total_cents = subtotal_cents - discount_cents
    - due_cents = max(0, total_cents - received_cents)
    - status is a pure function of (received_cents, total_cents)
    - bills are soft-deleted, never hard-deleted
    """
    __tablename__ = "bills"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "bill_number", name="uq_bills_owner_number"),
        db.Index("ix_bills_owner_created", "owner_id", "created_at"),
        db.Index("ix_bills_customer_due", "customer_id", "due_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Human-readable number (e.g., "BILL-2610-0007")
    bill_number = db.Column(db.String(64), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    received_cents = db.Column(db.Integer, nullable=False, default=0)
    due_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=BILL_PENDING, index=True)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")

    work_order_id = db.Column(db.Integer, db.ForeignKey("work_orders.id"), nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("bills", lazy=True))
    lines = db.relationship("BillLine", backref="bill", lazy=True, order_by="BillLine.position")
    payments = db.relationship("BillPayment", backref="bill", lazy=True, order_by="BillPayment.id")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "customer_id": self.customer_id,
            "bill_number": self.bill_number,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "received_cents": self.received_cents,
            "due_cents": self.due_cents,
            "status": self.status,
            "payment_method": self.payment_method,
            "work_order_id": self.work_order_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "payment_history": [p.to_dict() for p in self.payments],
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class BillLine(db.Model):
    """
    One priced entry of a bill.

    purchase_price_cents_at_sale is the catalog cost captured at billing time
    (0 for services). It is never re-derived from current catalog state.
    """
    __tablename__ = "bill_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    line_type = db.Column(db.String(16), nullable=False)
    item_ref = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    serial_no = db.Column(db.String(128), nullable=True)

    qty = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    purchase_price_cents_at_sale = db.Column(db.Integer, nullable=False, default=0)
    line_amount_cents = db.Column(db.Integer, nullable=False)

    @property
    def cost_cents(self) -> int:
        if self.line_type == LINE_SERVICE:
            return 0
        return self.purchase_price_cents_at_sale * self.qty

    def to_dict(self) -> dict:
        return {
            "line_type": self.line_type,
            "item_ref": self.item_ref,
            "name": self.name,
            "serial_no": self.serial_no,
            "qty": self.qty,
            "unit_price_cents": self.unit_price_cents,
            "purchase_price_cents_at_sale": self.purchase_price_cents_at_sale,
            "line_amount_cents": self.line_amount_cents,
        }


class BillPayment(db.Model):
    """
    Append-only payment history entry for a bill.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "bill_payments"
    __table_args__ = (
        db.Index("ix_bill_payments_bill_paid", "bill_id", "paid_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    note = db.Column(db.String(255), nullable=False, default="")

    def to_dict(self) -> dict:
        return {
            "amount_cents": self.amount_cents,
            "paid_at": to_utc_z(self.paid_at),
            "note": self.note,
        }

from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z, utcnow


ITEM_GENERIC = "generic"
ITEM_SERIALIZED = "serialized"

SERIAL_AVAILABLE = "available"
SERIAL_SOLD = "sold"


class Item(db.Model):
    """
    Stocked good, tracked either by a fungible quantity (generic) or as
    individually identified units (serialized).

    INVARIANTS:
    - stock_qty is never negative (enforced by conditional decrement)
    - serialized items never use stock_qty; their stock is the count of
      available serial rows
    - items referenced by a bill are soft-deleted only
    """
    __tablename__ = "items"
    __table_args__ = (
        db.CheckConstraint("stock_qty >= 0", name="ck_items_stock_non_negative"),
        db.Index("ix_items_owner_deleted", "owner_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    warranty = db.Column(db.String(64), nullable=False, default="no_warranty")

    mrp_cents = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    sale_price_cents = db.Column(db.Integer, nullable=False)

    # Generic items only
    stock_qty = db.Column(db.Integer, nullable=False, default=0)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    serials = db.relationship(
        "ItemSerial",
        backref="item",
        lazy=True,
        order_by="ItemSerial.id",
    )
    stock_receipts = db.relationship(
        "StockReceipt",
        backref="item",
        lazy=True,
        order_by="StockReceipt.id",
    )

    @property
    def available_stock(self) -> int:
        if self.item_type == ITEM_SERIALIZED:
            return sum(1 for s in self.serials if s.status == SERIAL_AVAILABLE)
        return self.stock_qty or 0

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "owner_id": self.owner_id,
            "item_type": self.item_type,
            "name": self.name,
            "unit": self.unit,
            "warranty": self.warranty,
            "mrp_cents": self.mrp_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "available_stock": self.available_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if self.item_type == ITEM_SERIALIZED:
            data["serial_numbers"] = [s.to_dict() for s in self.serials]
        else:
            data["stock_qty"] = self.stock_qty
            data["stock_history"] = [r.to_dict() for r in self.stock_receipts]
        return data


class ItemSerial(db.Model):
    """
    One identified unit of a serialized item.

    serial_no is unique across the whole system, not per owner.
    customer_name / bill_number are denormalized on sale for lookup without a join.
    """
    __tablename__ = "item_serials"
    __table_args__ = (
        db.UniqueConstraint("serial_no", name="uq_item_serials_serial_no"),
        db.Index("ix_item_serials_item_status", "item_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    serial_no = db.Column(db.String(128), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=SERIAL_AVAILABLE)
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    customer_name = db.Column(db.String(255), nullable=True)
    bill_number = db.Column(db.String(64), nullable=True)

    def to_dict(self) -> dict:
        return {
            "serial_no": self.serial_no,
            "status": self.status,
            "added_at": to_utc_z(self.added_at),
            "customer_name": self.customer_name,
            "bill_number": self.bill_number,
        }


class StockReceipt(db.Model):
    """Append-only history of quantity added to a generic item."""
    __tablename__ = "stock_receipts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    qty = db.Column(db.Integer, nullable=False)
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {"qty": self.qty, "added_at": to_utc_z(self.added_at)}


class Service(db.Model):
    """Billable service. No stock; every sale is revenue at zero cost basis."""
    __tablename__ = "services"
    __table_args__ = (
        db.Index("ix_services_owner_deleted", "owner_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

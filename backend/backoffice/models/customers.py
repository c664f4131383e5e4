from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer master data, scoped to the owning engineer.

    Phone numbers are unique per owner. A customer cannot be deleted while
    it owns any non-deleted bill.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "phone", name="uq_customers_owner_phone"),
        db.Index("ix_customers_owner_deleted", "owner_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    whatsapp = db.Column(db.String(32), nullable=False, default="")
    address = db.Column(db.String(512), nullable=False, default="")

    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "phone": self.phone,
            "whatsapp": self.whatsapp,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def contact_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone, "address": self.address}

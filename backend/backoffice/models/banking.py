from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z, utcnow


class BankAccount(db.Model):
    """Payout account printed on bills. At most one primary account per owner."""
    __tablename__ = "bank_accounts"
    __table_args__ = (
        db.Index("ix_bank_accounts_owner_primary", "owner_id", "is_primary"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    bank_name = db.Column(db.String(255), nullable=False)
    account_number = db.Column(db.String(64), nullable=False)
    ifsc_code = db.Column(db.String(16), nullable=False)
    account_holder_name = db.Column(db.String(255), nullable=False)
    upi_id = db.Column(db.String(255), nullable=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bank_name": self.bank_name,
            "account_number": self.account_number,
            "ifsc_code": self.ifsc_code,
            "account_holder_name": self.account_holder_name,
            "upi_id": self.upi_id,
            "is_primary": self.is_primary,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

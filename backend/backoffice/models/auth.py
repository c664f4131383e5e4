from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    Local account for an engineer authenticated by the external identity provider.

    MULTI-TENANT: every business record (customers, items, services, bills,
    work orders, bank accounts) carries owner_id = users.id. The owner is the
    tenant boundary.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("identity_uid", name="uq_users_identity_uid"),
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Subject of the identity provider's verified token
    identity_uid = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(255), nullable=False, default="")
    photo_url = db.Column(db.String(1024), nullable=False, default="")
    phone_number = db.Column(db.String(32), nullable=False, default="")

    role = db.Column(db.String(32), nullable=False, default="engineer")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Business profile (printed on bills)
    business_name = db.Column(db.String(255), nullable=False, default="")
    owner_name = db.Column(db.String(255), nullable=False, default="")
    business_address = db.Column(db.String(512), nullable=False, default="")
    business_state = db.Column(db.String(128), nullable=False, default="")
    business_city = db.Column(db.String(128), nullable=False, default="")
    business_pincode = db.Column(db.String(16), nullable=False, default="")
    business_phone = db.Column(db.String(32), nullable=False, default="")
    hide_phone_on_bills = db.Column(db.Boolean, nullable=False, default=False)
    profile_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_profile_complete(self) -> bool:
        return self.profile_completed_at is not None

    def business_profile(self) -> dict:
        return {
            "business_name": self.business_name,
            "owner_name": self.owner_name,
            "address": self.business_address,
            "state": self.business_state,
            "city": self.business_city,
            "pincode": self.business_pincode,
            "phone": self.business_phone,
            "hide_phone_on_bills": self.hide_phone_on_bills,
            "is_complete": self.is_profile_complete,
            "completed_at": to_utc_z(self.profile_completed_at),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "photo_url": self.photo_url,
            "phone_number": self.phone_number,
            "role": self.role,
            "is_active": self.is_active,
            "business_profile": self.business_profile(),
            "created_at": to_utc_z(self.created_at),
        }


class DeviceToken(db.Model):
    """Push notification registration for one of a user's devices."""
    __tablename__ = "device_tokens"
    __table_args__ = (
        db.UniqueConstraint("user_id", "token", name="uq_device_tokens_user_token"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token = db.Column(db.String(512), nullable=False)
    device = db.Column(db.String(64), nullable=False, default="web")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_seen_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    user = db.relationship("User", backref=db.backref("device_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "device": self.device,
            "created_at": to_utc_z(self.created_at),
            "last_seen_at": to_utc_z(self.last_seen_at),
        }

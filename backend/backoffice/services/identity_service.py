# Overview: Service-layer operations for identity; token verification and local user records.

"""
Identity Service

Identity tokens are issued and verified by an external provider. This module
only depends on a verifier callable configured as IDENTITY_VERIFIER
("package.module:attr"):

    verifier(token: str) -> mapping with "uid", "email", and optionally
                            "name" / "picture"

A verifier signals an expired token by raising TokenExpiredError and any
other rejection by raising InvalidTokenError (anything else it raises is
treated as invalid too).
"""

from __future__ import annotations

from dataclasses import dataclass
from importlib import import_module

from flask import current_app

from ..extensions import db
from ..errors import InvalidInputError
from ..models import User
from ..time_utils import utcnow
from .concurrency import unit_of_work


class IdentityError(Exception):
    """Base class for token verification failures."""
    pass


class TokenExpiredError(IdentityError):
    pass


class InvalidTokenError(IdentityError):
    pass


@dataclass(frozen=True)
class IdentityClaims:
    uid: str
    email: str
    name: str = ""
    picture: str = ""


def load_object(path: str):
    """Import "package.module:attr" (or "package.module.attr")."""
    if ":" in path:
        module_name, attr = path.split(":", 1)
    else:
        module_name, _, attr = path.rpartition(".")
    return getattr(import_module(module_name), attr)


def _get_verifier():
    verifier = current_app.config.get("IDENTITY_VERIFIER")
    if not verifier:
        raise InvalidTokenError("No identity verifier configured")
    if isinstance(verifier, str):
        verifier = load_object(verifier)
    return verifier


def verify_id_token(token: str) -> IdentityClaims:
    if not token:
        raise InvalidTokenError("Token is required")

    verifier = _get_verifier()
    try:
        decoded = verifier(token)
    except IdentityError:
        raise
    except Exception as exc:
        raise InvalidTokenError(str(exc)) from exc

    uid = decoded.get("uid") if decoded else None
    if not uid:
        raise InvalidTokenError("Token has no subject")
    return IdentityClaims(
        uid=uid,
        email=decoded.get("email") or "",
        name=decoded.get("name") or "",
        picture=decoded.get("picture") or "",
    )


def get_user_by_uid(uid: str) -> User | None:
    return db.session.query(User).filter_by(identity_uid=uid).first()


def sign_in(token: str) -> tuple[User, bool]:
    """
    Verify a token and create or refresh the local user.

    Returns (user, created).
    """
    claims = verify_id_token(token)
    if not claims.email:
        raise InvalidTokenError("Token has no email claim")

    user = get_user_by_uid(claims.uid)
    created = user is None
    with unit_of_work():
        if created:
            user = User(
                identity_uid=claims.uid,
                email=claims.email,
                display_name=claims.name,
                photo_url=claims.picture,
            )
            db.session.add(user)
        else:
            user.display_name = claims.name or user.display_name
            user.photo_url = claims.picture or user.photo_url

    if created:
        current_app.logger.info("New user created: %s", user.email)
    return user, created


# Fields accepted by update_business_profile, mapped to User columns
BUSINESS_PROFILE_FIELDS = {
    "business_name": "business_name",
    "owner_name": "owner_name",
    "address": "business_address",
    "state": "business_state",
    "city": "business_city",
    "pincode": "business_pincode",
    "phone": "business_phone",
    "hide_phone_on_bills": "hide_phone_on_bills",
}

_REQUIRED_FOR_COMPLETE = ("business_name", "owner_name", "business_phone")


def update_business_profile(user: User, payload: dict) -> User:
    """
    Store the business details printed on bills.

    The profile is stamped complete the first time business name, owner name
    and phone are all present.
    """
    unknown = sorted(set(payload) - set(BUSINESS_PROFILE_FIELDS))
    if unknown:
        raise InvalidInputError(f"Unknown fields: {', '.join(unknown)}", details={"fields": unknown})

    pincode = payload.get("pincode")
    if pincode and not str(pincode).strip().isdigit():
        raise InvalidInputError("pincode must contain digits only")

    with unit_of_work():
        for key, column in BUSINESS_PROFILE_FIELDS.items():
            if key not in payload:
                continue
            value = payload[key]
            if column == "hide_phone_on_bills":
                user.hide_phone_on_bills = bool(value)
            else:
                setattr(user, column, str(value or "").strip())
        if user.profile_completed_at is None and all(getattr(user, c) for c in _REQUIRED_FOR_COMPLETE):
            user.profile_completed_at = utcnow()
    return user

"""
Owner-scoping helpers.

Every business record belongs to exactly one engineer (owner_id). Records
outside the caller's scope are reported as not found, never as forbidden,
so existence is not leaked across tenants.

USAGE:
    from backoffice.services.tenant_service import require_owned

    customer = require_owned(Customer, g.owner_id, customer_id, "Customer")
"""

from __future__ import annotations

from flask import current_app, has_app_context, has_request_context, request

from ..extensions import db
from ..errors import NotFoundError


def owned_query(model, owner_id: int, include_deleted: bool = False):
    """Query over `model` restricted to one owner (and to live rows when soft-deletable)."""
    query = db.session.query(model).filter(model.owner_id == owner_id)
    if not include_deleted and hasattr(model, "is_deleted"):
        query = query.filter(model.is_deleted.is_(False))
    return query


def get_owned(model, owner_id: int, record_id, include_deleted: bool = False):
    """Return the record if it exists in the owner's scope, else None."""
    try:
        record_id = int(record_id)
    except (TypeError, ValueError):
        return None
    record = db.session.get(model, record_id)
    if record is None:
        return None
    if record.owner_id != owner_id:
        _log_cross_owner_attempt(model.__tablename__, record_id, owner_id)
        return None
    if not include_deleted and getattr(record, "is_deleted", False):
        return None
    return record


def require_owned(model, owner_id: int, record_id, label: str, include_deleted: bool = False):
    record = get_owned(model, owner_id, record_id, include_deleted=include_deleted)
    if record is None:
        raise NotFoundError(f"{label} not found", details={"id": record_id})
    return record


def _log_cross_owner_attempt(table: str, record_id, owner_id: int) -> None:
    if not has_app_context():
        return
    path = request.path if has_request_context() else None
    current_app.logger.warning(
        "Cross-owner reference denied: %s.id=%s requested by owner %s (path=%s)",
        table, record_id, owner_id, path,
    )

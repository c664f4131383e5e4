"""
Typed service errors.

Every error raised by the billing, catalog and customer services is one of
these. Each carries a machine-readable ``kind``, the HTTP status the request
layer answers with, and a ``details`` dict of structured context.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for recoverable, caller-facing service failures."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind,
            "details": self.details,
        }


class NotFoundError(ServiceError):
    """Referenced record does not exist in the caller's scope."""

    kind = "not_found"
    status_code = 404


class ConflictError(ServiceError):
    """Business rule conflict (serial not available, duplicate serial/phone)."""

    kind = "conflict"
    status_code = 409


class InsufficientStockError(ServiceError):
    kind = "insufficient_stock"
    status_code = 409

    def __init__(self, message: str, *, available: int, requested: int, details: dict | None = None):
        merged = {"available": available, "requested": requested}
        merged.update(details or {})
        super().__init__(message, merged)
        self.available = available
        self.requested = requested


class InvalidInputError(ServiceError):
    """Missing field, non-positive amount, malformed cart."""

    kind = "invalid_input"
    status_code = 400


class LimitExceededError(ServiceError):
    """Payment amount exceeds the customer's total outstanding due."""

    kind = "limit_exceeded"
    status_code = 400

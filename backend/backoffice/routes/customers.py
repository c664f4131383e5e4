# Overview: Flask API routes for customers; CRUD, search and the due-sorted listing.
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..models import Customer
from ..services import customer_service
from ..validation import ModelValidationPolicy, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "whatsapp", "address"},
    required_on_create={"name", "phone"},
)

OPTIONAL_TEXT_FIELDS = ("whatsapp", "address")

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _customer_payload() -> tuple[dict, dict]:
    payload = request.get_json(silent=True) or {}
    if isinstance(payload, dict):
        # Optional contact fields may be cleared with an empty string
        cleared = {k: "" for k in OPTIONAL_TEXT_FIELDS if payload.get(k) in (None, "") and k in payload}
        payload = {k: v for k, v in payload.items() if k not in cleared}
        return payload, cleared
    return payload, {}


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload, cleared = _customer_payload()
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        patch.update(cleared)
        customer = customer_service.create_customer(g.owner_id, patch)
        return jsonify({"customer": customer.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("")
@require_auth
def list_customers_route():
    """
    Customers sorted by outstanding due (highest first).

    Query params:
    - page: int (default 1)
    - per_page: int (default CUSTOMERS_PER_PAGE, max 100)
    """
    page = request.args.get("page", default=1, type=int)
    per_page = request.args.get("per_page", default=current_app.config["CUSTOMERS_PER_PAGE"], type=int)
    return jsonify(customer_service.list_customers_with_due(g.owner_id, page=page, per_page=per_page)), 200


@customers_bp.get("/search")
@require_auth
def search_customers_route():
    try:
        customers = customer_service.search_customers(g.owner_id, request.args.get("q", ""))
        return jsonify({"customers": [c.to_dict() for c in customers]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        return jsonify(customer_service.customer_summary(g.owner_id, customer_id)), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    payload, cleared = _customer_payload()
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        patch.update(cleared)
        customer = customer_service.update_customer(g.owner_id, customer_id, patch)
        return jsonify({"customer": customer.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(g.owner_id, customer_id)
        return jsonify({"message": "Customer deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500

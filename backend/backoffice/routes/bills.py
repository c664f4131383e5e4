# Overview: Flask API routes for bills; creation, payments and customer due settlement.

# backend/backoffice/routes/bills.py
"""
Bill routes.

MULTI-TENANT: bills, customers, items, services and work orders referenced in
a request must belong to g.owner_id; anything else answers 404.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import billing_service

bills_bp = Blueprint("bills", __name__, url_prefix="/api/bills")


@bills_bp.post("")
@require_auth
def create_bill_route():
    """
    Create a bill.

    Body:
    {
        "customer_id": int,
        "lines": [{"line_type": "generic|serialized|service", "item_ref": int,
                   "qty": int?, "serial_no": str?}, ...],
        "discount_cents": int?,
        "initial_payment_cents": int?,
        "payment_method": "cash|upi"?,
        "work_order_id": int?
    }
    """
    data = request.get_json(silent=True) or {}
    if not data.get("customer_id"):
        return jsonify({"error": "customer_id required", "kind": "invalid_input", "details": {}}), 400

    try:
        bill = billing_service.create_bill(
            g.owner_id,
            data["customer_id"],
            data.get("lines"),
            discount_cents=data.get("discount_cents", 0),
            initial_payment_cents=data.get("initial_payment_cents", 0),
            payment_method=data.get("payment_method") or "cash",
            work_order_id=data.get("work_order_id"),
        )
        return jsonify({"bill": bill.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create bill")
        return jsonify({"error": "Internal server error"}), 500


@bills_bp.get("")
@require_auth
def list_bills_route():
    return jsonify({"bills": billing_service.list_bills(g.owner_id)}), 200


@bills_bp.get("/<int:bill_id>")
@require_auth
def get_bill_route(bill_id: int):
    try:
        bill = billing_service.get_bill(g.owner_id, bill_id)
        data = bill.to_dict()
        data["customer"] = bill.customer.contact_dict()
        return jsonify({"bill": data}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@bills_bp.post("/<int:bill_id>/payment")
@require_auth
def record_payment_route(bill_id: int):
    data = request.get_json(silent=True) or {}
    try:
        bill = billing_service.record_payment(g.owner_id, bill_id, data.get("amount_cents"), data.get("note"))
        return jsonify({"bill": bill.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@bills_bp.get("/customer/<int:customer_id>")
@require_auth
def customer_bills_route(customer_id: int):
    try:
        bills = billing_service.list_customer_bills(g.owner_id, customer_id)
        return jsonify({"bills": [b.to_dict() for b in bills]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@bills_bp.post("/customer/<int:customer_id>/pay-due")
@require_auth
def pay_customer_due_route(customer_id: int):
    """Distribute one payment across the customer's open bills, oldest first."""
    data = request.get_json(silent=True) or {}
    try:
        result = billing_service.pay_customer_due(g.owner_id, customer_id, data.get("amount_cents"), data.get("note"))
        return jsonify({
            "message": f"Payment distributed across {len(result['bills'])} bill(s)",
            "bills": [b.to_dict(include_lines=False) for b in result["bills"]],
            "total_applied_cents": result["total_applied_cents"],
        }), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process customer payment")
        return jsonify({"error": "Internal server error"}), 500

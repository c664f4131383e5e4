# Overview: Flask API routes for work orders; scheduling, completion and bill linking.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import work_order_service
from ..validation import ValidationError, parse_schedule_date, parse_schedule_time

work_orders_bp = Blueprint("work_orders", __name__, url_prefix="/api/work-orders")

EDITABLE_FIELDS = {"note", "schedule_date", "schedule_time"}


@work_orders_bp.post("")
@require_auth
def create_work_order_route():
    data = request.get_json(silent=True) or {}
    try:
        if not data.get("customer_id"):
            raise ValidationError("customer_id is required")
        work_order = work_order_service.create_work_order(
            g.owner_id,
            data["customer_id"],
            note=data.get("note") or "",
            schedule_date=parse_schedule_date(data.get("schedule_date")),
            schedule_time=parse_schedule_time(data.get("schedule_time")),
        )
        return jsonify({"work_order": work_order.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create work order")
        return jsonify({"error": "Internal server error"}), 500


@work_orders_bp.get("/pending")
@require_auth
def list_pending_route():
    work_orders = work_order_service.list_pending(g.owner_id)
    return jsonify({"work_orders": [w.to_dict() for w in work_orders]}), 200


@work_orders_bp.get("/completed")
@require_auth
def list_completed_route():
    work_orders = work_order_service.list_completed(g.owner_id)
    return jsonify({"work_orders": [w.to_dict() for w in work_orders]}), 200


@work_orders_bp.get("/customer/<int:customer_id>")
@require_auth
def list_for_customer_route(customer_id: int):
    try:
        work_orders = work_order_service.list_for_customer(g.owner_id, customer_id)
        return jsonify({"work_orders": [w.to_dict() for w in work_orders]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@work_orders_bp.get("/<int:work_order_id>")
@require_auth
def get_work_order_route(work_order_id: int):
    try:
        work_order = work_order_service.get_work_order(g.owner_id, work_order_id)
        return jsonify({"work_order": work_order.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@work_orders_bp.put("/<int:work_order_id>")
@require_auth
def update_work_order_route(work_order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        unknown = sorted(set(data) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(unknown)}")
        patch = {}
        if "note" in data:
            patch["note"] = data["note"]
        if "schedule_date" in data:
            patch["schedule_date"] = parse_schedule_date(data["schedule_date"])
        if "schedule_time" in data:
            patch["schedule_time"] = parse_schedule_time(data["schedule_time"])
        work_order = work_order_service.update_work_order(g.owner_id, work_order_id, patch)
        return jsonify({"work_order": work_order.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update work order")
        return jsonify({"error": "Internal server error"}), 500


@work_orders_bp.post("/<int:work_order_id>/complete")
@require_auth
def complete_work_order_route(work_order_id: int):
    try:
        work_order = work_order_service.mark_completed(g.owner_id, work_order_id)
        return jsonify({"work_order": work_order.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to complete work order")
        return jsonify({"error": "Internal server error"}), 500


@work_orders_bp.post("/<int:work_order_id>/link-bill")
@require_auth
def link_bill_route(work_order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        if not data.get("bill_id"):
            raise ValidationError("bill_id is required")
        work_order = work_order_service.link_bill(g.owner_id, work_order_id, data["bill_id"])
        return jsonify({"work_order": work_order.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to link bill to work order")
        return jsonify({"error": "Internal server error"}), 500


@work_orders_bp.delete("/<int:work_order_id>")
@require_auth
def delete_work_order_route(work_order_id: int):
    try:
        work_order_service.delete_work_order(g.owner_id, work_order_id)
        return jsonify({"message": "Work order deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete work order")
        return jsonify({"error": "Internal server error"}), 500

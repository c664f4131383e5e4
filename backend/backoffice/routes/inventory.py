# Overview: Flask API routes for inventory; items, stock additions, serial checks and services.

"""
Inventory routes.

MULTI-TENANT: every item and service is scoped to g.owner_id (set by
@require_auth). Records of other owners answer 404.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..models import Item, Service
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_item,
    enforce_rules_service,
    validate_payload,
)

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"item_type", "name", "unit", "warranty", "mrp_cents", "purchase_price_cents", "sale_price_cents"},
    required_on_create={"item_type", "name", "unit", "mrp_cents", "purchase_price_cents", "sale_price_cents"},
)

ITEM_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "unit", "warranty", "mrp_cents", "purchase_price_cents", "sale_price_cents"},
)

SERVICE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price_cents"},
    required_on_create={"name", "price_cents"},
)

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


# =============================================================================
# ITEMS
# =============================================================================

@inventory_bp.post("/items")
@require_auth
def create_item_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=False)
        enforce_rules_item(patch)
        item = catalog_service.create_item(g.owner_id, patch)
        return jsonify({"item": item.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/items")
@require_auth
def list_items_route():
    items = catalog_service.list_items(g.owner_id)
    return jsonify({"items": [i.to_dict() for i in items]}), 200


@inventory_bp.get("/items/<int:item_id>")
@require_auth
def get_item_route(item_id: int):
    try:
        item = catalog_service.get_item(g.owner_id, item_id)
        return jsonify({"item": item.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.put("/items/<int:item_id>")
@require_auth
def update_item_route(item_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Item, payload=payload, policy=ITEM_UPDATE_POLICY, partial=True)
        enforce_rules_item(patch)
        item = catalog_service.update_item(g.owner_id, item_id, patch)
        return jsonify({"item": item.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/items/<int:item_id>")
@require_auth
def delete_item_route(item_id: int):
    try:
        catalog_service.delete_item(g.owner_id, item_id)
        return jsonify({"message": "Item deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/items/<int:item_id>/stock")
@require_auth
def add_stock_route(item_id: int):
    """
    Add stock.

    Body:
    - generic items: {"qty": int}
    - serialized items: {"serial_numbers": [str, ...]}
    """
    data = request.get_json(silent=True) or {}
    try:
        item = catalog_service.add_stock(
            g.owner_id,
            item_id,
            qty=data.get("qty"),
            serial_numbers=data.get("serial_numbers"),
        )
        return jsonify({"item": item.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/check-serial/<path:serial_no>")
@require_auth
def check_serial_route(serial_no: str):
    try:
        return jsonify(catalog_service.check_serial(serial_no)), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


# =============================================================================
# SERVICES
# =============================================================================

@inventory_bp.post("/services")
@require_auth
def create_service_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=False)
        enforce_rules_service(patch)
        service = catalog_service.create_service(g.owner_id, patch)
        return jsonify({"service": service.to_dict()}), 201
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create service")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/services")
@require_auth
def list_services_route():
    services = catalog_service.list_services(g.owner_id)
    return jsonify({"services": [s.to_dict() for s in services]}), 200


@inventory_bp.put("/services/<int:service_id>")
@require_auth
def update_service_route(service_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=True)
        enforce_rules_service(patch)
        service = catalog_service.update_service(g.owner_id, service_id, patch)
        return jsonify({"service": service.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update service")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/services/<int:service_id>")
@require_auth
def delete_service_route(service_id: int):
    try:
        catalog_service.delete_service(g.owner_id, service_id)
        return jsonify({"message": "Service deleted"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete service")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for push notification device tokens.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import notification_service

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.post("/register-token")
@require_auth
def register_token_route():
    data = request.get_json(silent=True) or {}
    try:
        _, created = notification_service.register_token(g.current_user.id, data.get("token"), data.get("device"))
        message = "Device token registered successfully" if created else "Token already registered"
        return jsonify({"message": message, "created": created}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register device token")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.post("/remove-token")
@require_auth
def remove_token_route():
    data = request.get_json(silent=True) or {}
    try:
        notification_service.remove_token(g.current_user.id, data.get("token"))
        return jsonify({"message": "Device token removed successfully"}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to remove device token")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for the dashboard; period metrics and picker data.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/metrics")
@require_auth
def metrics_route():
    """
    Dashboard metrics.

    Query params:
    - filter_type: "period" (default) or "monthYear"
    - period: 1week | 1month (default) | 3months | 6months | 1year
    - month, year: required when filter_type=monthYear
    """
    args = {
        "filter_type": request.args.get("filter_type"),
        "period": request.args.get("period"),
        "month": request.args.get("month"),
        "year": request.args.get("year"),
    }
    try:
        return jsonify(dashboard_service.build_dashboard(g.owner_id, args)), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load dashboard metrics")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for authentication; sign-in against the identity provider and profile.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import identity_service
from ..services.identity_service import IdentityError, TokenExpiredError

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/sign-in")
def sign_in_route():
    """
    Exchange a provider identity token for the local user record.

    Creates the user on first sign-in and refreshes display name and photo
    afterwards. Subsequent requests authenticate with the same bearer token.
    """
    data = request.get_json(silent=True) or {}
    id_token = data.get("id_token")
    if not id_token:
        return jsonify({"error": "ID token is required."}), 400

    try:
        user, created = identity_service.sign_in(id_token)
        return jsonify({"user": user.to_dict(), "created": created}), 200
    except TokenExpiredError:
        return jsonify({"error": "Authentication token expired. Please refresh.", "code": "TOKEN_EXPIRED"}), 401
    except IdentityError:
        current_app.logger.warning("Sign-in rejected: invalid identity token")
        return jsonify({"error": "Authentication failed.", "code": "AUTH_ERROR"}), 401
    except Exception:
        current_app.logger.exception("Failed to sign in user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Tokens are owned by the identity provider; nothing to revoke locally."""
    return jsonify({"message": "Logged out successfully."}), 200


@auth_bp.put("/business-profile")
@require_auth
def update_business_profile_route():
    data = request.get_json(silent=True) or {}
    try:
        user = identity_service.update_business_profile(g.current_user, data)
        return jsonify({"business_profile": user.business_profile()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update business profile")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .services import identity_service
from .services.identity_service import IdentityError, TokenExpiredError


def _blocked(reason: str, message: str, code: str, status: int = 401):
    current_app.logger.warning("[AUTH BLOCKED] %s %s - %s", request.method, request.path, reason)
    return jsonify({"error": message, "code": code}), status


def require_auth(f):
    """
    Require a verified identity token and establish owner context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.owner_id: The owner (tenant) id every query is scoped to
    - g.identity: The verified IdentityClaims

    SECURITY: Accepts only "Authorization: Bearer <token>". Returns:
    - 401 NO_TOKEN: header missing or empty
    - 401 TOKEN_EXPIRED: provider reports the token expired
    - 401 AUTH_ERROR: any other verification failure
    - 401 USER_NOT_FOUND: token valid but no local account
    - 403 ACCOUNT_DEACTIVATED: local account disabled
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization") or ""

        if not auth_header.startswith("Bearer "):
            return _blocked("No Authorization Bearer token", "Authentication required. No token provided.", "NO_TOKEN")

        token = auth_header[len("Bearer "):].strip()
        if not token:
            return _blocked("Empty bearer token", "Authentication required. No token provided.", "NO_TOKEN")

        try:
            claims = identity_service.verify_id_token(token)
        except TokenExpiredError:
            return _blocked("Token expired", "Authentication token expired. Please refresh.", "TOKEN_EXPIRED")
        except IdentityError as e:
            return _blocked(f"Invalid token ({e})", "Authentication failed. Invalid token.", "AUTH_ERROR")

        user = identity_service.get_user_by_uid(claims.uid)
        if user is None:
            return _blocked(f"User not found for UID: {claims.uid}", "User account not found.", "USER_NOT_FOUND")

        if not user.is_active:
            return _blocked(
                f"Account deactivated: {user.email}",
                "Account is deactivated. Please contact support.",
                "ACCOUNT_DEACTIVATED",
                403,
            )

        g.current_user = user
        g.owner_id = user.id
        g.identity = claims

        current_app.logger.debug("[AUTH OK] %s %s - User: %s", request.method, request.path, user.email)
        return f(*args, **kwargs)

    return decorated_function

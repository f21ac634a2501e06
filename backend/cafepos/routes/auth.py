# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/cafepos/routes/auth.py
"""
Authentication API routes

- Login issues an opaque bearer token (stored hashed server-side)
- Logout revokes the presented token
- /me returns the caller and their role permissions
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..permissions import get_role_permissions
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth
from cafepos.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included as "Authorization: Bearer <token>" on protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = (data.get("username") or "").strip()
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("login_failed username=%s", username)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "token": token,
            "expiresAt": to_utc_z(session.expires_at),
            "user": user.to_dict(),
            "permissions": sorted(get_role_permissions(user.role)),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.auth_token, reason="User logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(get_role_permissions(user.role)),
    }), 200

# Overview: Flask API routes for user management; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import auth_service
from ..decorators import require_auth, require_permission


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    return jsonify([u.to_dict() for u in auth_service.list_users()]), 200


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Create a staff account.

    Body: {username, password, role}; role defaults to cashier.
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role") or "cashier",
            bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
        )
        return jsonify(user.to_dict()), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

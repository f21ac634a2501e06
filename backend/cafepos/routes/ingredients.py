# Overview: Flask API routes for ingredient operations; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..errors import PosError
from ..models import Ingredient
from ..services import catalog_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_ingredient
from ..decorators import require_auth, require_permission

INGREDIENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "stock", "unit"}),
    required_on_create=frozenset({"name", "unit"}),
)

ingredients_bp = Blueprint("ingredients", __name__, url_prefix="/api/ingredients")


@ingredients_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_ingredients():
    return [i.to_dict() for i in catalog_service.list_ingredients()]


@ingredients_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_ingredient_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Ingredient, payload=payload, policy=INGREDIENT_POLICY, partial=False)
        enforce_rules_ingredient(patch)
        return catalog_service.create_ingredient(patch).to_dict(), 201
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create ingredient")
        return {"error": "Internal server error"}, 500


@ingredients_bp.put("/<int:ingredient_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_ingredient_route(ingredient_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Ingredient, payload=payload, policy=INGREDIENT_POLICY, partial=True)
        enforce_rules_ingredient(patch)
        return catalog_service.update_ingredient(ingredient_id, patch).to_dict()
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update ingredient")
        return {"error": "Internal server error"}, 500


@ingredients_bp.delete("/<int:ingredient_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_ingredient_route(ingredient_id: int):
    """Refused with 409 while a product recipe still uses the ingredient."""
    try:
        catalog_service.delete_ingredient(ingredient_id)
        return {"message": "Ingredient deleted"}
    except PosError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete ingredient")
        return {"error": "Internal server error"}, 500

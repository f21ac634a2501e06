# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/cafepos/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_CATALOG permission
- Write operations require MANAGE_CATALOG permission

Prices travel as decimal "price" and are stored as integer cents.
"""
from flask import Blueprint, request, current_app

from ..errors import PosError, ValidationError
from ..models import Product
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    money_field,
    parse_ingredient_lines,
    parse_strict_int,
)
from ..decorators import require_auth, require_permission

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "category", "description", "image", "price", "stock"}),
    required_on_create=frozenset({"name", "category", "price"}),
    field_map={"price": "price_cents"},
    converters={"price": money_field("price")},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _split_payload(payload):
    """Recipe lines are validated separately from the product columns."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    has_recipe = "ingredients" in payload
    lines = parse_ingredient_lines(payload.pop("ingredients", None))
    return payload, (lines if has_recipe else None)


def _error_response(e: PosError):
    return e.to_dict(), e.status_code


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_products():
    """
    List all products, name order.

    Query params:
    - category: str (optional) exact category filter
    """
    category = request.args.get("category")
    products = catalog_service.list_products()
    if category:
        products = [p for p in products if p.category == category]
    return [p.to_dict() for p in products]


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_product_route(product_id: int):
    try:
        return catalog_service.get_product(product_id).to_dict()
    except PosError as e:
        return _error_response(e)


@products_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_product_route():
    """Create a product, optionally with its recipe lines."""
    try:
        payload, lines = _split_payload(request.get_json(silent=True) or {})
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch, lines)
        return created.to_dict(), 201
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_product_route(product_id: int):
    """
    Partial update. Supplying "ingredients" replaces the whole recipe.
    """
    try:
        payload, lines = _split_payload(request.get_json(silent=True) or {})
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(product_id, patch, lines)
        return updated.to_dict()
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500


@products_bp.post("/<int:product_id>/stock")
@require_auth
@require_permission("MANAGE_CATALOG")
def adjust_stock_route(product_id: int):
    """
    Atomic stock adjustment: {"delta": int}. Negative deltas may not take
    stock below zero.
    """
    payload = request.get_json(silent=True) or {}
    try:
        try:
            delta = parse_strict_int(payload.get("delta"), "delta")
        except ValueError as exc:
            raise ValidationError(str(exc), [{"field": "delta", "message": str(exc)}])
        if delta == 0:
            raise ValidationError("delta cannot be zero", [{"field": "delta", "message": "delta cannot be zero"}])
        product = catalog_service.adjust_stock(product_id, delta)
        return product.to_dict()
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_product_route(product_id: int):
    """
    Delete a product. Past orders keep their line item snapshots.
    """
    try:
        catalog_service.delete_product(product_id)
        return {"message": "Product deleted"}
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500

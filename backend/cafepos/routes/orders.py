# Overview: Flask API routes for order operations; parses input and returns JSON responses.

# backend/cafepos/routes/orders.py
"""
Order placement and ledger routes.

- POST   /api/orders        any role with PLACE_ORDER
- GET    /api/orders        VIEW_ALL_ORDERS, filters date/month/status/cashier/search
- GET    /api/orders/<id>   owner, or VIEW_ALL_ORDERS
- PUT    /api/orders/<id>   EDIT_ORDERS (items, totalAmount, status)
- DELETE /api/orders/<id>   DELETE_ORDERS, stock is not restored
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import PosError
from ..services import order_service
from ..validation import parse_order_request, parse_order_patch
from ..decorators import require_auth, require_permission


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _error_response(e: PosError):
    return jsonify(e.to_dict()), e.status_code


@orders_bp.post("")
@require_auth
@require_permission("PLACE_ORDER")
def place_order_route():
    """
    Place an order for the caller.

    Body: {items: [{productId, quantity, name?, price?}], totalAmount?}

    Returns 200 with the stored order. 400 for an empty/invalid body,
    insufficient stock or a totalAmount mismatch; 404 when a product is gone.
    Nothing is written unless every line succeeds.
    """
    try:
        items, total_cents = parse_order_request(request.get_json(silent=True))
        order = order_service.place_order(items, total_cents, user_id=g.current_user.id)
        return jsonify(order.to_dict()), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ALL_ORDERS")
def list_orders_route():
    try:
        orders = order_service.list_orders(
            date=request.args.get("date"),
            month=request.args.get("month"),
            status=request.args.get("status"),
            cashier=request.args.get("cashier"),
            search=request.args.get("search"),
        )
        return jsonify([o.to_dict() for o in orders]), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order_for_user(order_id, g.current_user)
        return jsonify(order.to_dict()), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>")
@require_auth
@require_permission("EDIT_ORDERS")
def update_order_route(order_id: int):
    try:
        patch = parse_order_patch(request.get_json(silent=True))
        order = order_service.update_order(order_id, patch)
        return jsonify(order.to_dict()), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_permission("DELETE_ORDERS")
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id)
        return jsonify({"message": "Order deleted"}), 200
    except PosError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500

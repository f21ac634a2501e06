# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import reporting_service
from ..decorators import require_auth, require_permission

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _run(report, *args):
    try:
        return jsonify(report(*args)), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build %s report", report.__name__)
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/daily-sales")
@require_auth
@require_permission("VIEW_REPORTS")
def daily_sales_route():
    """Query: date=YYYY-MM-DD (required, UTC day)."""
    return _run(reporting_service.daily_sales, request.args.get("date"))


@reports_bp.get("/product-sales")
@require_auth
@require_permission("VIEW_REPORTS")
def product_sales_route():
    return _run(reporting_service.product_sales)


@reports_bp.get("/employee-sales")
@require_auth
@require_permission("VIEW_REPORTS")
def employee_sales_route():
    return _run(reporting_service.employee_sales)


@reports_bp.get("/orders")
@require_auth
@require_permission("VIEW_REPORTS")
def orders_for_day_route():
    """Query: date=YYYY-MM-DD. The day's orders, newest first."""
    try:
        orders = reporting_service.orders_for_day(request.args.get("date"))
        return jsonify([o.to_dict() for o in orders]), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build orders_for_day report")
        return jsonify({"error": "Internal server error"}), 500

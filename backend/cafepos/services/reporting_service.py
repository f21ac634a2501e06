# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

"""
Sales aggregation over the order ledger. Read-only, no locks.

Revenue per line is the snapshotted price times quantity; sums are kept in
integer cents and only converted to decimal amounts when serialized.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Order, OrderItem, Product, User
from ..money import from_cents
from ..time_utils import day_bounds, parse_day
from .order_service import list_orders

UNKNOWN_PRODUCT = "unknown"


def _parse_report_day(value: str | None):
    if not value or not value.strip():
        raise ValidationError("date is required", [{"field": "date", "message": "date is required (YYYY-MM-DD)"}])
    try:
        return parse_day(value)
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD", [{"field": "date", "message": "date must be YYYY-MM-DD"}])


def _line_rows(start=None, end=None):
    """
    (resolved_product_id | None, snapshot name, price_cents, quantity) for every
    line item, oldest order first. A product id that no longer resolves comes
    back as None.
    """
    query = (
        db.session.query(
            Product.id,
            OrderItem.name,
            OrderItem.price_cents,
            OrderItem.quantity,
        )
        .select_from(OrderItem)
        .join(Order, Order.id == OrderItem.order_id)
        .outerjoin(Product, Product.id == OrderItem.product_id)
    )
    if start is not None:
        query = query.filter(Order.created_at >= start, Order.created_at < end)
    return query.order_by(Order.created_at.asc(), Order.id.asc(), OrderItem.position.asc()).all()


def _group_lines(rows) -> dict:
    """Group line rows by product key; the display name is the first snapshot seen."""
    groups: dict = {}
    for product_id, name, price_cents, quantity in rows:
        key = product_id if product_id is not None else UNKNOWN_PRODUCT
        bucket = groups.get(key)
        if bucket is None:
            bucket = groups[key] = {"name": name, "quantity": 0, "revenue_cents": 0}
        bucket["quantity"] += quantity
        bucket["revenue_cents"] += price_cents * quantity
    return groups


def daily_sales(date_str: str | None) -> dict:
    """
    Totals for one UTC calendar day [D 00:00, D+1 00:00).

    productsSold keeps first-seen order within the day.
    """
    day = _parse_report_day(date_str)
    start, end = day_bounds(day)

    total_cents, total_orders = (
        db.session.query(
            func.coalesce(func.sum(Order.total_amount_cents), 0),
            func.count(Order.id),
        )
        .filter(Order.created_at >= start, Order.created_at < end)
        .one()
    )

    groups = _group_lines(_line_rows(start, end))
    products_sold = [
        {
            "productId": key,
            "name": bucket["name"],
            "quantity": bucket["quantity"],
            "totalPrice": from_cents(bucket["revenue_cents"]),
            "totalPriceCents": bucket["revenue_cents"],
        }
        for key, bucket in groups.items()
    ]

    return {
        "date": day.isoformat(),
        "totalSales": from_cents(int(total_cents)),
        "totalSalesCents": int(total_cents),
        "totalOrders": int(total_orders),
        "productsSold": products_sold,
    }


def product_sales() -> list[dict]:
    """All-time per-product quantity and revenue, highest revenue first."""
    groups = _group_lines(_line_rows())
    report = [
        {
            "productId": key,
            "productName": bucket["name"],
            "totalQuantitySold": bucket["quantity"],
            "totalSales": from_cents(bucket["revenue_cents"]),
            "totalSalesCents": bucket["revenue_cents"],
        }
        for key, bucket in groups.items()
    ]
    report.sort(key=lambda r: (-r["totalSalesCents"], r["productName"]))
    return report


def employee_sales() -> list[dict]:
    """
    All-time totals per employee.

    Inner join on users: orders whose placing user no longer exists are
    left out of this report.
    """
    rows = (
        db.session.query(
            User.id,
            User.username,
            User.role,
            func.coalesce(func.sum(Order.total_amount_cents), 0).label("total_cents"),
            func.count(Order.id).label("order_count"),
        )
        .join(Order, Order.ordered_by_user_id == User.id)
        .group_by(User.id, User.username, User.role)
        .all()
    )

    report = [
        {
            "employeeId": user_id,
            "employeeName": username,
            "employeeRole": role,
            "totalSales": from_cents(int(total_cents)),
            "totalSalesCents": int(total_cents),
            "numberOfOrders": int(order_count),
        }
        for user_id, username, role, total_cents, order_count in rows
    ]
    report.sort(key=lambda r: (-r["totalSalesCents"], r["employeeName"]))
    return report


def orders_for_day(date_str: str | None) -> list[Order]:
    """Every order placed on the given UTC day, newest first."""
    _parse_report_day(date_str)
    return list_orders(date=date_str)

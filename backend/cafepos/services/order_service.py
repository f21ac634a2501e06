"""
Order Ledger - system of record for sales

WHY: Reports are computed from orders, so an order is created in the same
transaction that takes its stock, and its line items freeze product name
and price at that moment.

LIFECYCLE:
    pending -> completed -> cancelled
    pending -> cancelled
    cancelled is terminal

Deleting an order is a hard delete and does NOT restore stock.
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.orm import joinedload, selectinload

from ..errors import ForbiddenError, NotFoundError, PosError, ValidationError
from ..extensions import db
from ..models import Order, OrderItem, User
from ..models.orders import (
    ORDER_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_PENDING,
)
from ..money import from_cents
from ..permissions import role_has_permission
from ..time_utils import day_bounds, month_bounds, parse_day
from ..validation import MAX_DB_INT, ItemSnapshot, RequestedItem
from . import auth_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from .stock_service import apply_decrements, validate_lines

logger = logging.getLogger(__name__)


STATUS_TRANSITIONS = {
    STATUS_PENDING: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: {STATUS_CANCELLED},
    STATUS_CANCELLED: set(),
}

# Labels used by the Arabic cashier UI
STATUS_ALIASES = {
    "قيد التنفيذ": STATUS_PENDING,
    "مكتمل": STATUS_COMPLETED,
    "ملغي": STATUS_CANCELLED,
    "canceled": STATUS_CANCELLED,
}


def normalize_status(value: str) -> str:
    """Map a status label (English or Arabic UI label) to its canonical value."""
    raw = (value or "").strip()
    status = STATUS_ALIASES.get(raw) or STATUS_ALIASES.get(raw.lower(), raw.lower())
    if status not in ORDER_STATUSES:
        message = f"Invalid status '{raw}'. Must be one of: {', '.join(ORDER_STATUSES)}"
        raise ValidationError(message, [{"field": "status", "message": message}])
    return status


def _check_transition(current: str, new: str) -> None:
    if current == new:
        return
    if new not in STATUS_TRANSITIONS.get(current, set()):
        message = f"Cannot change order status from {current} to {new}"
        raise ValidationError(message, [{"field": "status", "message": message}])


def _check_total(client_cents: int | None, computed_cents: int) -> int:
    """
    totalAmount is never trusted blindly: it must match the line items
    within ORDER_TOTAL_TOLERANCE_CENTS. Returns the total to store.
    """
    if client_cents is None:
        return computed_cents
    tolerance = current_app.config.get("ORDER_TOTAL_TOLERANCE_CENTS", 0)
    if abs(client_cents - computed_cents) > tolerance:
        message = (
            f"totalAmount {from_cents(client_cents):.2f} does not match "
            f"line items total {from_cents(computed_cents):.2f}"
        )
        raise ValidationError(message, [{"field": "totalAmount", "message": message}])
    return computed_cents


def _with_relations(query):
    return query.options(selectinload(Order.items), joinedload(Order.ordered_by))


# =============================================================================
# CREATE
# =============================================================================

def place_order(
    items: list[RequestedItem],
    total_amount_cents: int | None,
    user_id: int,
    status: str = STATUS_COMPLETED,
) -> Order:
    """
    Reconcile stock and append the order in a single transaction.

    All-or-nothing: a missing product, insufficient stock or a total mismatch
    on any line rolls back every decrement of this order.
    """
    if not items:
        raise ValidationError("Order must contain at least one item",
                              [{"field": "items", "message": "items must be a non-empty list"}])
    status = normalize_status(status)

    def _op():
        begin_write()
        lines = validate_lines(items)
        computed = sum(line.price_cents * line.quantity for line in lines)
        total = _check_total(total_amount_cents, computed)

        apply_decrements(lines)

        order = Order(
            total_amount_cents=total,
            status=status,
            ordered_by_user_id=user_id,
            items=[
                OrderItem(
                    position=i,
                    product_id=line.product_id,
                    name=line.name,
                    price_cents=line.price_cents,
                    quantity=line.quantity,
                )
                for i, line in enumerate(lines)
            ],
        )
        db.session.add(order)
        db.session.commit()
        return order

    try:
        order = run_with_retry(_op)
    except PosError as exc:
        logger.info("order_rejected user_id=%s reason=%s", user_id, exc)
        raise

    logger.info(
        "order_placed order_id=%s user_id=%s lines=%s total_cents=%s",
        order.id, user_id, len(order.items), order.total_amount_cents,
    )
    return order


# =============================================================================
# READ
# =============================================================================

def get_order(order_id: int) -> Order:
    order = _with_relations(db.session.query(Order)).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order_for_user(order_id: int, user: User) -> Order:
    """Managers and admins may read any order; everyone else only their own."""
    order = get_order(order_id)
    if role_has_permission(user.role, "VIEW_ALL_ORDERS") or order.ordered_by_user_id == user.id:
        return order
    raise ForbiddenError("You do not have permission to view this order")


def list_orders(
    *,
    date: str | None = None,
    month: str | None = None,
    status: str | None = None,
    cashier: str | None = None,
    search: str | None = None,
) -> list[Order]:
    """
    Filtered ledger listing, newest first.

    - date: YYYY-MM-DD, UTC calendar day
    - month: YYYY-MM, UTC calendar month
    - status: exact match after normalization
    - cashier: exact username; unknown username yields an empty list
    - search: order id (exact, when numeric) or username substring
    """
    query = _with_relations(db.session.query(Order))

    if date:
        try:
            start, end = day_bounds(parse_day(date))
        except ValueError:
            raise ValidationError("date must be YYYY-MM-DD", [{"field": "date", "message": "date must be YYYY-MM-DD"}])
        query = query.filter(Order.created_at >= start, Order.created_at < end)

    if month:
        try:
            start, end = month_bounds(month)
        except ValueError:
            raise ValidationError("month must be YYYY-MM", [{"field": "month", "message": "month must be YYYY-MM"}])
        query = query.filter(Order.created_at >= start, Order.created_at < end)

    if status:
        query = query.filter(Order.status == normalize_status(status))

    if cashier:
        user = auth_service.find_by_username(cashier.strip())
        if not user:
            return []
        query = query.filter(Order.ordered_by_user_id == user.id)

    if search and search.strip():
        term = search.strip()
        conditions = []
        if term.isdigit() and int(term) <= MAX_DB_INT:
            conditions.append(Order.id == int(term))
        user_ids = auth_service.search_user_ids(term)
        if user_ids:
            conditions.append(Order.ordered_by_user_id.in_(user_ids))
        if not conditions:
            return []
        query = query.filter(or_(*conditions))

    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


# =============================================================================
# CORRECTIONS
# =============================================================================

def update_order(order_id: int, patch: dict) -> Order:
    """
    Apply an admin/manager correction.

    patch keys (all optional): items (list[ItemSnapshot]), total_amount_cents,
    status. Replacing items never touches stock. The stored total always
    matches the stored items.
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).populate_existing().first()
        if not order:
            raise NotFoundError("Order not found")

        if "status" in patch:
            new_status = normalize_status(patch["status"])
            _check_transition(order.status, new_status)
            order.status = new_status

        if "items" in patch:
            snapshots: list[ItemSnapshot] = patch["items"]
            order.items = [
                OrderItem(
                    position=i,
                    product_id=snap.product_id,
                    name=snap.name,
                    price_cents=snap.price_cents,
                    quantity=snap.quantity,
                )
                for i, snap in enumerate(snapshots)
            ]

        computed = sum(item.subtotal_cents for item in order.items)
        if "total_amount_cents" in patch:
            order.total_amount_cents = _check_total(patch["total_amount_cents"], computed)
        elif "items" in patch:
            order.total_amount_cents = computed

        db.session.commit()
        return order

    order = run_with_retry(_op)
    logger.info("order_updated order_id=%s fields=%s", order_id, ",".join(sorted(patch)))
    return get_order(order.id)


def delete_order(order_id: int) -> None:
    """Hard delete. Consumed stock is NOT restored."""
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    db.session.delete(order)
    db.session.commit()
    logger.info("order_deleted order_id=%s", order_id)

"""
Stock Reconciliation Engine

WHY: An order's demand must be applied to live stock all-or-nothing, and two
orders racing for the same product must never drive stock negative.

FLOW (inside the caller's transaction):
    1. validate_lines: walk lines in request order; fetch each product
       (row-locked where the backend supports it) and check cumulative
       demand per product.
    2. First missing product -> NotFoundError; first overdrawn product ->
       InsufficientStockError. Nothing has been written yet.
    3. apply_decrements: one conditional decrement per product, ascending id.
       A zero-row update means another order won the race.

Nothing is committed here. Any exception leaves the caller to roll back,
which also undoes decrements already applied for this order.

Ingredient stock is never touched; recipe lines are descriptive only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import Product
from ..validation import RequestedItem
from .catalog_service import decrement_stock_if_available
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciledLine:
    """A requested line bound to the product state it was validated against."""
    product_id: int
    name: str
    price_cents: int
    quantity: int


def _lock_products(product_ids: set[int]) -> dict[int, Product]:
    """Row-lock the requested products in ascending id order."""
    query = db.session.query(Product).filter(Product.id.in_(sorted(product_ids))).order_by(Product.id)
    return {product.id: product for product in lock_for_update(query).populate_existing().all()}


def validate_lines(items: list[RequestedItem]) -> list[ReconciledLine]:
    """
    Check every line against current stock without writing anything.

    Demand is cumulative per product: two lines of 3 against stock 5 fail on
    the second line, reporting the available 5.
    """
    products = _lock_products({item.product_id for item in items})
    demand: dict[int, int] = {}
    lines: list[ReconciledLine] = []

    for item in items:
        product = products.get(item.product_id)
        if product is None:
            label = item.name or f"#{item.product_id}"
            raise NotFoundError(
                f"Product {label} not found",
                details={"productId": item.product_id},
            )

        demand[product.id] = demand.get(product.id, 0) + item.quantity
        if demand[product.id] > product.stock:
            raise InsufficientStockError(product.id, product.name, product.stock, demand[product.id])

        lines.append(ReconciledLine(
            product_id=product.id,
            name=product.name,
            price_cents=product.price_cents,
            quantity=item.quantity,
        ))

    return lines


def apply_decrements(lines: list[ReconciledLine]) -> None:
    """Conditionally decrement stock for validated lines, one UPDATE per product."""
    totals: dict[int, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity

    for product_id in sorted(totals):
        quantity = totals[product_id]
        if not decrement_stock_if_available(product_id, quantity):
            product = db.session.get(Product, product_id, populate_existing=True)
            if product is None:
                raise NotFoundError("Product not found", details={"productId": product_id})
            logger.warning(
                "stock_race_lost product_id=%s requested=%s available=%s",
                product_id, quantity, product.stock,
            )
            raise InsufficientStockError(product.id, product.name, product.stock, quantity)

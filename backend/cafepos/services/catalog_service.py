# backend/cafepos/services/catalog_service.py
"""
Catalog Store: products, ingredients and recipe lines.

Stock is only ever changed through conditional UPDATE statements
(decrement_stock_if_available / adjust_stock) or an explicit catalog edit,
so concurrent orders cannot push it below zero.
"""
from __future__ import annotations

import logging

from sqlalchemy import update

from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Ingredient, Product, ProductIngredient
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"name", "category", "description", "image", "price_cents", "stock"}
INGREDIENT_MUTABLE_FIELDS = {"name", "stock", "unit"}


# =============================================================================
# PRODUCTS
# =============================================================================

def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def find_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def find_product_by_name(name: str) -> Product | None:
    return db.session.query(Product).filter_by(name=name).first()


def get_product(product_id: int) -> Product:
    product = find_product(product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def _ensure_unique_product_name(name: str, product_id: int | None = None) -> None:
    existing = find_product_by_name(name)
    if existing and existing.id != product_id:
        raise ConflictError("A product with this name already exists")


def _replace_recipe(product: Product, ingredient_lines: list[dict]) -> None:
    ids = {line["ingredient_id"] for line in ingredient_lines}
    if ids:
        found = {row.id for row in db.session.query(Ingredient.id).filter(Ingredient.id.in_(ids)).all()}
        missing = sorted(ids - found)
        if missing:
            raise ValidationError(
                f"Ingredient {missing[0]} does not exist",
                [{"field": "ingredients", "message": f"Ingredient {i} does not exist"} for i in missing],
            )

    product.ingredients = [
        ProductIngredient(
            ingredient_id=line["ingredient_id"],
            quantity_used=line["quantity_used"],
            unit=line["unit"],
        )
        for line in ingredient_lines
    ]


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def create_product(patch: dict, ingredient_lines: list[dict] | None = None) -> Product:
    _ensure_unique_product_name(patch["name"])

    product = Product()
    apply_product_patch(product, patch)
    _replace_recipe(product, ingredient_lines or [])

    db.session.add(product)
    db.session.commit()
    logger.info("product_created product_id=%s name=%s stock=%s", product.id, product.name, product.stock)
    return product


def update_product(product_id: int, patch: dict, ingredient_lines: list[dict] | None = None) -> Product:
    """
    Apply a catalog edit. ingredient_lines=None keeps the current recipe.

    Retried on StaleDataError: an order may have bumped version_id between
    load and flush.
    """
    def _op():
        product = get_product(product_id)
        if "name" in patch and patch["name"] != product.name:
            _ensure_unique_product_name(patch["name"], product_id)

        apply_product_patch(product, patch)
        if ingredient_lines is not None:
            _replace_recipe(product, ingredient_lines)

        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """
    Delete a product. Historical order items keep their snapshot; their
    product reference no longer resolves and reports bucket them as unknown.
    """
    product = get_product(product_id)
    db.session.delete(product)
    db.session.commit()
    logger.info("product_deleted product_id=%s", product_id)


# =============================================================================
# STOCK MUTATIONS
# =============================================================================

def _expire_cached_stock(product_id: int) -> None:
    """Drop the identity-map copy of stock/version after a bulk UPDATE."""
    product = db.session.identity_map.get(db.session.identity_key(Product, product_id))
    if product is not None:
        db.session.expire(product, ["stock", "version_id"])


def decrement_stock_if_available(product_id: int, quantity: int) -> bool:
    """
    Atomic compare-and-decrement:
        UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q

    Returns False when the condition did not hold (or the product is gone).
    Does not commit; the caller owns the transaction.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )
    _expire_cached_stock(product_id)
    return result.rowcount == 1


def adjust_stock(product_id: int, delta: int, *, commit: bool = True) -> Product:
    """
    Atomically add delta (may be negative) to a product's stock.

    Raises NotFoundError for unknown products and InsufficientStockError
    when the result would be negative.
    """
    def _op():
        result = db.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock + delta >= 0)
            .values(stock=Product.stock + delta, version_id=Product.version_id + 1)
            .execution_options(synchronize_session=False)
        )
        _expire_cached_stock(product_id)
        if result.rowcount != 1:
            product = get_product(product_id)
            raise InsufficientStockError(product.id, product.name, product.stock, -delta)

        product = get_product(product_id)
        if commit:
            db.session.commit()
        logger.info("stock_adjusted product_id=%s delta=%s stock=%s", product_id, delta, product.stock)
        return product

    return run_with_retry(_op)


# =============================================================================
# INGREDIENTS
# =============================================================================

def list_ingredients() -> list[Ingredient]:
    return db.session.query(Ingredient).order_by(Ingredient.name.asc()).all()


def get_ingredient(ingredient_id: int) -> Ingredient:
    ingredient = db.session.get(Ingredient, ingredient_id)
    if not ingredient:
        raise NotFoundError("Ingredient not found")
    return ingredient


def _ensure_unique_ingredient_name(name: str, ingredient_id: int | None = None) -> None:
    existing = db.session.query(Ingredient).filter_by(name=name).first()
    if existing and existing.id != ingredient_id:
        raise ConflictError("An ingredient with this name already exists")


def create_ingredient(patch: dict) -> Ingredient:
    _ensure_unique_ingredient_name(patch["name"])
    ingredient = Ingredient(**{k: v for k, v in patch.items() if k in INGREDIENT_MUTABLE_FIELDS})
    db.session.add(ingredient)
    db.session.commit()
    return ingredient


def update_ingredient(ingredient_id: int, patch: dict) -> Ingredient:
    ingredient = get_ingredient(ingredient_id)
    if "name" in patch and patch["name"] != ingredient.name:
        _ensure_unique_ingredient_name(patch["name"], ingredient_id)
    for k, v in patch.items():
        if k in INGREDIENT_MUTABLE_FIELDS:
            setattr(ingredient, k, v)
    db.session.commit()
    return ingredient


def delete_ingredient(ingredient_id: int) -> None:
    ingredient = get_ingredient(ingredient_id)
    in_use = db.session.query(ProductIngredient).filter_by(ingredient_id=ingredient_id).count()
    if in_use:
        raise ConflictError(f"Ingredient is used by {in_use} product recipe line(s)")
    db.session.delete(ingredient)
    db.session.commit()

from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z, utcnow


DEFAULT_PRODUCT_IMAGE = "https://via.placeholder.com/150"


class Product(db.Model):
    """
    Menu item sold at the counter.

    STOCK INVARIANT: stock never drops below zero. Enforced twice:
    - CHECK constraint at the database level
    - conditional decrements in catalog_service (stock >= quantity)

    version_id is bumped on every stock change so a stale catalog edit
    fails with StaleDataError instead of overwriting stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_category_name", "category", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    category = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True, default="")
    image = db.Column(db.String(512), nullable=True, default=DEFAULT_PRODUCT_IMAGE)

    # Authoritative storage in cents (API exposes decimal "price")
    price_cents = db.Column(db.Integer, nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    ingredients = db.relationship(
        "ProductIngredient",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductIngredient.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self, include_ingredients: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description or "",
            "image": self.image,
            "price": from_cents(self.price_cents),
            "priceCents": self.price_cents,
            "stock": self.stock,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_ingredients:
            data["ingredients"] = [line.to_dict() for line in self.ingredients]
        return data


class Ingredient(db.Model):
    """Raw ingredient stock. Informational only; orders never consume it."""
    __tablename__ = "ingredients"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_ingredients_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    stock = db.Column(db.Float, nullable=False, default=0)
    unit = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "stock": self.stock,
            "unit": self.unit,
            "createdAt": to_utc_z(self.created_at),
        }


class ProductIngredient(db.Model):
    """Recipe line: how much of an ingredient one unit of a product uses."""
    __tablename__ = "product_ingredients"
    __table_args__ = (
        db.CheckConstraint("quantity_used >= 0", name="ck_product_ingredients_qty"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity_used = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(32), nullable=False)

    ingredient = db.relationship("Ingredient")

    def to_dict(self) -> dict:
        return {
            "ingredientId": self.ingredient_id,
            "ingredientName": self.ingredient.name if self.ingredient else None,
            "quantityUsed": self.quantity_used,
            "unit": self.unit,
        }

from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z, utcnow


# Order lifecycle states
STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
ORDER_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED)


class Order(db.Model):
    """
    Placed order: the ledger record sales reports are computed from.

    created_at is the order date. It is set once at creation and never
    written again; edits only touch items, total and status.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("total_amount_cents >= 0", name="ck_orders_total_non_negative"),
        db.CheckConstraint(
            "status IN ('pending', 'completed', 'cancelled')", name="ck_orders_status"
        ),
        db.Index("ix_orders_created_at", "created_at"),
        db.Index("ix_orders_user_created", "ordered_by_user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_COMPLETED, index=True)

    ordered_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )
    ordered_by = db.relationship("User")

    def __repr__(self) -> str:
        return f"<Order id={self.id} total_cents={self.total_amount_cents} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [item.to_dict() for item in self.items],
            "totalAmount": from_cents(self.total_amount_cents),
            "totalAmountCents": self.total_amount_cents,
            "status": self.status,
            "orderDate": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "orderedById": self.ordered_by_user_id,
            "orderedBy": self.ordered_by.to_summary() if self.ordered_by else None,
        }


class OrderItem(db.Model):
    """
    Line item snapshot.

    name and price_cents are frozen at order time; later catalog edits
    never rewrite history. product_id may dangle after a product is deleted.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity"),
        db.CheckConstraint("price_cents >= 0", name="ck_order_items_price"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    position = db.Column(db.Integer, nullable=False, default=0)
    name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    @property
    def subtotal_cents(self) -> int:
        return self.price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": from_cents(self.price_cents),
            "priceCents": self.price_cents,
            "quantity": self.quantity,
            "subtotal": from_cents(self.subtotal_cents),
        }

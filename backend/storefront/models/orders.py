from __future__ import annotations

from ..extensions import db
from storefront.money import format_cents
from storefront.time_utils import utcnow, to_utc_z


ORDER_STATUSES = ("PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED")


class Order(db.Model):
    """
    Order created by checkout.

    Immutable after creation except for status. total_cents is computed once
    from the captured line prices and never recomputed.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_orders_total_nonnegative"),
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    total_cents = db.Column(db.Integer, nullable=False)

    # Shipping
    address = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(255), nullable=False)
    zip_code = db.Column(db.String(255), nullable=False)
    country = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship(
        "User",
        backref=db.backref("orders", lazy=True, cascade="all, delete-orphan"),
    )
    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def to_dict(self, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "total": format_cents(self.total_cents),
            "total_cents": self.total_cents,
            "address": self.address,
            "city": self.city,
            "zip_code": self.zip_code,
            "country": self.country,
            "items": [item.to_dict() for item in self.items],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_user:
            data["user"] = {"name": self.user.name, "email": self.user.email} if self.user else None
        return data


class OrderItem(db.Model):
    """
    Order line. price_cents is the unit price captured at purchase time.

    product_id is nulled if the product is later deleted; product_name keeps
    the line readable.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        db.CheckConstraint("price_cents >= 0", name="ck_order_items_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product", backref=db.backref("order_items", lazy=True))

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product": self.product.to_dict() if self.product else None,
            "quantity": self.quantity,
            "price": format_cents(self.price_cents),
            "price_cents": self.price_cents,
            "line_total": format_cents(self.line_total_cents),
            "line_total_cents": self.line_total_cents,
        }

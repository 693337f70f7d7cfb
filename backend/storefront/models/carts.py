from __future__ import annotations

from ..extensions import db
from storefront.money import format_cents
from storefront.time_utils import utcnow, to_utc_z


class Cart(db.Model):
    """
    Per-user shopping cart (1:1 with User), created lazily on first access.

    Lines are consumed and removed by a successful checkout.
    """
    __tablename__ = "carts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship(
        "User",
        backref=db.backref("cart", uselist=False, cascade="all, delete-orphan"),
    )
    items = db.relationship(
        "CartItem",
        backref="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    @property
    def total_cents(self) -> int:
        return sum(item.subtotal_cents for item in self.items)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "item_count": sum(item.quantity for item in self.items),
            "total": format_cents(self.total_cents),
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CartItem(db.Model):
    """One (product, quantity) line of a cart. Quantity is always >= 1."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship(
        "Product",
        backref=db.backref("cart_items", lazy=True, cascade="all, delete-orphan"),
    )

    @property
    def subtotal_cents(self) -> int:
        return self.product.price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cart_id": self.cart_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "product": self.product.to_dict(),
            "subtotal": format_cents(self.subtotal_cents),
            "subtotal_cents": self.subtotal_cents,
            "created_at": to_utc_z(self.created_at),
        }

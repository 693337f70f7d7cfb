# Overview: Service-layer operations for carts; encapsulates business logic and database work.

"""
Cart aggregate.

One cart per user, created lazily the first time it is read or written.
Stock is NOT checked here; adding more than is available is allowed and is
caught at checkout. Item mutations are always scoped to the caller's own
cart, so a foreign item id behaves like a missing one.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartItem, Product
from ..validation import MAX_STOCK, NotFoundError, ValidationError, validate_quantity
from .concurrency import run_with_retry


def find_cart(user_id: int) -> Cart | None:
    return db.session.query(Cart).filter_by(user_id=user_id).first()


def get_or_create_cart(user_id: int) -> Cart:
    """Return the user's cart, creating an empty one on first access."""
    cart = find_cart(user_id)
    if cart:
        return cart

    cart = Cart(user_id=user_id)
    db.session.add(cart)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created it first
        db.session.rollback()
        cart = find_cart(user_id)
        if cart is None:
            raise
    return cart


def get_cart(user_id: int) -> Cart:
    """Get the user's cart with product details. Never fails with "cart not found"."""
    return get_or_create_cart(user_id)


def add_item(user_id: int, product_id: int, quantity: int = 1) -> Cart:
    """
    Add quantity of a product to the cart.

    An existing line for the product is incremented; otherwise a new line is
    inserted. Raises NotFoundError for an unknown product.
    """
    quantity = validate_quantity(quantity)

    def _op():
        product = db.session.query(Product).filter_by(id=product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        cart = get_or_create_cart(user_id)
        item = db.session.query(CartItem).filter_by(cart_id=cart.id, product_id=product_id).first()
        if item:
            # Increment in SQL so two concurrent adds both count; the line stays within MAX_STOCK
            updated = (
                db.session.query(CartItem)
                .filter(CartItem.id == item.id, CartItem.quantity <= MAX_STOCK - quantity)
                .update({CartItem.quantity: CartItem.quantity + quantity}, synchronize_session=False)
            )
            if not updated:
                db.session.rollback()
                raise ValidationError(f"quantity cannot exceed {MAX_STOCK}")
        else:
            db.session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))

        db.session.commit()
        return cart

    try:
        return run_with_retry(_op)
    except IntegrityError:
        # Lost an insert race on (cart_id, product_id); the line exists now
        db.session.rollback()
        return run_with_retry(_op)


def _get_own_item(user_id: int, item_id: int) -> CartItem | None:
    return (
        db.session.query(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .filter(CartItem.id == item_id, Cart.user_id == user_id)
        .first()
    )


def set_quantity(user_id: int, item_id: int, quantity: int) -> Cart:
    """
    Overwrite a line's quantity; quantity < 1 deletes the line.

    Raises NotFoundError if the item is not in the caller's cart.
    """
    quantity = validate_quantity(quantity, minimum=None)

    item = _get_own_item(user_id, item_id)
    if not item:
        raise NotFoundError("Cart item not found")

    if quantity < 1:
        db.session.delete(item)
    else:
        item.quantity = quantity
    db.session.commit()
    return get_or_create_cart(user_id)


def remove_item(user_id: int, item_id: int) -> bool:
    """Delete a line from the caller's cart. Idempotent; returns whether a row was removed."""
    item = _get_own_item(user_id, item_id)
    if not item:
        return False
    db.session.delete(item)
    db.session.commit()
    return True


def clear_items(cart: Cart) -> int:
    """Delete every line of cart without committing. Returns the number removed."""
    removed = db.session.query(CartItem).filter_by(cart_id=cart.id).delete(synchronize_session=False)
    db.session.expire(cart, ["items"])
    return removed


def clear_cart(user_id: int) -> int:
    """Remove all lines from the user's cart. No-op when already empty or missing."""
    cart = find_cart(user_id)
    if not cart:
        return 0
    removed = clear_items(cart)
    db.session.commit()
    return removed

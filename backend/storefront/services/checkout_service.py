"""
Checkout: turn the caller's cart into an immutable order.

Steps, all inside one unit of work:
1. Lock and load the cart with its lines and product snapshots. Empty -> EmptyCartError.
2. Check every line against stock; the first shortfall aborts with
   InsufficientStockError before anything is written.
3. Total = sum(price_cents * quantity) using the prices read in step 1.
4. Create the PENDING order and one OrderItem per line at those prices.
5. Decrement stock per line with the atomic conditional update. A lost race
   here raises InsufficientStockError and rolls back steps 4-6 entirely.
6. Clear the cart.
7. Commit and return the order.

Locking the cart row serializes double-submits by the same user, so a cart
is consumed at most once.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Cart, CartItem, Order, OrderItem
from ..validation import require_text_fields
from . import inventory_service
from .cart_service import clear_items
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .inventory_service import InsufficientStockError


SHIPPING_FIELDS = {
    "address": ("address",),
    "city": ("city",),
    "zip_code": ("zip_code", "zipCode"),
    "country": ("country",),
}


class CheckoutError(Exception):
    """Raised for checkout errors the caller can correct."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class EmptyCartError(CheckoutError):
    """Raised when checkout is attempted with no cart lines."""


def validate_shipping(payload: dict) -> dict:
    return require_text_fields(payload, SHIPPING_FIELDS)


def _load_locked_lines(user_id: int) -> list[CartItem]:
    cart = lock_for_update(db.session.query(Cart).filter_by(user_id=user_id)).first()
    if not cart:
        return []
    return (
        db.session.query(CartItem)
        .filter_by(cart_id=cart.id)
        .order_by(CartItem.id.asc())
        .all()
    )


def _first_shortfall(lines: list[CartItem]) -> InsufficientStockError | None:
    for line in lines:
        if not inventory_service.check_availability(line.product_id, line.quantity):
            return inventory_service.insufficient_stock(
                line.product_id,
                line.product.name,
                inventory_service.get_stock(line.product_id),
                line.quantity,
            )
    return None


def place_order(user_id: int, shipping: dict) -> Order:
    """
    Execute checkout for user_id.

    shipping is the raw request body; address, city, zip_code (or zipCode)
    and country are required.

    Raises ValidationError, EmptyCartError or InsufficientStockError. No
    order exists and no stock has moved when any of them is raised.
    """
    shipping = validate_shipping(shipping)

    def _op():
        with unit_of_work():
            lines = _load_locked_lines(user_id)
            if not lines:
                raise EmptyCartError("Cart is empty")

            shortfall = _first_shortfall(lines)
            if shortfall:
                raise shortfall

            # Point-in-time price snapshot
            priced = [(line, line.product.price_cents) for line in lines]
            total_cents = sum(price * line.quantity for line, price in priced)

            order = Order(
                user_id=user_id,
                status="PENDING",
                total_cents=total_cents,
                **shipping,
            )
            for line, price in priced:
                order.items.append(OrderItem(
                    product_id=line.product_id,
                    product_name=line.product.name,
                    quantity=line.quantity,
                    price_cents=price,
                ))
            db.session.add(order)
            db.session.flush()

            try:
                for line in lines:
                    inventory_service.decrement(line.product_id, line.quantity)
            except InsufficientStockError as exc:
                current_app.logger.warning(
                    "Checkout for user %s rolled back: stock changed after validation (%s)",
                    user_id, exc.details,
                )
                raise

            clear_items(lines[0].cart)
            order_id = order.id

        current_app.logger.info(
            "Order %s placed by user %s: %d line(s), total_cents=%d",
            order_id, user_id, len(priced), total_cents,
        )
        return db.session.get(Order, order_id)

    return run_with_retry(_op)

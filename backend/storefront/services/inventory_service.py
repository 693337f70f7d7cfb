# Overview: Service-layer operations for inventory; product stock counters.

"""
Inventory invariants (authoritative)

- Product.stock is the available quantity and may never go negative.
- check_availability() is a non-binding hint for early user feedback. Two
  checkouts can both pass it for the last unit.
- decrement() is the single enforcement point: one conditional UPDATE
  (stock = stock - q WHERE stock >= q). Zero affected rows means the stock was
  not there at write time and InsufficientStockError is raised.
- Neither function commits. Callers own the transaction (see
  concurrency.unit_of_work) so a failed decrement rolls back everything
  written alongside it.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError


class InsufficientStockError(Exception):
    """Raised when a product does not have enough stock for a requested quantity."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def insufficient_stock(product_id: int, product_name: str | None, available: int, requested: int) -> InsufficientStockError:
    label = product_name or f"product {product_id}"
    return InsufficientStockError(
        f"Insufficient stock for {label}. Available: {available}, Requested: {requested}",
        details={
            "product_id": product_id,
            "product_name": product_name,
            "available": available,
            "requested": requested,
        },
    )


def _require_positive(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("quantity must be a positive integer")


def get_stock(product_id: int) -> int:
    stock = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
    if stock is None:
        raise NotFoundError("Product not found")
    return int(stock)


def check_availability(product_id: int, quantity: int) -> bool:
    """True iff current stock >= quantity. Advisory only; see decrement()."""
    return get_stock(product_id) >= quantity


def decrement(product_id: int, quantity: int) -> None:
    """
    Atomically reduce stock by quantity.

    Compare-and-decrement in a single statement; concurrent callers racing
    for the same units cannot both succeed, on any database.
    """
    _require_positive(quantity)

    updated = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.stock >= quantity)
        .update(
            {
                Product.stock: Product.stock - quantity,
                Product.version_id: Product.version_id + 1,
            },
            synchronize_session=False,
        )
    )
    if updated == 1:
        return

    row = db.session.query(Product.name, Product.stock).filter(Product.id == product_id).first()
    if row is None:
        raise NotFoundError("Product not found")
    raise insufficient_stock(product_id, row.name, int(row.stock), quantity)


def restock(product_id: int, quantity: int) -> None:
    """Atomically return quantity to stock (order cancellation)."""
    _require_positive(quantity)

    updated = (
        db.session.query(Product)
        .filter(Product.id == product_id)
        .update(
            {
                Product.stock: Product.stock + quantity,
                Product.version_id: Product.version_id + 1,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise NotFoundError("Product not found")

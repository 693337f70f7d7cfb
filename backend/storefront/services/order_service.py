# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order queries and the status lifecycle.

Legal transitions:
    PENDING -> PROCESSING -> SHIPPED -> DELIVERED
    PENDING | PROCESSING | SHIPPED -> CANCELLED
DELIVERED and CANCELLED are terminal. Setting the current status again is a
no-op. Cancelling returns the order's quantities to stock in the same
transaction as the status change.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order, ORDER_STATUSES
from ..validation import NotFoundError, ValidationError
from . import inventory_service
from .concurrency import lock_for_update, run_with_retry, unit_of_work


ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "PENDING": {"PROCESSING", "CANCELLED"},
    "PROCESSING": {"SHIPPED", "CANCELLED"},
    "SHIPPED": {"DELIVERED", "CANCELLED"},
    "DELIVERED": set(),
    "CANCELLED": set(),
}


class OrderStatusError(Exception):
    """Raised for a status change outside the allowed lifecycle."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def list_user_orders(user_id: int) -> list[Order]:
    """Caller's own orders, newest first."""
    return (
        db.session.query(Order)
        .filter_by(user_id=user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_all_orders(status: str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if status:
        status = normalize_status(status)
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def normalize_status(value) -> str:
    if not isinstance(value, str) or value.strip().upper() not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")
    return value.strip().upper()


def can_transition(current: str, new: str) -> bool:
    return new == current or new in ALLOWED_TRANSITIONS.get(current, set())


def update_status(order_id: int, new_status, actor_user_id: int | None = None) -> Order:
    """Move an order to new_status, enforcing ALLOWED_TRANSITIONS."""
    new_status = normalize_status(new_status)

    def _op():
        with unit_of_work():
            order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
            if not order:
                raise NotFoundError("Order not found")

            previous = order.status
            if previous == new_status:
                return order

            if not can_transition(previous, new_status):
                raise OrderStatusError(
                    f"Cannot change order status from {previous} to {new_status}",
                    details={
                        "current_status": previous,
                        "requested_status": new_status,
                        "allowed": sorted(ALLOWED_TRANSITIONS.get(previous, set())),
                    },
                )

            if new_status == "CANCELLED":
                for item in order.items:
                    # Lines whose product was deleted have nothing to return to
                    if item.product_id is not None:
                        inventory_service.restock(item.product_id, item.quantity)

            order.status = new_status

        current_app.logger.info(
            "Order %s status %s -> %s by user %s", order_id, previous, new_status, actor_user_id
        )
        return order

    return run_with_retry(_op)

# Overview: Service-layer operations for reporting; admin dashboard aggregates.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from storefront.extensions import db
from storefront.models import Order, Product, User, ORDER_STATUSES
from storefront.money import format_cents


def dashboard_stats(*, recent_limit: int = 10, low_stock_limit: int = 10) -> dict:
    """
    Aggregates for the admin dashboard.

    Revenue counts DELIVERED orders only. Low stock is stock <=
    LOW_STOCK_THRESHOLD, lowest first.
    """
    threshold = current_app.config["LOW_STOCK_THRESHOLD"]

    total_users = db.session.query(func.count(User.id)).scalar() or 0
    total_products = db.session.query(func.count(Product.id)).scalar() or 0
    total_orders = db.session.query(func.count(Order.id)).scalar() or 0

    revenue_cents = int(
        db.session.query(func.coalesce(func.sum(Order.total_cents), 0))
        .filter(Order.status == "DELIVERED")
        .scalar()
        or 0
    )

    recent_orders = (
        db.session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(recent_limit)
        .all()
    )

    low_stock = (
        db.session.query(Product)
        .filter(Product.stock <= threshold)
        .order_by(Product.stock.asc(), Product.id.asc())
        .limit(low_stock_limit)
        .all()
    )

    status_rows = (
        db.session.query(Order.status, func.count(Order.id))
        .group_by(Order.status)
        .all()
    )
    counts = {status: 0 for status in ORDER_STATUSES}
    counts.update({status: int(count) for status, count in status_rows})

    return {
        "stats": {
            "total_users": int(total_users),
            "total_products": int(total_products),
            "total_orders": int(total_orders),
            "total_revenue": format_cents(revenue_cents),
            "total_revenue_cents": revenue_cents,
        },
        "recent_orders": [order.to_dict(include_user=True) for order in recent_orders],
        "low_stock_products": [p.to_dict() for p in low_stock],
        "low_stock_threshold": threshold,
        "orders_by_status": [
            {"status": status, "count": counts[status]} for status in ORDER_STATUSES
        ],
    }

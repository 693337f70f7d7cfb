# Overview: Flask API routes for orders and checkout; parses input and returns JSON responses.

# backend/storefront/routes/orders.py
"""
Order routes

- POST /api/orders runs checkout against the caller's cart
- Customers read their own orders; ADMIN reads all and drives the status lifecycle
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import checkout_service, order_service
from ..services.checkout_service import EmptyCartError
from ..services.inventory_service import InsufficientStockError
from ..services.order_service import OrderStatusError
from ..services.permission_service import has_role
from ..validation import NotFoundError, ValidationError, json_object
from ..decorators import require_auth, require_role

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order from the caller's cart.

    Request body: address, city, zip_code (or zipCode), country

    Returns:
    - 201 with the order
    - 400 on missing shipping fields or an empty cart
    - 409 when any line exceeds available stock; details names the product
    """
    try:
        order = checkout_service.place_order(g.current_user.id, request.get_json(silent=True) or {})
        return jsonify({"order": order.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except EmptyCartError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Checkout failed")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_auth
def list_my_orders_route():
    orders = order_service.list_user_orders(g.current_user.id)
    return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)})


@orders_bp.get("/all")
@require_auth
@require_role("ADMIN")
def list_all_orders_route():
    """All orders, newest first, with customer name and email. Optional ?status= filter."""
    try:
        orders = order_service.list_all_orders(request.args.get("status"))
        return jsonify({
            "orders": [o.to_dict(include_user=True) for o in orders],
            "count": len(orders),
        })
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
        is_admin = has_role(g.current_user, "ADMIN")
        # Someone else's order looks exactly like a missing one
        if order.user_id != g.current_user.id and not is_admin:
            return jsonify({"error": "Order not found"}), 404
        return jsonify({"order": order.to_dict(include_user=is_admin)})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@orders_bp.patch("/<int:order_id>/status")
@require_auth
@require_role("ADMIN")
def update_order_status_route(order_id: int):
    """
    Move an order through its lifecycle.

    Request body: status
    """
    try:
        data = json_object(request.get_json(silent=True))
        if not data.get("status"):
            return jsonify({"error": "status is required"}), 400

        order = order_service.update_status(order_id, data["status"], actor_user_id=g.current_user.id)
        return jsonify({"order": order.to_dict(include_user=True)})

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except OrderStatusError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500

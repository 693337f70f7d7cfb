# Overview: Flask API routes for the shopping cart; parses input and returns JSON responses.

# backend/storefront/routes/cart.py
"""
Cart routes. Every operation acts on the caller's own cart.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import cart_service
from ..validation import NotFoundError, ValidationError, coerce_int, json_object
from ..decorators import require_auth

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _cart_response(status: int = 200):
    cart = cart_service.get_cart(g.current_user.id)
    return jsonify({"cart": cart.to_dict()}), status


@cart_bp.get("")
@require_auth
def get_cart_route():
    return _cart_response()


@cart_bp.post("/add")
@require_auth
def add_to_cart_route():
    """
    Add a product to the cart.

    Request body: productId (or product_id), quantity (default 1)
    """
    try:
        data = json_object(request.get_json(silent=True))
        product_id = data.get("productId", data.get("product_id"))
        if product_id is None:
            return jsonify({"error": "Product ID is required"}), 400
        product_id = coerce_int(product_id, "productId")

        cart_service.add_item(g.current_user.id, product_id, data.get("quantity", 1))
        return _cart_response()

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to add item to cart")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.put("/item/<int:item_id>")
@require_auth
def update_cart_item_route(item_id: int):
    """Set a line's quantity. A quantity below 1 removes the line."""
    try:
        data = json_object(request.get_json(silent=True))
        if "quantity" not in data:
            return jsonify({"error": "quantity is required"}), 400

        cart_service.set_quantity(g.current_user.id, item_id, data["quantity"])
        return _cart_response()

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/item/<int:item_id>")
@require_auth
def remove_cart_item_route(item_id: int):
    try:
        cart_service.remove_item(g.current_user.id, item_id)
        return _cart_response()
    except Exception:
        current_app.logger.exception("Failed to remove cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.delete("/clear")
@require_auth
def clear_cart_route():
    try:
        cart_service.clear_cart(g.current_user.id)
        return _cart_response()
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return jsonify({"error": "Internal server error"}), 500

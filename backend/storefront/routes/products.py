# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Product catalog routes.

Reads are public. Writes require ADMIN.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service
from ..validation import NotFoundError, ValidationError
from ..decorators import require_auth, require_role

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products, newest first.

    Query params:
    - search: str (optional) - matches name or description, case-insensitive
    - min_price / max_price: decimal (optional) - inclusive price bounds
    - category_id: int (optional)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    try:
        result = catalog_service.list_products(
            search=request.args.get("search"),
            min_price=request.args.get("min_price", request.args.get("minPrice")),
            max_price=request.args.get("max_price", request.args.get("maxPrice")),
            category_id=request.args.get("category_id", type=int) or request.args.get("categoryId", type=int),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify({"product": catalog_service.product_detail(product_id)})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.post("")
@require_auth
@require_role("ADMIN")
def create_product_route():
    """
    Create a new product.

    Request body: name (required), price or price_cents (required),
    description, stock, category_id, image_url
    """
    try:
        product = catalog_service.create_product(request.get_json(silent=True) or {})
        return jsonify({"product": product.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("ADMIN")
def update_product_route(product_id: int):
    try:
        product = catalog_service.update_product(product_id, request.get_json(silent=True) or {})
        return jsonify({"product": product.to_dict()})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("ADMIN")
def delete_product_route(product_id: int):
    try:
        catalog_service.delete_product(product_id)
        return jsonify({"message": "Product deleted"})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

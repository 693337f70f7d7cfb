# Overview: Flask API routes for categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service
from ..validation import ConflictError, NotFoundError, ValidationError
from ..decorators import require_auth, require_role

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories_route():
    categories = catalog_service.list_categories()
    return jsonify({"categories": [c.to_dict() for c in categories], "count": len(categories)})


@categories_bp.post("")
@require_auth
@require_role("ADMIN")
def create_category_route():
    try:
        category = catalog_service.create_category(request.get_json(silent=True) or {})
        return jsonify({"category": category.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.put("/<int:category_id>")
@require_auth
@require_role("ADMIN")
def rename_category_route(category_id: int):
    try:
        category = catalog_service.rename_category(category_id, request.get_json(silent=True) or {})
        return jsonify({"category": category.to_dict()})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to rename category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role("ADMIN")
def delete_category_route(category_id: int):
    """Delete a category. Its products remain, with no category."""
    try:
        catalog_service.delete_category(category_id)
        return jsonify({"message": "Category deleted"})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500

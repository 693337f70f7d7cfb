# Overview: Flask API routes for product reviews.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import review_service
from ..services.permission_service import PermissionDeniedError
from ..validation import ConflictError, NotFoundError, ValidationError
from ..decorators import require_auth

reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


@reviews_bp.get("/<int:product_id>")
def list_reviews_route(product_id: int):
    try:
        result = review_service.list_reviews(
            product_id,
            page=request.args.get("page", 1, type=int),
            limit=request.args.get("limit", 10, type=int),
        )
        return jsonify(result)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@reviews_bp.post("/<int:product_id>")
@require_auth
def create_review_route(product_id: int):
    """
    Review a product. Request body: rating (1-5), comment (optional)
    """
    try:
        review = review_service.create_review(g.current_user.id, product_id, request.get_json(silent=True) or {})
        return jsonify({"review": review.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create review")
        return jsonify({"error": "Internal server error"}), 500


@reviews_bp.put("/<int:review_id>")
@require_auth
def update_review_route(review_id: int):
    try:
        review = review_service.update_review(g.current_user, review_id, request.get_json(silent=True) or {})
        return jsonify({"review": review.to_dict()})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update review")
        return jsonify({"error": "Internal server error"}), 500


@reviews_bp.delete("/<int:review_id>")
@require_auth
def delete_review_route(review_id: int):
    try:
        review_service.delete_review(g.current_user, review_id)
        return jsonify({"message": "Review deleted"})
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete review")
        return jsonify({"error": "Internal server error"}), 500

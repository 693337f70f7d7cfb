# Overview: Service-layer operations for product reviews.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Review, User
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    enforce_rules_review,
    validate_payload,
)
from .permission_service import PermissionDeniedError, has_role

REVIEW_POLICY = ModelValidationPolicy(
    writable_fields={"rating", "comment"},
    required_on_create={"rating"},
)


def _validated_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Review, payload=payload, policy=REVIEW_POLICY, partial=partial)
    enforce_rules_review(patch)
    if "comment" in patch and patch["comment"] == "":
        patch["comment"] = None
    return patch


def list_reviews(product_id: int, *, page: int = 1, limit: int = 10) -> dict:
    """Reviews for a product, newest first, with the rating summary."""
    if not db.session.get(Product, product_id):
        raise NotFoundError("Product not found")

    page = max(page or 1, 1)
    limit = min(max(limit or 10, 1), 100)

    base_query = db.session.query(Review).filter(Review.product_id == product_id)
    total = base_query.count()
    reviews = (
        base_query.order_by(Review.created_at.desc(), Review.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    avg = db.session.query(db.func.avg(Review.rating)).filter(Review.product_id == product_id).scalar()

    return {
        "reviews": [r.to_dict() for r in reviews],
        "average_rating": round(float(avg), 2) if avg is not None else 0,
        "total_reviews": total,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit if total else 0,
        },
    }


def create_review(user_id: int, product_id: int, payload: dict) -> Review:
    """One review per user and product; a second one raises ConflictError."""
    patch = _validated_patch(payload, partial=False)

    if not db.session.get(Product, product_id):
        raise NotFoundError("Product not found")

    existing = db.session.query(Review).filter_by(user_id=user_id, product_id=product_id).first()
    if existing:
        raise ConflictError("You have already reviewed this product")

    review = Review(user_id=user_id, product_id=product_id, **patch)
    db.session.add(review)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("You have already reviewed this product")
    return review


def _get_review(review_id: int) -> Review:
    review = db.session.get(Review, review_id)
    if not review:
        raise NotFoundError("Review not found")
    return review


def update_review(user: User, review_id: int, payload: dict) -> Review:
    patch = _validated_patch(payload, partial=True)
    review = _get_review(review_id)
    if review.user_id != user.id:
        raise PermissionDeniedError("Not authorized to edit this review")

    for k, v in patch.items():
        setattr(review, k, v)
    db.session.commit()
    return review


def delete_review(user: User, review_id: int) -> None:
    """Authors may delete their own review; ADMIN may delete any."""
    review = _get_review(review_id)
    if review.user_id != user.id and not has_role(user, "ADMIN"):
        raise PermissionDeniedError("Not authorized to delete this review")

    db.session.delete(review)
    db.session.commit()

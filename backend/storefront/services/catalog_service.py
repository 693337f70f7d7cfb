# backend/storefront/services/catalog_service.py
"""
Catalog Service: products and categories.

Product writes go through validate_payload with PRODUCT_POLICY; prices may
arrive as a decimal "price" or as "price_cents".
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Product, Review
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    normalize_price_field,
    validate_payload,
)
from storefront.money import parse_amount_to_cents
from .concurrency import run_with_retry

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_cents", "stock", "category_id", "image_url"},
    required_on_create={"name", "price_cents"},
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name"},
    required_on_create={"name"},
)

PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _validated_product_patch(payload: dict, *, partial: bool) -> dict:
    payload = normalize_price_field(payload if payload is not None else {})
    # Accept camelCase from the SPA
    if isinstance(payload, dict):
        for camel, snake in (("categoryId", "category_id"), ("imageUrl", "image_url")):
            if camel in payload:
                payload = dict(payload)
                payload[snake] = payload.pop(camel)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    if patch.get("category_id") is not None:
        if not db.session.get(Category, patch["category_id"]):
            raise NotFoundError("Category not found")
    return patch


def _parse_price_filter(value, name: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return parse_amount_to_cents(value)
    except ValueError:
        raise ValidationError(f"{name} must be a decimal number")


def list_products(
    *,
    search: str | None = None,
    min_price=None,
    max_price=None,
    category_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional filters and pagination, newest first.

    Args:
        search: case-insensitive substring of name or description
        min_price, max_price: inclusive decimal bounds
        category_id: restrict to one category
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    query = db.session.query(Product)

    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            db.or_(
                db.func.lower(Product.name).like(pattern),
                db.func.lower(db.func.coalesce(Product.description, "")).like(pattern),
            )
        )

    min_cents = _parse_price_filter(min_price, "min_price")
    max_cents = _parse_price_filter(max_price, "max_price")
    if min_cents is not None:
        query = query.filter(Product.price_cents >= min_cents)
    if max_cents is not None:
        query = query.filter(Product.price_cents <= max_cents)

    if category_id is not None:
        query = query.filter(Product.category_id == category_id)

    base_query = query.order_by(Product.created_at.desc(), Product.id.desc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    # Pagination logic
    per_page = min(per_page or 20, 100)  # Default 20, max 100
    per_page = max(per_page, 1)
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def product_detail(product_id: int) -> dict:
    """Product with its rating summary."""
    product = get_product(product_id)
    avg, count = db.session.query(
        db.func.avg(Review.rating), db.func.count(Review.id)
    ).filter(Review.product_id == product_id).one()

    data = product.to_dict()
    data["average_rating"] = round(float(avg), 2) if avg is not None else 0
    data["review_count"] = int(count or 0)
    return data


def create_product(payload: dict) -> Product:
    patch = _validated_product_patch(payload, partial=False)

    product = Product()
    apply_product_patch(product, patch)
    if product.stock is None:
        product.stock = 0

    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, payload: dict) -> Product:
    patch = _validated_product_patch(payload, partial=True)

    def _op():
        product = get_product(product_id)
        apply_product_patch(product, patch)
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """
    Delete a product.

    Cart lines and reviews for it are deleted; order lines keep their
    captured name and price with product_id set to NULL.
    """
    product = get_product(product_id)
    db.session.delete(product)
    db.session.commit()


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def _ensure_category_name_free(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Category).filter(db.func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError("Category already exists")


def create_category(payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    _ensure_category_name_free(patch["name"])

    category = Category(name=patch["name"])
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category already exists")
    return category


def rename_category(category_id: int, payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    category = get_category(category_id)
    _ensure_category_name_free(patch["name"], exclude_id=category.id)

    category.name = patch["name"]
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category already exists")
    return category


def delete_category(category_id: int) -> None:
    """Delete a category; its products stay, uncategorized."""
    category = get_category(category_id)
    db.session.delete(category)
    db.session.commit()

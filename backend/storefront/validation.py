from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from storefront.money import parse_amount_to_cents


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999
MAX_STOCK = 1_000_000_000

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level uniqueness conflict (duplicate email, category name, review...)."""


class NotFoundError(LookupError):
    """404-level missing entity."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a JSON body into a patch dict for model.

    Fields outside policy.writable_fields are rejected, values are coerced to
    the column type, NOT NULL and String(n) limits are checked, and strings are
    stripped. With partial=False (POST) every policy.required_on_create field
    must be present; with partial=True (PUT) only the supplied keys are checked.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def normalize_price_field(payload: dict) -> dict:
    """
    Accept a decimal "price" as an alias of "price_cents".

    Returns a copy of payload where "price" has been converted to cents.
    """
    if not isinstance(payload, dict) or "price" not in payload:
        return payload
    data = dict(payload)
    raw = data.pop("price")
    if "price_cents" in data:
        raise ValidationError("Provide either price or price_cents, not both")
    if raw is None:
        data["price_cents"] = None
        return data
    try:
        data["price_cents"] = parse_amount_to_cents(raw)
    except ValueError:
        raise ValidationError("price must be a decimal number")
    return data


def enforce_rules_product(patch: dict) -> None:
    """
    Price and stock bounds that column metadata cannot express.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")

    if "stock" in patch and patch["stock"] is not None:
        if patch["stock"] < 0:
            raise ValidationError("stock must be >= 0")
        if patch["stock"] > MAX_STOCK:
            raise ValidationError(f"stock cannot exceed {MAX_STOCK}")


def enforce_rules_review(patch: dict) -> None:
    if "rating" in patch:
        rating = patch["rating"]
        if rating is None or rating < 1 or rating > 5:
            raise ValidationError("Rating must be between 1 and 5")


def validate_quantity(
    value: Any, *, field: str = "quantity", minimum: int | None = 1, maximum: int = MAX_STOCK
) -> int:
    quantity = coerce_int(value, field)
    if minimum is not None and quantity < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if quantity > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return quantity


def json_object(payload: Any) -> dict:
    """Request body as a dict; a missing body is empty, any other JSON type is rejected."""
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def validate_username(username: Any) -> str:
    if not isinstance(username, str) or not USERNAME_RE.match(username):
        raise ValidationError(
            "Username must be 3-20 characters and contain only letters, numbers, and underscores"
        )
    return username


def validate_email(email: Any) -> str:
    if not isinstance(email, str):
        raise ValidationError("Invalid email address")
    email = email.strip().lower()
    if len(email) > 255 or not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    return email


def require_text_fields(payload: dict, fields: dict[str, tuple[str, ...]], *, max_length: int = 255) -> dict:
    """
    Collect required non-blank string fields.

    fields maps the canonical name to the accepted request keys
    (e.g. {"zip_code": ("zip_code", "zipCode")}).
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cleaned: dict[str, str] = {}
    missing: list[str] = []
    for name, keys in fields.items():
        raw = next((payload[k] for k in keys if payload.get(k) is not None), None)
        value = str(raw).strip() if raw is not None else ""
        if not value:
            missing.append(name)
            continue
        if len(value) > max_length:
            raise ValidationError(f"{name} exceeds max length {max_length}")
        cleaned[name] = value

    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return cleaned

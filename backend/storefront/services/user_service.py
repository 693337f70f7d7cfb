# Overview: Service-layer operations for user accounts; profile, role changes and deletion.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User, ROLES
from ..validation import NotFoundError, ValidationError, validate_email, validate_username
from .auth_service import ensure_unique_identity
from .permission_service import PermissionDeniedError, has_role, role_rank, log_security_event


PROFILE_FIELDS = {"name", "email", "username", "profile_picture"}


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def is_username_available(username: str) -> bool:
    return not db.session.query(User).filter(
        db.func.lower(User.username) == username.strip().lower()
    ).first()


def update_profile(user_id: int, payload: dict) -> User:
    """Update name, email, username and profile picture of the caller's own account."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = sorted(set(payload) - PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")

    user = get_user(user_id)

    if payload.get("email") is not None:
        email = validate_email(payload["email"])
        ensure_unique_identity(email=email, exclude_user_id=user.id)
        user.email = email

    if payload.get("username") is not None:
        username = validate_username(payload["username"])
        ensure_unique_identity(username=username, exclude_user_id=user.id)
        user.username = username

    if payload.get("name") is not None:
        name = str(payload["name"]).strip()
        if not name:
            raise ValidationError("Name cannot be blank")
        user.name = name

    if "profile_picture" in payload:
        picture = payload["profile_picture"]
        if picture is not None:
            picture = str(picture).strip() or None
        user.profile_picture = picture

    db.session.commit()
    return user


def change_role(actor: User, target_user_id: int, new_role, *, ip_address: str | None = None) -> User:
    """
    Change another user's role.

    Only SUPERADMIN may change roles, and never their own, whatever role
    is requested.
    """
    if actor.id == target_user_id:
        log_security_event(
            user_id=actor.id,
            event_type="ROLE_CHANGE_DENIED",
            success=False,
            resource=f"users/{target_user_id}/role",
            action=str(new_role),
            reason="Users cannot change their own role",
            ip_address=ip_address,
        )
        raise PermissionDeniedError("You cannot change your own role")

    if not has_role(actor, "SUPERADMIN"):
        log_security_event(
            user_id=actor.id,
            event_type="ROLE_CHANGE_DENIED",
            success=False,
            resource=f"users/{target_user_id}/role",
            action=str(new_role),
            reason="Only SUPERADMIN can change user roles",
            ip_address=ip_address,
        )
        raise PermissionDeniedError("Only SUPERADMIN can change user roles")

    if new_role not in ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(ROLES)}")

    target = get_user(target_user_id)
    previous = target.role
    target.role = new_role
    log_security_event(
        user_id=actor.id,
        event_type="ROLE_CHANGED",
        success=True,
        resource=f"users/{target_user_id}/role",
        action=new_role,
        reason=f"{previous} -> {new_role}",
        ip_address=ip_address,
        commit=False,
    )
    db.session.commit()

    current_app.logger.info("User %s changed role of user %s: %s -> %s", actor.id, target.id, previous, new_role)
    return target


def delete_user(actor: User, target_user_id: int, *, ip_address: str | None = None) -> bool:
    """
    Delete an account with its cart, orders, reviews and sessions.

    Self-deletion is always allowed. Deleting someone else requires ADMIN
    and cannot target a higher-ranked account.

    Returns True when the caller deleted their own account, in which case
    every session of the caller is already gone.
    """
    actor_id = actor.id
    is_self = actor_id == target_user_id
    target = get_user(target_user_id)

    if not is_self:
        if not has_role(actor, "ADMIN") or role_rank(target.role) > role_rank(actor.role):
            log_security_event(
                user_id=actor_id,
                event_type="PERMISSION_DENIED",
                success=False,
                resource=f"users/{target_user_id}",
                action="DELETE",
                reason="Not allowed to delete this user",
                ip_address=ip_address,
            )
            raise PermissionDeniedError("Not allowed to delete this user")

    # Session rows go with the account, so its tokens stop validating at once
    db.session.delete(target)
    log_security_event(
        user_id=actor_id,
        event_type="USER_DELETED",
        success=True,
        resource=f"users/{target_user_id}",
        action="DELETE",
        reason="Self-deletion" if is_self else None,
        ip_address=ip_address,
        commit=False,
    )
    db.session.commit()

    current_app.logger.info("User %s deleted user %s", actor_id, target_user_id)
    return is_self

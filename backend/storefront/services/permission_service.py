# Overview: Service-layer operations for roles; role hierarchy checks and security event logging.

"""
Role Checking and Security Event Logging

Roles form a strict hierarchy: USER < ADMIN < SUPERADMIN. A check for a
minimum role passes for that role and every role above it.

DESIGN PRINCIPLES:
- Fail closed: unknown roles rank below USER
- Log denials only: successful checks are not logged
"""

from __future__ import annotations

from ..extensions import db
from ..models import SecurityEvent, User, ROLES
from storefront.time_utils import utcnow


ROLE_RANKS = {role: rank for rank, role in enumerate(ROLES)}


class PermissionDeniedError(Exception):
    """Raised when the caller's role does not allow an action."""
    pass


def role_rank(role: str | None) -> int:
    return ROLE_RANKS.get(role or "", -1)


def has_role(user: User | None, minimum_role: str) -> bool:
    """True if user's role is minimum_role or higher."""
    if user is None:
        return False
    return role_rank(user.role) >= role_rank(minimum_role)


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_SUCCEEDED / LOGIN_FAILED
    - ROLE_CHANGED / ROLE_CHANGE_DENIED
    - USER_DELETED
    - PASSWORD_RESET
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    if commit:
        db.session.commit()

    return event


def require_role(
    user: User,
    minimum_role: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to hold minimum_role or higher; raise PermissionDeniedError if not.

    Denials are written to security_events.
    """
    if has_role(user, minimum_role):
        return

    log_security_event(
        user_id=user.id if user else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=minimum_role,
        reason=f"Requires role {minimum_role}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(f"Requires role {minimum_role}")

# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Callers are identified by a server-verified token, never by a
client-supplied user id. Tokens are random, hashed in the database, and
time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Short-lived access token (ACCESS_TOKEN_TTL_MINUTES) used on every request
- Longer-lived refresh token (REFRESH_TOKEN_TTL_DAYS) that mints new access tokens
- Revocable on logout, password reset or account deletion
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from storefront.time_utils import utcnow


@dataclass
class SessionContext:
    """Verified identity handed to route handlers by require_auth."""
    user: User
    session: SessionToken


@dataclass
class IssuedTokens:
    """Plaintext tokens returned to the client exactly once."""
    session: SessionToken
    access_token: str
    refresh_token: str | None = None


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _access_ttl() -> timedelta:
    return timedelta(minutes=current_app.config["ACCESS_TOKEN_TTL_MINUTES"])


def _refresh_ttl() -> timedelta:
    return timedelta(days=current_app.config["REFRESH_TOKEN_TTL_DAYS"])


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> IssuedTokens:
    """
    Create a new session for user and issue an access + refresh token pair.

    Client receives the plaintext tokens, database stores only the hashes.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    access_token = generate_token()
    refresh_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        access_token_hash=hash_token(access_token),
        refresh_token_hash=hash_token(refresh_token),
        created_at=now,
        last_used_at=now,
        access_expires_at=now + _access_ttl(),
        refresh_expires_at=now + _refresh_ttl(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return IssuedTokens(session=session, access_token=access_token, refresh_token=refresh_token)


def validate_session(token: str) -> SessionContext | None:
    """
    Validate an access token and return SessionContext if valid.

    Returns None if the token is unknown, expired or revoked, or if the
    session's refresh window has closed. Updates last_used_at.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        access_token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.access_expires_at < now or session.refresh_expires_at < now:
        return None

    user = session.user
    if not user:
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def refresh_session(refresh_token: str) -> IssuedTokens | None:
    """
    Issue a new access token for the session owning refresh_token.

    The previous access token stops working. Returns None when the refresh
    token is unknown, revoked or expired.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        refresh_token_hash=hash_token(refresh_token),
        is_revoked=False,
    ).first()

    if not session or session.refresh_expires_at < now:
        return None

    access_token = generate_token()
    session.access_token_hash = hash_token(access_token)
    session.access_expires_at = min(now + _access_ttl(), session.refresh_expires_at)
    session.last_used_at = now
    db.session.commit()

    return IssuedTokens(session=session, access_token=access_token)


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke the session identified by either its refresh or its access token.

    Returns True if a session was revoked, False if none matched.
    """
    token_hash = hash_token(token)

    session = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.refresh_token_hash == token_hash,
            SessionToken.access_token_hash == token_hash,
        ),
        SessionToken.is_revoked == False,  # noqa: E712
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions", commit: bool = True) -> int:
    """
    Revoke all active sessions for a user.

    Password reset calls this with commit=False inside its own transaction.
    """
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        _revoke(session, reason)

    if commit:
        db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(*, retention_days: int = 30) -> int:
    """Delete sessions that are expired or revoked and older than retention_days."""
    now = utcnow()
    cutoff = now - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.refresh_expires_at < now,
            SessionToken.is_revoked == True,  # noqa: E712
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted

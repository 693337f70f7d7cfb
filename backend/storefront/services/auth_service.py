# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Uses bcrypt for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- Password reset tokens are random, single-use, expiring and stored hashed
"""

import re
import secrets
from datetime import timedelta

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import ConflictError, NotFoundError, ValidationError, validate_email, validate_username
from .session_service import hash_token, revoke_all_user_sessions
from storefront.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def ensure_unique_identity(email: str | None = None, username: str | None = None, exclude_user_id: int | None = None) -> None:
    if email is not None:
        query = db.session.query(User).filter(User.email == email)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first():
            raise ConflictError("Email already exists")

    if username is not None:
        query = db.session.query(User).filter(db.func.lower(User.username) == username.lower())
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first():
            raise ConflictError("Username already taken")


def create_user(
    *,
    email: str,
    username: str,
    name: str,
    password: str,
    role: str = "USER",
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: malformed email/username/name
        PasswordValidationError: password doesn't meet requirements
        ConflictError: email or username already in use
    """
    email = validate_email(email)
    username = validate_username(username)
    name = (name or "").strip() if isinstance(name, str) else ""
    if not name:
        raise ValidationError("Name is required")

    ensure_unique_identity(email=email, username=username)

    user = User(
        email=email,
        username=username,
        name=name,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email or username already in use")
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Authenticate by email or username.

    Returns User if credentials valid, None otherwise.
    """
    if not identifier or not password:
        return None

    identifier = identifier.strip()
    user = db.session.query(User).filter(
        db.or_(
            User.email == identifier.lower(),
            db.func.lower(User.username) == identifier.lower(),
        )
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def change_password(user_id: int, current_password: str, new_password: str) -> None:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.session.commit()


def request_password_reset(email: str) -> str | None:
    """
    Create a password reset token for the account with this email.

    Returns the plaintext token (to be delivered out of band), or None when
    no account matches. Callers must answer identically in both cases so
    account existence is not revealed.
    """
    if not isinstance(email, str) or not email.strip():
        return None

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        return None

    token = secrets.token_urlsafe(32)
    ttl = timedelta(minutes=current_app.config["PASSWORD_RESET_TTL_MINUTES"])
    user.reset_token_hash = hash_token(token)
    user.reset_token_expires_at = utcnow() + ttl
    db.session.commit()

    reset_link = f"{current_app.config['FRONTEND_URL'].rstrip('/')}/reset-password?token={token}"
    current_app.logger.info("Password reset link for %s: %s", user.email, reset_link)
    return token


def reset_password(token: str, new_password: str) -> User:
    """
    Set a new password using a reset token.

    The token is single-use; every existing session is revoked.
    Raises ValidationError for an unknown or expired token.
    """
    if not token:
        raise ValidationError("Invalid or expired reset token")

    user = db.session.query(User).filter(
        User.reset_token_hash == hash_token(token),
        User.reset_token_expires_at > utcnow(),
    ).first()

    if not user:
        raise ValidationError("Invalid or expired reset token")

    user.password_hash = hash_password(new_password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    revoke_all_user_sessions(user.id, reason="Password reset", commit=False)
    db.session.commit()
    return user

# Overview: Retention cleanup for audit rows and stale password reset tokens.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent, User
from ..time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def clear_expired_reset_tokens() -> int:
    """Null out reset token hashes whose expiry has passed. Returns the number of users touched."""
    cleared = db.session.query(User).filter(
        User.reset_token_hash.isnot(None),
        User.reset_token_expires_at < utcnow(),
    ).update(
        {User.reset_token_hash: None, User.reset_token_expires_at: None},
        synchronize_session=False,
    )
    db.session.commit()
    return cleared

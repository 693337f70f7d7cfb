from __future__ import annotations

from ..extensions import db
from storefront.time_utils import utcnow, to_utc_z

class SecurityEvent(db.Model):
    """
    Security event audit log.

    Track permission denials, logins, role changes and account deletions.

    IMMUTABLE: Never update. Rows are pruned only by the maintenance command.
    user_id is not a foreign key; rows outlive deleted accounts.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, nullable=True, index=True)  # Nullable for anonymous

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # PERMISSION_DENIED, LOGIN_FAILED, ROLE_CHANGED, etc.
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/users/3/role"
    action = db.Column(db.String(64), nullable=True)     # e.g., "PATCH", "ADMIN"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "occurred_at": to_utc_z(self.occurred_at),
        }

# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import RevokedToken, SecurityEvent
from ..time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """
    Delete security events older than retention_days.

    Returns count of rows deleted.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted


def cleanup_revoked_tokens() -> int:
    """
    Delete denylist rows whose tokens have expired anyway.

    Returns count of rows deleted.
    """
    deleted = db.session.query(RevokedToken).filter(
        RevokedToken.expires_at < utcnow()
    ).delete()
    db.session.commit()
    return deleted

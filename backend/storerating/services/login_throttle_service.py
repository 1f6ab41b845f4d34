"""
Login Throttling Service

WHY: Prevent brute-force password attacks by limiting failed login attempts.
After too many failures, the account is temporarily locked.

SECURITY FEATURES:
- Tracks failed attempts per email
- Lockout after Settings.login_max_failed_attempts failures within
  Settings.login_lockout_window
- Uses security_events table for tracking
- A successful login resets the count (only failures after the most
  recent success are counted)
"""

from __future__ import annotations

from datetime import datetime

from ..config import Settings
from ..extensions import db
from ..models import SecurityEvent, User
from ..time_utils import utcnow


LOGIN_RESOURCE = "/api/auth/login"


def _last_success_at(identifier: str) -> datetime | None:
    event = db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_SUCCESS",
        SecurityEvent.action == identifier,
    ).order_by(SecurityEvent.occurred_at.desc()).first()
    return event.occurred_at if event else None


def _failed_attempts_query(identifier: str, settings: Settings):
    cutoff = utcnow() - settings.login_lockout_window
    last_success = _last_success_at(identifier)
    if last_success is not None and last_success > cutoff:
        cutoff = last_success

    # The email is stored in the 'action' field of security events
    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_FAILED",
        SecurityEvent.action == identifier,
        SecurityEvent.occurred_at >= cutoff,
    )


def get_recent_failed_attempts(identifier: str, settings: Settings) -> int:
    """Count failed login attempts for an email within the lockout window."""
    return _failed_attempts_query(identifier, settings).count()


def is_account_locked(identifier: str, settings: Settings) -> tuple[bool, int | None]:
    """
    Check if an account is currently locked due to too many failed attempts.

    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    failed_count = get_recent_failed_attempts(identifier, settings)

    if failed_count >= settings.login_max_failed_attempts:
        most_recent = _failed_attempts_query(identifier, settings).order_by(
            SecurityEvent.occurred_at.desc()
        ).first()

        if most_recent:
            lockout_end = most_recent.occurred_at + settings.login_lockout_window
            now = utcnow()

            if now < lockout_end:
                seconds_remaining = int((lockout_end - now).total_seconds())
                return True, seconds_remaining

    return False, None


def record_failed_attempt(
    identifier: str,
    settings: Settings,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials"
) -> int:
    """
    Record a failed login attempt.

    Returns the total number of recent failed attempts.
    """
    user = db.session.query(User).filter_by(email=identifier).first()

    event = SecurityEvent(
        user_id=user.id if user else None,
        event_type="LOGIN_FAILED",
        resource=LOGIN_RESOURCE,
        action=identifier,
        success=False,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return get_recent_failed_attempts(identifier, settings)


def record_successful_login(
    user_id: int,
    identifier: str,
    ip_address: str | None = None,
    user_agent: str | None = None
) -> None:
    event = SecurityEvent(
        user_id=user_id,
        event_type="LOGIN_SUCCESS",
        resource=LOGIN_RESOURCE,
        action=identifier,
        success=True,
        reason=None,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()


def get_lockout_status(identifier: str, settings: Settings) -> dict:
    """
    Get detailed lockout status for an account.

    Returns dict with:
    - locked: bool
    - failed_attempts: int
    - max_attempts: int
    - seconds_until_unlock: int | None
    """
    failed_count = get_recent_failed_attempts(identifier, settings)
    is_locked, seconds_remaining = is_account_locked(identifier, settings)

    return {
        "locked": is_locked,
        "failed_attempts": failed_count,
        "max_attempts": settings.login_max_failed_attempts,
        "seconds_until_unlock": seconds_remaining,
        "lockout_window_minutes": int(settings.login_lockout_window.total_seconds() / 60),
    }

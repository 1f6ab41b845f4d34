# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and signed tokens (token_service) for sessions.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from Settings.bcrypt_rounds)
- 8-16 characters, at least one uppercase letter and one special character
- Emails are stored lowercased; uniqueness is a database constraint
- Login failures are throttled per email (login_throttle_service)
- verify_token re-fetches the user, so role changes and deletions take
  effect on the very next request
"""

from __future__ import annotations

import logging

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..config import Settings
from ..errors import (
    DuplicateEmail,
    InvalidCredentials,
    TokenInvalid,
    TokenRevoked,
    TooManyAttempts,
    UserNotFound,
    ValidationError,
)
from ..extensions import db
from ..models import Role, User
from ..validation import validate_password_strength
from . import login_throttle_service, token_service

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def email_exists(email: str, *, exclude_user_id: int | None = None) -> bool:
    query = db.session.query(User.id).filter(User.email == email.lower())
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def create_user(
    name: str,
    email: str,
    password: str,
    *,
    settings: Settings,
    address: str | None = None,
    role: Role = Role.USER,
) -> User:
    """
    Create a user with a bcrypt password hash.

    The pre-check gives a clean error in the common case; the unique
    constraint on users.email settles concurrent registrations.

    Raises:
        DuplicateEmail: email already registered
        ValidationError: password doesn't meet requirements
    """
    email = email.lower()
    if email_exists(email):
        raise DuplicateEmail()

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password, settings.bcrypt_rounds),
        address=address,
        role=role,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmail()

    logger.info("Created user id=%s role=%s", user.id, user.role.value)
    return user


def register(
    name: str,
    email: str,
    password: str,
    address: str | None = None,
    *,
    settings: Settings,
) -> tuple[User, str]:
    """Self-registration always yields role USER; returns (user, token)."""
    user = create_user(name, email, password, settings=settings, address=address, role=Role.USER)
    return user, token_service.issue_token(user.id, settings)


def login(
    email: str,
    password: str,
    *,
    settings: Settings,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> tuple[User, str]:
    """
    Authenticate by email and password; returns (user, token).

    Unknown email and wrong password both raise InvalidCredentials with
    the same message. Raises TooManyAttempts while the email is locked.
    """
    email = email.strip().lower()

    is_locked, seconds_remaining = login_throttle_service.is_account_locked(email, settings)
    if is_locked:
        raise TooManyAttempts(
            f"Account temporarily locked. Try again in {seconds_remaining} seconds.",
            retry_after_seconds=seconds_remaining,
        )

    user = db.session.query(User).filter_by(email=email).first()

    if not user or not verify_password(password, user.password_hash):
        failed = login_throttle_service.record_failed_attempt(
            email,
            settings,
            ip_address=ip_address,
            user_agent=user_agent,
            reason="Unknown email" if not user else "Wrong password",
        )
        logger.info("Failed login for %s (%d recent failures)", email, failed)
        raise InvalidCredentials()

    login_throttle_service.record_successful_login(
        user.id, email, ip_address=ip_address, user_agent=user_agent
    )
    return user, token_service.issue_token(user.id, settings)


def verify_token(token: str, settings: Settings) -> User:
    """
    Resolve a bearer token to the current User.

    Raises TokenExpired, TokenInvalid (bad token, or the user no longer
    exists) or TokenRevoked (logged out).
    """
    claims = token_service.decode_token(token, settings)

    if token_service.is_revoked(claims["jti"]):
        raise TokenRevoked()

    user = db.session.get(User, token_service.user_id_from_claims(claims))
    if user is None:
        raise TokenInvalid("Invalid token - user not found")
    return user


def logout(token: str, settings: Settings) -> bool:
    """Revoke a token. Returns True if the token was valid."""
    return token_service.revoke_token(token, settings)


def change_password(user_id: int, current_password: str, new_password: str, *, settings: Settings) -> None:
    """
    Change a user's own password.

    Raises ValidationError if current_password is wrong.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFound()

    if not verify_password(current_password, user.password_hash):
        raise ValidationError(
            "Current password is incorrect",
            errors=[{"field": "current_password", "message": "Current password is incorrect"}],
        )

    user.password_hash = hash_password(new_password, settings.bcrypt_rounds)
    db.session.commit()


def update_profile(user_id: int, changes: dict) -> User:
    """Apply validated name/address changes to a user's own profile."""
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFound()

    for key in ("name", "address"):
        if key in changes:
            setattr(user, key, changes[key])

    db.session.commit()
    return user

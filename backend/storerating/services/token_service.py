# Overview: Service-layer operations for signed session tokens.

"""
Signed Session Tokens

WHY: Stateless authentication. A token is an HS256 JWT carrying only the
user id (sub), a unique token id (jti) and its issue/expiry times. Role and
profile data are never trusted from the token; auth_service re-fetches the
user on every request.

REVOCATION: Logout records the jti in revoked_tokens until the token's own
expiry, so a logged-out token stops working immediately instead of living
until natural expiry.
"""

from __future__ import annotations

import uuid
from calendar import timegm

from jose import jwt, ExpiredSignatureError, JWTError
from sqlalchemy.exc import IntegrityError

from ..config import Settings
from ..errors import TokenExpired, TokenInvalid
from ..extensions import db
from ..models import RevokedToken
from ..time_utils import utcnow, from_timestamp


def _timestamp(dt) -> int:
    return timegm(dt.utctimetuple())


def issue_token(user_id: int, settings: Settings) -> str:
    """Create a signed, time-limited token bound to user_id."""
    now = utcnow()
    claims = {
        "sub": str(user_id),
        "jti": uuid.uuid4().hex,
        "iat": _timestamp(now),
        "exp": _timestamp(now + settings.token_ttl),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    """
    Verify signature and expiry, returning the claims.

    Raises TokenExpired for a well-signed but expired token and
    TokenInvalid for everything else (bad signature, malformed, missing
    claims). The two stay distinct so clients can prompt a re-login.
    """
    if not token:
        raise TokenInvalid()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise TokenExpired()
    except JWTError:
        raise TokenInvalid()

    sub = claims.get("sub")
    if not claims.get("jti") or sub is None or not str(sub).isdigit():
        raise TokenInvalid()
    return claims


def user_id_from_claims(claims: dict) -> int:
    return int(claims["sub"])


def is_revoked(jti: str) -> bool:
    return db.session.query(RevokedToken.id).filter_by(jti=jti).first() is not None


def revoke_token(token: str, settings: Settings) -> bool:
    """
    Add the token's jti to the denylist.

    Returns False if the token is not valid (nothing to revoke).
    Revoking an already revoked token is a no-op that returns True.
    """
    try:
        claims = decode_token(token, settings)
    except (TokenExpired, TokenInvalid):
        return False

    jti = claims["jti"]
    if is_revoked(jti):
        return True

    db.session.add(RevokedToken(
        jti=jti,
        user_id=user_id_from_claims(claims),
        expires_at=from_timestamp(claims["exp"]),
        revoked_at=utcnow(),
    ))
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent logout with the same token won the insert
        db.session.rollback()
    return True


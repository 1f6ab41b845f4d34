from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class Role(str, enum.Enum):
    """
    Closed set of account roles.

    Exactly one role per user. The permission matrix in
    storerating.permissions is keyed by these members.
    """
    ADMIN = "admin"
    USER = "user"
    STORE_OWNER = "store_owner"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Email is globally unique (storage-level constraint, not just a
    pre-insert check). A STORE_OWNER owns at most one Store; the
    stores.owner_id unique constraint backs the service-level check.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(60), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    address = db.Column(db.String(400), nullable=True)
    role = db.Column(
        db.Enum(Role, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.USER,
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role.value}>"

    def to_dict(self) -> dict:
        # Never includes password_hash
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "role": self.role.value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RevokedToken(db.Model):
    """
    Denylist of logged-out tokens, keyed by the JWT id (jti).

    Rows only need to live until the token would have expired anyway;
    `flask maintenance cleanup-revoked-tokens` prunes the rest.
    """
    __tablename__ = "revoked_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(64), nullable=False, unique=True, index=True)
    user_id = db.Column(db.Integer, nullable=True, index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "jti": self.jti,
            "user_id": self.user_id,
            "expires_at": to_utc_z(self.expires_at),
            "revoked_at": to_utc_z(self.revoked_at),
        }

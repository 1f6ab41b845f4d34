# Overview: Request payload validation with field-level errors, plus integer range guards.

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from werkzeug.routing import IntegerConverter

from .errors import InvalidRating, ValidationError
from .models import Role


NAME_MIN_LENGTH = 20
NAME_MAX_LENGTH = 60
STORE_NAME_MAX_LENGTH = 100
ADDRESS_MAX_LENGTH = 400
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 16

MIN_RATING = 1
MAX_RATING = 5

# Largest value a signed 64-bit INTEGER column (and SQLite OFFSET) accepts
MAX_DB_INTEGER = 2**63 - 1

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_UPPERCASE_RE = re.compile(r"[A-Z]")
_SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


@dataclass(frozen=True)
class FieldPolicy:
    """
    Central policy per payload:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


REGISTRATION_POLICY = FieldPolicy(
    writable_fields=frozenset({"name", "email", "password", "address"}),
    required_on_create=frozenset({"name", "email", "password"}),
)
ADMIN_USER_CREATE_POLICY = FieldPolicy(
    writable_fields=frozenset({"name", "email", "password", "address", "role"}),
    required_on_create=frozenset({"name", "email", "password", "role"}),
)
ADMIN_USER_UPDATE_POLICY = FieldPolicy(
    writable_fields=frozenset({"name", "email", "address", "role"}),
)
PROFILE_UPDATE_POLICY = FieldPolicy(
    writable_fields=frozenset({"name", "address"}),
)
STORE_CREATE_POLICY = FieldPolicy(
    writable_fields=frozenset({"name", "email", "address", "owner_id"}),
    required_on_create=frozenset({"name", "email", "address", "owner_id"}),
)
STORE_UPDATE_POLICY = FieldPolicy(
    writable_fields=frozenset({"name", "email", "address"}),
)


class _Collector:
    """Accumulates field-level messages so callers see every problem at once."""

    def __init__(self):
        self.errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError("Validation failed", errors=self.errors)


def _payload_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _check_policy(payload: dict, policy: FieldPolicy, partial: bool, out: _Collector) -> None:
    for key in payload:
        if key not in policy.writable_fields:
            out.add(key, f"Field not allowed: {key}")
    if not partial:
        for key in sorted(policy.required_on_create):
            if payload.get(key) in (None, ""):
                out.add(key, f"{key} is required")


def _clean_name(value: Any, out: _Collector, *, field: str = "name",
                min_length: int = NAME_MIN_LENGTH, max_length: int = NAME_MAX_LENGTH) -> str | None:
    if not isinstance(value, str):
        out.add(field, f"{field} must be a string")
        return None
    value = value.strip()
    if not (min_length <= len(value) <= max_length):
        out.add(field, f"Name must be between {min_length} and {max_length} characters")
    return value


def _clean_email(value: Any, out: _Collector, *, field: str = "email") -> str | None:
    if not isinstance(value, str):
        out.add(field, "Please provide a valid email")
        return None
    value = value.strip().lower()
    if len(value) > EMAIL_MAX_LENGTH or not _EMAIL_RE.match(value):
        out.add(field, "Please provide a valid email")
    return value


def _clean_address(value: Any, out: _Collector, *, field: str = "address") -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        out.add(field, f"{field} must be a string")
        return None
    value = value.strip()
    if len(value) > ADDRESS_MAX_LENGTH:
        out.add(field, f"Address cannot exceed {ADDRESS_MAX_LENGTH} characters")
    return value


def _check_password(value: Any, out: _Collector, *, field: str = "password") -> str | None:
    if not isinstance(value, str):
        out.add(field, "Password is required")
        return None
    if not (PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH):
        out.add(field, f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters")
    if not _UPPERCASE_RE.search(value) or not _SPECIAL_RE.search(value):
        out.add(field, "Password must contain at least one uppercase letter and one special character")
    return value


def _clean_role(value: Any, out: _Collector, *, field: str = "role") -> Role | None:
    try:
        return Role(value)
    except ValueError:
        out.add(field, f"Role must be one of: {', '.join(Role.values())}")
        return None


def _clean_int_id(value: Any, out: _Collector, field: str) -> int | None:
    if isinstance(value, bool):
        out.add(field, f"{field} must be an integer")
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdecimal():
        try:
            number = int(value.strip())
        except ValueError:
            # Longer than Python's int/str conversion limit
            out.add(field, f"{field} is out of range")
            return None
    else:
        out.add(field, f"{field} must be an integer")
        return None
    if not 1 <= number <= MAX_DB_INTEGER:
        out.add(field, f"{field} is out of range")
        return None
    return number


def validate_password_strength(password: str) -> None:
    """Raise ValidationError if the password does not meet the policy."""
    out = _Collector()
    _check_password(password, out)
    out.raise_if_any()


def validate_registration(payload: Any) -> dict:
    data = _payload_dict(payload)
    out = _Collector()
    _check_policy(data, REGISTRATION_POLICY, False, out)
    out.raise_if_any()

    cleaned = {
        "name": _clean_name(data["name"], out),
        "email": _clean_email(data["email"], out),
        "password": _check_password(data["password"], out),
        "address": _clean_address(data.get("address"), out),
    }
    out.raise_if_any()
    return cleaned


def validate_login(payload: Any) -> tuple[str, str]:
    data = _payload_dict(payload)
    out = _Collector()
    email = _clean_email(data.get("email"), out)
    password = data.get("password")
    if not isinstance(password, str) or password == "":
        out.add("password", "Password is required")
    out.raise_if_any()
    return email, password


def validate_profile_update(payload: Any) -> dict:
    data = _payload_dict(payload)
    out = _Collector()
    _check_policy(data, PROFILE_UPDATE_POLICY, True, out)
    out.raise_if_any()

    cleaned = {}
    if "name" in data:
        cleaned["name"] = _clean_name(data["name"], out)
    if "address" in data:
        cleaned["address"] = _clean_address(data["address"], out)
    out.raise_if_any()
    return cleaned


def validate_password_update(payload: Any) -> tuple[str, str]:
    data = _payload_dict(payload)
    out = _Collector()
    current = data.get("current_password")
    if not isinstance(current, str) or current == "":
        out.add("current_password", "Current password is required")
    new = _check_password(data.get("new_password"), out, field="new_password")
    out.raise_if_any()
    return current, new


def validate_admin_user_create(payload: Any) -> dict:
    data = _payload_dict(payload)
    out = _Collector()
    _check_policy(data, ADMIN_USER_CREATE_POLICY, False, out)
    out.raise_if_any()

    cleaned = {
        "name": _clean_name(data["name"], out),
        "email": _clean_email(data["email"], out),
        "password": _check_password(data["password"], out),
        "address": _clean_address(data.get("address"), out),
        "role": _clean_role(data["role"], out),
    }
    out.raise_if_any()
    return cleaned


def validate_admin_user_update(payload: Any) -> dict:
    data = _payload_dict(payload)
    out = _Collector()
    _check_policy(data, ADMIN_USER_UPDATE_POLICY, True, out)
    out.raise_if_any()

    cleaned = {}
    if "name" in data:
        cleaned["name"] = _clean_name(data["name"], out)
    if "email" in data:
        cleaned["email"] = _clean_email(data["email"], out)
    if "address" in data:
        cleaned["address"] = _clean_address(data["address"], out)
    if "role" in data:
        cleaned["role"] = _clean_role(data["role"], out)
    out.raise_if_any()
    return cleaned


def validate_role_change(payload: Any) -> Role:
    data = _payload_dict(payload)
    out = _Collector()
    if "role" not in data:
        out.add("role", "role is required")
        out.raise_if_any()
    role = _clean_role(data["role"], out)
    out.raise_if_any()
    return role


def validate_store_create(payload: Any) -> dict:
    data = _payload_dict(payload)
    out = _Collector()
    _check_policy(data, STORE_CREATE_POLICY, False, out)
    out.raise_if_any()

    cleaned = {
        "name": _clean_name(data["name"], out, min_length=1, max_length=STORE_NAME_MAX_LENGTH),
        "email": _clean_email(data["email"], out),
        "address": _clean_address(data["address"], out),
        "owner_id": _clean_int_id(data["owner_id"], out, "owner_id"),
    }
    out.raise_if_any()
    return cleaned


def validate_store_update(payload: Any) -> dict:
    data = _payload_dict(payload)
    out = _Collector()
    _check_policy(data, STORE_UPDATE_POLICY, True, out)
    out.raise_if_any()

    cleaned = {}
    if "name" in data:
        cleaned["name"] = _clean_name(data["name"], out, min_length=1, max_length=STORE_NAME_MAX_LENGTH)
    if "email" in data:
        cleaned["email"] = _clean_email(data["email"], out)
    if "address" in data:
        address = _clean_address(data["address"], out)
        if not address:
            out.add("address", "address cannot be blank")
        cleaned["address"] = address
    out.raise_if_any()
    return cleaned


def validate_rating_value(value: Any) -> int:
    """
    Ratings are plain integers 1..5.

    Floats, numeric strings and booleans are rejected rather than coerced.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRating()
    if value < MIN_RATING or value > MAX_RATING:
        raise InvalidRating()
    return value


def require_int(value: Any, field: str) -> int:
    out = _Collector()
    result = _clean_int_id(value, out, field)
    out.raise_if_any()
    return result


class BoundedIntegerConverter(IntegerConverter):
    """`<int:...>` URL converter that refuses ids the database cannot store (404)."""

    def __init__(self, map, *args, **kwargs):
        kwargs.setdefault("max", MAX_DB_INTEGER)
        super().__init__(map, *args, **kwargs)

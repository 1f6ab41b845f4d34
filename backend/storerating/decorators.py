# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, request

from .config import Settings
from .errors import TokenExpired, TokenInvalid, TokenRevoked, Unauthorized
from .permissions import get_all_permission_codes
from .services import auth_service, permission_service

SETTINGS_EXTENSION = "storerating"


def get_settings() -> Settings:
    """The Settings built once in create_app()."""
    return current_app.extensions[SETTINGS_EXTENSION]


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _client_context() -> dict:
    return {
        "resource": request.path,
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
    }


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User (re-fetched from the database)
    - g.token: The raw bearer token (used by logout)

    SECURITY: Raises Unauthorized (401) if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User no longer exists
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            raise Unauthorized("Access token required")

        g.current_user = auth_service.verify_token(token, get_settings())
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """
    Attach g.current_user when a valid token is sent; otherwise the caller
    is anonymous (g.current_user = None). A bad token is not an error here.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_user = None
        token = _bearer_token()
        if token is not None:
            try:
                g.current_user = auth_service.verify_token(token, get_settings())
                g.token = token
            except (TokenExpired, TokenInvalid, TokenRevoked):
                g.current_user = None
        return f(*args, **kwargs)

    return decorated_function


def require_permission(operation: str):
    """
    Require the caller's role to grant `operation`.

    Only the role gate is checked here; ownership conditions need the
    target record and are checked in the service with permission_service.check.
    Must be stacked below @require_auth or @optional_auth.
    """
    if operation not in get_all_permission_codes():
        raise ValueError(f"Unknown operation: {operation}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            permission_service.check(
                operation,
                getattr(g, "current_user", None),
                check_ownership=False,
                **_client_context(),
            )
            return f(*args, **kwargs)

        return decorated_function
    return decorator

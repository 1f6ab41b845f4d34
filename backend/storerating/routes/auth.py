# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import get_settings, require_auth
from ..responses import success
from ..services import auth_service, login_throttle_service
from ..validation import validate_login, validate_registration

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Self-registration. New accounts always get role `user`.

    Expected JSON:
    {
        "name": "20-60 characters",
        "email": "user@example.com",
        "password": "8-16 chars, one uppercase, one special",
        "address": "optional, up to 400 characters"
    }
    """
    data = validate_registration(request.get_json(silent=True))
    user, token = auth_service.register(
        data["name"],
        data["email"],
        data["password"],
        data["address"],
        settings=get_settings(),
    )
    return success("User registered successfully", {"user": user.to_dict(), "token": token}, 201)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by email and password.

    SECURITY: Unknown email and wrong password get the same 401. After
    repeated failures the email is locked and the response is 429 with a
    Retry-After header.
    """
    email, password = validate_login(request.get_json(silent=True))
    user, token = auth_service.login(
        email,
        password,
        settings=get_settings(),
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return success("Login successful", {"user": user.to_dict(), "token": token})


@auth_bp.get("/lockout-status/<path:email>")
def lockout_status_route(email: str):
    """
    Check lockout status for an account.

    Public so a locked-out client can tell when to retry.
    """
    status = login_throttle_service.get_lockout_status(email.strip().lower(), get_settings())
    return success("Lockout status retrieved", status)


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """
    Revoke the bearer token.

    WHY: Explicit logout prevents token reuse until natural expiry.
    """
    auth_service.logout(g.token, get_settings())
    return success("Logout successful")


@auth_bp.get("/me")
@require_auth
def me_route():
    return success("User retrieved successfully", {"user": g.current_user.to_dict()})

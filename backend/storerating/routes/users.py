# Overview: Flask API routes for the caller's own profile; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import get_settings, require_auth, require_permission
from ..permissions import MANAGE_OWN_PROFILE
from ..responses import success
from ..services import auth_service
from ..validation import validate_password_update, validate_profile_update

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/profile")
@require_auth
@require_permission(MANAGE_OWN_PROFILE)
def get_profile_route():
    return success("Profile retrieved successfully", {"user": g.current_user.to_dict()})


@users_bp.put("/profile")
@require_auth
@require_permission(MANAGE_OWN_PROFILE)
def update_profile_route():
    """Update name and/or address. Email and role cannot be changed here."""
    changes = validate_profile_update(request.get_json(silent=True))
    user = auth_service.update_profile(g.current_user.id, changes)
    return success("Profile updated successfully", {"user": user.to_dict()})


@users_bp.put("/password")
@require_auth
@require_permission(MANAGE_OWN_PROFILE)
def update_password_route():
    """
    Expected JSON:
    {"current_password": "...", "new_password": "..."}
    """
    current_password, new_password = validate_password_update(request.get_json(silent=True))
    auth_service.change_password(
        g.current_user.id,
        current_password,
        new_password,
        settings=get_settings(),
    )
    return success("Password updated successfully")

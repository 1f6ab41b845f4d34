# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for user and store management.

All endpoints require authentication and the ADMIN_MANAGE permission.
"""

from flask import Blueprint, g, request

from ..decorators import get_settings, require_auth, require_permission
from ..permissions import ADMIN_MANAGE
from ..responses import success
from ..services import admin_service, media_service
from ..services.query_service import listing_args
from ..validation import (
    validate_admin_user_create,
    validate_admin_user_update,
    validate_role_change,
    validate_store_create,
)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/dashboard")
@require_auth
@require_permission(ADMIN_MANAGE)
def dashboard_route():
    return success("Dashboard metrics retrieved successfully", admin_service.get_dashboard_metrics())


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_permission(ADMIN_MANAGE)
def list_users_route():
    """
    Query params:
    - name, email, address: case-insensitive substring filters
    - role: exact match (admin | user | store_owner)
    - page, limit, sort_by, sort_order
    """
    filters = {key: request.args.get(key) for key in ("name", "email", "address", "role")}
    page = admin_service.list_users(filters, **listing_args(request.args))
    data = page.to_dict("users")
    data["users"] = admin_service.serialize_users(page.items)
    return success("Users retrieved successfully", data)


@admin_bp.get("/users/search")
@require_auth
@require_permission(ADMIN_MANAGE)
def search_users_route():
    """Query param `q` matched against name, email and address."""
    page = admin_service.search_users(
        request.args.get("q") or request.args.get("query"),
        **listing_args(request.args),
    )
    data = page.to_dict("users")
    data["users"] = admin_service.serialize_users(page.items)
    return success("User search completed", data)


@admin_bp.post("/users")
@require_auth
@require_permission(ADMIN_MANAGE)
def create_user_route():
    """
    Create a user with any role.

    Expected JSON:
    {"name": "...", "email": "...", "password": "...", "address": "...", "role": "store_owner"}
    """
    data = validate_admin_user_create(request.get_json(silent=True))
    user = admin_service.create_user_by_admin(g.current_user, data, settings=get_settings())
    return success("User created successfully", {"user": user.to_dict()}, 201)


@admin_bp.put("/users/<int:user_id>")
@require_auth
@require_permission(ADMIN_MANAGE)
def update_user_route(user_id: int):
    fields = validate_admin_user_update(request.get_json(silent=True))
    user = admin_service.update_user_by_admin(g.current_user, user_id, fields)
    return success("User updated successfully", {"user": user.to_dict()})


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_permission(ADMIN_MANAGE)
def delete_user_route(user_id: int):
    """
    Delete a user and cascade to their ratings and, for store owners, their
    store with its media and ratings. Admin accounts cannot be deleted.
    """
    settings = get_settings()
    report = admin_service.delete_user(
        g.current_user,
        user_id,
        media_host=lambda: media_service.get_media_host(settings),
    )
    return success("User deleted successfully", report)


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_permission(ADMIN_MANAGE)
def change_role_route(user_id: int):
    """Expected JSON: {"role": "store_owner"}"""
    new_role = validate_role_change(request.get_json(silent=True))
    result = admin_service.change_user_role_by_admin(g.current_user, user_id, new_role)
    return success(
        "User role updated successfully",
        {
            "user": result["user"].to_dict(),
            "previous_role": result["previous_role"].value,
            "ratings_count": result["ratings_count"],
        },
    )


# =============================================================================
# STORE MANAGEMENT
# =============================================================================

@admin_bp.post("/stores")
@require_auth
@require_permission(ADMIN_MANAGE)
def create_store_route():
    """
    Expected JSON:
    {"name": "...", "email": "...", "address": "...", "owner_id": 3}
    """
    data = validate_store_create(request.get_json(silent=True))
    store = admin_service.create_store_by_admin(g.current_user, data)
    return success("Store created successfully", {"store": store.to_dict(include_owner=True)}, 201)

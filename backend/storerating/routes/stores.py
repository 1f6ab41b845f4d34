# Overview: Flask API routes for store browsing and store-owner operations; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import optional_auth, require_auth, require_permission
from ..permissions import BROWSE_STORES, UPDATE_STORE_PROFILE, VIEW_OWNER_DASHBOARD
from ..responses import success
from ..services import rating_service, store_service
from ..services.query_service import listing_args
from ..validation import validate_store_update

stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


def _viewer_id() -> int | None:
    user = getattr(g, "current_user", None)
    return user.id if user else None


@stores_bp.get("")
@optional_auth
@require_permission(BROWSE_STORES)
def list_stores_route():
    """
    Paginated store list. Public; an authenticated caller also gets
    `user_rating` (their own rating) on every store.

    Query params: page, limit, sort_by, sort_order
    """
    page = store_service.list_stores(_viewer_id(), **listing_args(request.args))
    return success(
        "Stores retrieved successfully",
        page.to_dict("stores", store_service.serialize_store_row),
    )


@stores_bp.get("/search")
@optional_auth
@require_permission(BROWSE_STORES)
def search_stores_route():
    """
    Query params:
    - q: matched case-insensitively against name and address
    - page, limit, sort_by, sort_order
    """
    page = store_service.search_stores(
        request.args.get("q") or request.args.get("query"),
        _viewer_id(),
        **listing_args(request.args),
    )
    return success(
        "Stores search completed",
        page.to_dict("stores", store_service.serialize_store_row),
    )


@stores_bp.get("/filter")
@optional_auth
@require_permission(BROWSE_STORES)
def filter_stores_route():
    """
    Query params:
    - name, email, address: case-insensitive substring filters
    - min_rating, max_rating: inclusive bounds on average_rating
    - page, limit, sort_by, sort_order
    """
    filters = {
        key: request.args.get(key)
        for key in ("name", "email", "address", "min_rating", "max_rating")
    }
    page = store_service.list_stores(_viewer_id(), filters=filters, **listing_args(request.args))
    return success(
        "Stores filtered successfully",
        page.to_dict("stores", store_service.serialize_store_row),
    )


@stores_bp.get("/<int:store_id>")
@optional_auth
@require_permission(BROWSE_STORES)
def get_store_route(store_id: int):
    store = store_service.get_store_detail(store_id, _viewer_id())
    return success("Store details retrieved successfully", {"store": store})


@stores_bp.put("/<int:store_id>")
@require_auth
@require_permission(UPDATE_STORE_PROFILE)
def update_store_route(store_id: int):
    """Owner-only edit of name, email and address."""
    changes = validate_store_update(request.get_json(silent=True))
    store = store_service.update_store_profile(store_id, g.current_user, changes)
    return success("Store updated successfully", {"store": store.to_dict(include_owner=True)})


@stores_bp.get("/owner/dashboard")
@require_auth
@require_permission(VIEW_OWNER_DASHBOARD)
def owner_dashboard_route():
    """Store aggregate, rating distribution and the 5 most recent ratings."""
    return success(
        "Dashboard data retrieved successfully",
        store_service.get_owner_dashboard(g.current_user),
    )


@stores_bp.get("/owner/ratings")
@require_auth
@require_permission(VIEW_OWNER_DASHBOARD)
def owner_ratings_route():
    args = listing_args(request.args)
    store, page = store_service.list_owner_ratings(g.current_user, args["page"], args["limit"])
    data = page.to_dict("ratings", lambda row: rating_service.serialize_store_rating(*row))
    data["store"] = store.to_dict()
    return success("Store ratings retrieved successfully", data)

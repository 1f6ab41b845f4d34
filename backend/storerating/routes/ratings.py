# Overview: Flask API routes for ratings; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import optional_auth, require_auth, require_permission
from ..errors import ValidationError
from ..permissions import BROWSE_STORES, MODIFY_RATING, SUBMIT_RATING, VIEW_USER_RATINGS
from ..responses import success
from ..services import permission_service, rating_service
from ..services.query_service import listing_args
from ..validation import require_int

ratings_bp = Blueprint("ratings", __name__, url_prefix="/api/ratings")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


@ratings_bp.post("")
@require_auth
@require_permission(SUBMIT_RATING)
def submit_rating_route():
    """
    Expected JSON:
    {"store_id": 1, "rating": 4}
    """
    data = _json_body()
    store_id = require_int(data.get("store_id", data.get("storeId")), "store_id")
    rating, store = rating_service.submit_rating(g.current_user, store_id, data.get("rating"))
    return success(
        "Rating submitted successfully",
        {"rating": rating.to_dict(), "store": store.to_dict()},
        201,
    )


@ratings_bp.put("/<int:rating_id>")
@require_auth
@require_permission(MODIFY_RATING)
def update_rating_route(rating_id: int):
    """Authors only. Expected JSON: {"rating": 5}"""
    data = _json_body()
    rating, store = rating_service.update_rating(rating_id, g.current_user, data.get("rating"))
    return success(
        "Rating updated successfully",
        {"rating": rating.to_dict(), "store": store.to_dict()},
    )


@ratings_bp.delete("/<int:rating_id>")
@require_auth
@require_permission(MODIFY_RATING)
def delete_rating_route(rating_id: int):
    store = rating_service.delete_rating(rating_id, g.current_user)
    return success("Rating deleted successfully", {"store": store.to_dict()})


@ratings_bp.get("/user/<int:user_id>")
@require_auth
@require_permission(VIEW_USER_RATINGS)
def user_ratings_route(user_id: int):
    """A user's own ratings; admins may list anyone's."""
    permission_service.check(
        VIEW_USER_RATINGS,
        g.current_user,
        owner_id=user_id,
        resource=request.path,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    args = listing_args(request.args)
    page = rating_service.list_user_ratings(user_id, args["page"], args["limit"])
    return success(
        "User ratings retrieved successfully",
        page.to_dict("ratings", lambda row: rating_service.serialize_user_rating(*row)),
    )


@ratings_bp.get("/store/<int:store_id>")
@optional_auth
@require_permission(BROWSE_STORES)
def store_ratings_route(store_id: int):
    args = listing_args(request.args)
    store, page = rating_service.list_store_ratings(store_id, args["page"], args["limit"])
    data = page.to_dict("ratings", lambda row: rating_service.serialize_store_rating(*row))
    data["store"] = store.to_dict()
    return success("Store ratings retrieved successfully", data)

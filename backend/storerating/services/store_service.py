# Overview: Service-layer operations for store browsing, search, details and owner views.

from __future__ import annotations

from sqlalchemy import and_, null, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import DuplicateEmail, StoreNotFound, ValidationError
from ..extensions import db
from ..models import Rating, Store, User
from ..permissions import UPDATE_STORE_PROFILE, VIEW_OWNER_DASHBOARD
from . import permission_service, rating_service
from .concurrency import lock_for_update, run_with_retry
from .query_service import DEFAULT_LIMIT, DEFAULT_PAGE, Page, apply_sort, apply_text_filters, paginate

STORE_SORTABLE_FIELDS = frozenset({
    "name", "email", "address", "average_rating", "total_ratings", "created_at",
})
STORE_TEXT_FILTERS = ("name", "email", "address")


def _with_viewer_rating(viewer_id: int | None):
    """Store rows paired with the viewer's own rating value (None if absent/anonymous)."""
    if viewer_id is None:
        query = db.session.query(Store, null().label("user_rating"))
    else:
        query = db.session.query(Store, Rating.rating.label("user_rating")).outerjoin(
            Rating,
            and_(Rating.store_id == Store.id, Rating.user_id == viewer_id),
        )
    return query.options(joinedload(Store.owner))


def _parse_rating_bound(value, field: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Validation failed", errors=[{"field": field, "message": f"{field} must be a number"}])
    if number < 0 or number > 5:
        raise ValidationError("Validation failed", errors=[{"field": field, "message": f"{field} must be between 0 and 5"}])
    return number


def list_stores(
    viewer_id: int | None = None,
    *,
    filters: dict | None = None,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> Page:
    """
    Paginated store listing; items are (Store, user_rating) pairs.

    filters: name/email/address (case-insensitive substring) and
    min_rating/max_rating (inclusive range on average_rating).
    """
    filters = filters or {}
    query = _with_viewer_rating(viewer_id)
    query = apply_text_filters(query, Store, filters, STORE_TEXT_FILTERS)

    min_rating = _parse_rating_bound(filters.get("min_rating"), "min_rating")
    max_rating = _parse_rating_bound(filters.get("max_rating"), "max_rating")
    if min_rating is not None and max_rating is not None and min_rating > max_rating:
        raise ValidationError(
            "Validation failed",
            errors=[{"field": "min_rating", "message": "min_rating cannot exceed max_rating"}],
        )
    if min_rating is not None:
        query = query.filter(Store.average_rating >= min_rating)
    if max_rating is not None:
        query = query.filter(Store.average_rating <= max_rating)

    query = apply_sort(query, Store, STORE_SORTABLE_FIELDS, sort_by, sort_order)
    return paginate(query, page, limit)


def search_stores(
    term: str | None,
    viewer_id: int | None = None,
    *,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> Page:
    """Free-text search: the term may match the store name or address."""
    query = _with_viewer_rating(viewer_id)
    term = (term or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(Store.name.ilike(pattern), Store.address.ilike(pattern)))
    query = apply_sort(query, Store, STORE_SORTABLE_FIELDS, sort_by, sort_order)
    return paginate(query, page, limit)


def get_store(store_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if store is None:
        raise StoreNotFound()
    return store


def get_store_detail(store_id: int, viewer_id: int | None = None) -> dict:
    """Store with owner summary, the viewer's rating and the 5 most recent ratings."""
    row = _with_viewer_rating(viewer_id).filter(Store.id == store_id).first()
    if row is None:
        raise StoreNotFound()
    store, user_rating = row

    data = serialize_store(store, user_rating)
    data["recent_ratings"] = [
        rating_service.serialize_store_rating(rating, user)
        for rating, user in rating_service.recent_store_ratings(store_id)
    ]
    return data


def serialize_store(store: Store, user_rating: int | None = None) -> dict:
    data = store.to_dict(include_owner=True)
    data["user_rating"] = user_rating
    return data


def serialize_store_row(row) -> dict:
    store, user_rating = row
    return serialize_store(store, user_rating)


def update_store_profile(store_id: int, actor: User, changes: dict) -> Store:
    """
    Owner edits name/email/address of their own store.

    Raises StoreNotFound, Forbidden (not the owner), DuplicateEmail.
    """
    store = get_store(store_id)
    permission_service.check(UPDATE_STORE_PROFILE, actor, owner_id=store.owner_id)

    new_email = changes.get("email")
    if new_email and new_email != store.email:
        taken = db.session.query(Store.id).filter(Store.email == new_email, Store.id != store_id).first()
        if taken:
            raise DuplicateEmail("Store email already exists")

    def _op():
        locked = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if locked is None:
            raise StoreNotFound()
        for key in ("name", "email", "address"):
            if key in changes:
                setattr(locked, key, changes[key])
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateEmail("Store email already exists")
        return locked

    return run_with_retry(_op)


def get_owner_store(owner: User) -> Store:
    """The store owned by `owner`; StoreNotFound if they have none yet."""
    permission_service.check(VIEW_OWNER_DASHBOARD, owner)
    store = db.session.query(Store).filter_by(owner_id=owner.id).first()
    if store is None:
        raise StoreNotFound("No store found for this owner")
    return store


def get_owner_dashboard(owner: User) -> dict:
    store = get_owner_store(owner)
    return {
        "store": store.to_dict(),
        "rating_distribution": {str(k): v for k, v in rating_service.rating_distribution(store.id).items()},
        "recent_ratings": [
            rating_service.serialize_store_rating(rating, user)
            for rating, user in rating_service.recent_store_ratings(store.id)
        ],
    }


def list_owner_ratings(owner: User, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> tuple[Store, Page]:
    store = get_owner_store(owner)
    return rating_service.list_store_ratings(store.id, page, limit)

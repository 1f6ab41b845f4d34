# Overview: Service-layer operations for ratings and the store rating aggregate.

"""
Rating Aggregation Engine

WHY: Store.average_rating / Store.total_ratings are a materialized view
over the ratings table. Every rating mutation recomputes them in the same
transaction that changes the rating row, so readers never see a rating
without its aggregate (or the reverse).

CONCURRENCY:
- The Store row is locked (SELECT ... FOR UPDATE) before recompute so two
  concurrent submissions for one store cannot lose an update
- One rating per (user, store) is a unique constraint; the pre-check only
  produces a friendlier error, the constraint closes the race
- The aggregate is always a full AVG/COUNT scan, never an increment
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import DuplicateRating, RatingNotFound, StoreNotFound
from ..extensions import db
from ..models import Rating, Store, User
from ..models.stores import format_average
from ..permissions import MODIFY_RATING, SUBMIT_RATING
from ..validation import MAX_RATING, MIN_RATING, validate_rating_value
from . import permission_service
from .concurrency import lock_for_update, run_with_retry
from .query_service import DEFAULT_LIMIT, DEFAULT_PAGE, Page, paginate

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO_AVERAGE = Decimal("0.00")


def round_average(value) -> Decimal:
    """Round half-up to 2 decimals; None (no ratings) becomes 0.00."""
    if value is None:
        return ZERO_AVERAGE
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _lock_store(store_id: int) -> Store:
    store = lock_for_update(db.session.query(Store).filter(Store.id == store_id)).first()
    if store is None:
        raise StoreNotFound()
    return store


def recompute_store_aggregate(store_id: int) -> Store:
    """
    Recompute average_rating and total_ratings from the current rows.

    The only writer of the aggregate columns. Does not commit; callers run
    it inside the transaction that changed the ratings.
    """
    store = _lock_store(store_id)
    db.session.flush()

    average, total = db.session.query(
        func.avg(Rating.rating),
        func.count(Rating.id),
    ).filter(Rating.store_id == store_id).one()

    store.total_ratings = int(total or 0)
    store.average_rating = round_average(average) if store.total_ratings else ZERO_AVERAGE
    return store


def _get_rating(rating_id: int) -> Rating:
    rating = db.session.get(Rating, rating_id)
    if rating is None:
        raise RatingNotFound()
    return rating


def _require_rating_owner(rating: Rating, user: User) -> None:
    permission_service.check(MODIFY_RATING, user, owner_id=rating.user_id)


def submit_rating(user: User, store_id: int, value) -> tuple[Rating, Store]:
    """
    Create the caller's rating for a store and refresh the aggregate.

    Raises:
        InvalidRating: value is not an int in 1..5
        Forbidden: the caller's role may not rate (store owners)
        StoreNotFound: no such store
        DuplicateRating: the caller already rated this store
    """
    value = validate_rating_value(value)
    permission_service.check(SUBMIT_RATING, user)

    def _op():
        _lock_store(store_id)

        if get_user_rating_for_store(user.id, store_id) is not None:
            raise DuplicateRating()

        rating = Rating(user_id=user.id, store_id=store_id, rating=value)
        db.session.add(rating)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateRating()

        store = recompute_store_aggregate(store_id)
        db.session.commit()
        return rating, store

    rating, store = run_with_retry(_op)
    logger.info("User %s rated store %s with %s", user.id, store_id, value)
    return rating, store


def update_rating(rating_id: int, user: User, value) -> tuple[Rating, Store]:
    """
    Change the value of the caller's own rating.

    Raises InvalidRating, RatingNotFound, or Forbidden (not the author).
    """
    value = validate_rating_value(value)
    rating = _get_rating(rating_id)
    _require_rating_owner(rating, user)

    def _op():
        _lock_store(rating.store_id)
        rating.rating = value
        store = recompute_store_aggregate(rating.store_id)
        db.session.commit()
        return rating, store

    return run_with_retry(_op)


def delete_rating(rating_id: int, user: User) -> Store:
    """
    Delete the caller's own rating; returns the refreshed store.

    Raises RatingNotFound, or Forbidden (not the author).
    """
    rating = _get_rating(rating_id)
    _require_rating_owner(rating, user)
    store_id = rating.store_id

    def _op():
        _lock_store(store_id)
        db.session.delete(rating)
        store = recompute_store_aggregate(store_id)
        db.session.commit()
        return store

    store = run_with_retry(_op)
    logger.info("User %s deleted rating %s of store %s", user.id, rating_id, store_id)
    return store


def get_user_rating_for_store(user_id: int, store_id: int) -> Rating | None:
    """The caller's existing rating of a store, if any."""
    return db.session.query(Rating).filter_by(user_id=user_id, store_id=store_id).first()


def list_user_ratings(user_id: int, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Page:
    """A user's ratings, newest first; items are (Rating, Store) pairs."""
    query = (
        db.session.query(Rating, Store)
        .join(Store, Store.id == Rating.store_id)
        .filter(Rating.user_id == user_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
    )
    return paginate(query, page, limit)


def list_store_ratings(store_id: int, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> tuple[Store, Page]:
    """
    A store's ratings, newest first; items are (Rating, User) pairs.

    Raises StoreNotFound.
    """
    store = db.session.get(Store, store_id)
    if store is None:
        raise StoreNotFound()

    query = (
        db.session.query(Rating, User)
        .join(User, User.id == Rating.user_id)
        .filter(Rating.store_id == store_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
    )
    return store, paginate(query, page, limit)


def recent_store_ratings(store_id: int, count: int = 5) -> list[tuple[Rating, User]]:
    return (
        db.session.query(Rating, User)
        .join(User, User.id == Rating.user_id)
        .filter(Rating.store_id == store_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
        .limit(count)
        .all()
    )


def rating_distribution(store_id: int) -> dict[int, int]:
    """Count of ratings per star value; every value 1..5 is present."""
    rows = (
        db.session.query(Rating.rating, func.count(Rating.id))
        .filter(Rating.store_id == store_id)
        .group_by(Rating.rating)
        .all()
    )
    distribution = {value: 0 for value in range(MIN_RATING, MAX_RATING + 1)}
    for value, count in rows:
        distribution[int(value)] = int(count)
    return distribution


def serialize_user_rating(rating: Rating, store: Store) -> dict:
    data = rating.to_dict()
    data["store"] = {
        "id": store.id,
        "name": store.name,
        "address": store.address,
        "average_rating": format_average(store.average_rating),
    }
    return data


def serialize_store_rating(rating: Rating, user: User) -> dict:
    data = rating.to_dict()
    data["user"] = {"id": user.id, "name": user.name}
    return data

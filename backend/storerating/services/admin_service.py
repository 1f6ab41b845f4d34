# Overview: Service-layer operations for administrators; encapsulates business logic and database work.

"""
Admin Mutation Service and Cascade-Delete Orchestrator

WHY: Admin operations are the only way to create stores, assign roles other
than `user`, and delete accounts. They enforce the cross-entity rules the
rest of the system relies on:
- A store's owner must have role store_owner and owns at most one store
- Admin accounts cannot be deleted and their role cannot change
- A store_owner cannot lose the role while still owning a store

TRANSACTIONS: Every mutation runs inside run_with_retry; any exception rolls
the whole unit back, so a half-applied cascade is never committed.
"""

from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..config import Settings
from ..errors import (
    CannotChangeAdminRole,
    CannotChangeRoleOwnsStore,
    CannotDeleteAdmin,
    DuplicateEmail,
    ExternalServiceError,
    OwnerAlreadyHasStore,
    OwnerNotFound,
    OwnerWrongRole,
    RoleUnchanged,
    UserNotFound,
    ValidationError,
)
from ..extensions import db
from ..models import Rating, Role, Store, StoreMedia, User
from ..models.stores import format_average
from ..permissions import ADMIN_MANAGE
from . import auth_service, permission_service, rating_service
from .concurrency import lock_for_update, run_with_retry
from .media_service import MediaAsset, MediaHost, destroy_assets_best_effort
from .query_service import DEFAULT_LIMIT, DEFAULT_PAGE, Page, apply_sort, apply_text_filters, paginate

logger = logging.getLogger(__name__)

USER_SORTABLE_FIELDS = frozenset({"name", "email", "address", "role", "created_at", "updated_at"})
USER_TEXT_FILTERS = ("name", "email", "address")


def _require_admin(actor: User) -> None:
    permission_service.check(ADMIN_MANAGE, actor)


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFound()
    return user


def _lock_user(user_id: int) -> User:
    user = lock_for_update(db.session.query(User).filter(User.id == user_id)).first()
    if user is None:
        raise UserNotFound()
    return user


def _owns_store(user_id: int) -> bool:
    return db.session.query(Store.id).filter(Store.owner_id == user_id).first() is not None


def _store_email_taken(email: str) -> bool:
    return db.session.query(Store.id).filter(Store.email == email).first() is not None


def _audit(actor: User, event_type: str, reason: str) -> None:
    permission_service.log_security_event(
        user_id=actor.id,
        event_type=event_type,
        success=True,
        action=ADMIN_MANAGE,
        reason=reason,
    )


# -- Dashboard / listings --

def get_dashboard_metrics() -> dict:
    """Totals plus a role -> count breakdown (every role present). Read-only."""
    by_role = {role.value: 0 for role in Role}
    for role, count in db.session.query(User.role, func.count(User.id)).group_by(User.role).all():
        by_role[Role(role).value] = int(count)

    return {
        "total_users": db.session.query(func.count(User.id)).scalar() or 0,
        "total_stores": db.session.query(func.count(Store.id)).scalar() or 0,
        "total_ratings": db.session.query(func.count(Rating.id)).scalar() or 0,
        "users_by_role": by_role,
    }


def list_users(
    filters: dict | None = None,
    *,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> Page:
    """
    Paginated user listing.

    filters: name/email/address (case-insensitive substring), role (exact).
    """
    filters = filters or {}
    query = db.session.query(User)
    query = apply_text_filters(query, User, filters, USER_TEXT_FILTERS)

    role = filters.get("role")
    if role:
        try:
            query = query.filter(User.role == Role(role))
        except ValueError:
            raise ValidationError(
                "Validation failed",
                errors=[{"field": "role", "message": f"Role must be one of: {', '.join(Role.values())}"}],
            )

    query = apply_sort(query, User, USER_SORTABLE_FIELDS, sort_by, sort_order)
    return paginate(query, page, limit)


def search_users(
    term: str | None,
    *,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> Page:
    """The term may match name, email or address."""
    query = db.session.query(User)
    term = (term or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(
            User.name.ilike(pattern),
            User.email.ilike(pattern),
            User.address.ilike(pattern),
        ))
    query = apply_sort(query, User, USER_SORTABLE_FIELDS, sort_by, sort_order)
    return paginate(query, page, limit)


def serialize_users(users: list[User]) -> list[dict]:
    """User dicts; store_owner rows carry a summary of their store (or None)."""
    owner_ids = [u.id for u in users if u.role == Role.STORE_OWNER]
    stores = {}
    if owner_ids:
        stores = {
            s.owner_id: s
            for s in db.session.query(Store).filter(Store.owner_id.in_(owner_ids)).all()
        }

    result = []
    for user in users:
        data = user.to_dict()
        if user.role == Role.STORE_OWNER:
            store = stores.get(user.id)
            data["store"] = None if store is None else {
                "id": store.id,
                "name": store.name,
                "average_rating": format_average(store.average_rating),
            }
        result.append(data)
    return result


# -- Mutations --

def create_user_by_admin(actor: User, data: dict, *, settings: Settings) -> User:
    """Create an account with any role. Raises DuplicateEmail."""
    _require_admin(actor)
    user = auth_service.create_user(
        data["name"],
        data["email"],
        data["password"],
        settings=settings,
        address=data.get("address"),
        role=Role(data["role"]),
    )
    _audit(actor, "USER_CREATED", f"user_id={user.id} role={user.role.value}")
    return user


def create_store_by_admin(actor: User, data: dict) -> Store:
    """
    Create a store for a store_owner.

    Checks, in order: DuplicateEmail (store email), OwnerNotFound,
    OwnerWrongRole, OwnerAlreadyHasStore. The unique constraints on
    stores.email and stores.owner_id back the first and last checks.
    """
    _require_admin(actor)
    email = data["email"].lower()
    owner_id = data["owner_id"]

    def _op():
        if _store_email_taken(email):
            raise DuplicateEmail("Store email already exists")

        owner = lock_for_update(db.session.query(User).filter(User.id == owner_id)).first()
        if owner is None:
            raise OwnerNotFound()
        if owner.role != Role.STORE_OWNER:
            raise OwnerWrongRole()
        if _owns_store(owner.id):
            raise OwnerAlreadyHasStore()

        store = Store(
            name=data["name"],
            email=email,
            address=data["address"],
            owner_id=owner.id,
        )
        db.session.add(store)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if _store_email_taken(email):
                raise DuplicateEmail("Store email already exists")
            raise OwnerAlreadyHasStore()
        return store

    store = run_with_retry(_op)
    logger.info("Admin %s created store %s for owner %s", actor.id, store.id, owner_id)
    return store


def update_user_by_admin(actor: User, user_id: int, fields: dict) -> User:
    """
    Partial update of name/email/address/role.

    Raises UserNotFound, DuplicateEmail, CannotChangeAdminRole,
    CannotChangeRoleOwnsStore.
    """
    _require_admin(actor)
    _get_user(user_id)

    def _op():
        user = _lock_user(user_id)

        new_email = fields.get("email")
        if new_email and new_email != user.email and auth_service.email_exists(new_email, exclude_user_id=user.id):
            raise DuplicateEmail()

        new_role = fields.get("role")
        if new_role is not None:
            new_role = Role(new_role)
            if user.role == Role.ADMIN and new_role != Role.ADMIN:
                raise CannotChangeAdminRole()
            if user.role == Role.STORE_OWNER and new_role != Role.STORE_OWNER and _owns_store(user.id):
                raise CannotChangeRoleOwnsStore()

        for key in ("name", "email", "address"):
            if key in fields:
                setattr(user, key, fields[key])
        if new_role is not None:
            user.role = new_role

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateEmail()
        return user

    return run_with_retry(_op)


def change_user_role_by_admin(actor: User, user_id: int, new_role: Role) -> dict:
    """
    Change a user's role.

    Raises UserNotFound, CannotChangeAdminRole, RoleUnchanged,
    CannotChangeRoleOwnsStore. The ownership check runs with the user row
    locked so a concurrent store creation cannot slip in between.

    Returns {"user", "previous_role", "ratings_count"}.
    """
    _require_admin(actor)
    new_role = Role(new_role)
    user = _get_user(user_id)
    if user.role == Role.ADMIN:
        raise CannotChangeAdminRole()
    if user.role == new_role:
        raise RoleUnchanged()

    def _op():
        locked = _lock_user(user_id)
        previous_role = locked.role
        if previous_role == Role.ADMIN:
            raise CannotChangeAdminRole()
        if previous_role == new_role:
            raise RoleUnchanged()
        if previous_role == Role.STORE_OWNER and _owns_store(locked.id):
            raise CannotChangeRoleOwnsStore()

        locked.role = new_role
        ratings_count = db.session.query(func.count(Rating.id)).filter(Rating.user_id == locked.id).scalar() or 0
        db.session.commit()
        return {"user": locked, "previous_role": previous_role, "ratings_count": int(ratings_count)}

    result = run_with_retry(_op)
    _audit(actor, "ROLE_CHANGED", f"user_id={user_id} {result['previous_role'].value}->{new_role.value}")
    return result


def delete_user(
    actor: User,
    target_user_id: int,
    *,
    media_host: Callable[[], MediaHost] | None = None,
) -> dict:
    """
    Delete a non-admin user and everything that depends on them.

    In one transaction: the user's own ratings; for a store_owner with a
    store, that store's media rows, every rating of that store and the
    store itself; the aggregates of the other stores the user had rated;
    finally the user row.

    After commit the store's media assets are removed from the host on a
    best-effort basis (`media_host` is a factory, resolved only when there
    is something to remove).

    Returns {"deleted_user", "ratings_deleted", "store_deleted",
    "store_media_deleted"}.
    """
    _require_admin(actor)
    target = _get_user(target_user_id)
    if target.role == Role.ADMIN:
        raise CannotDeleteAdmin()

    assets: list[MediaAsset] = []

    def _op():
        assets.clear()
        user = _lock_user(target_user_id)
        if user.role == Role.ADMIN:
            raise CannotDeleteAdmin()
        deleted_user = user.to_dict()

        rated_store_ids = {
            store_id for (store_id,) in
            db.session.query(Rating.store_id).filter(Rating.user_id == user.id).distinct().all()
        }
        ratings_deleted = db.session.query(Rating).filter(Rating.user_id == user.id).delete()

        store_deleted = None
        store_media_deleted = 0
        if user.role == Role.STORE_OWNER:
            store = lock_for_update(db.session.query(Store).filter(Store.owner_id == user.id)).first()
            if store is not None:
                assets.extend(
                    MediaAsset(public_id, file_type)
                    for public_id, file_type in db.session.query(
                        StoreMedia.external_media_id, StoreMedia.file_type
                    ).filter(StoreMedia.store_id == store.id).all()
                    if public_id
                )
                store_media_deleted = db.session.query(StoreMedia).filter(StoreMedia.store_id == store.id).delete()
                db.session.query(Rating).filter(Rating.store_id == store.id).delete()
                store_deleted = store.to_dict()
                rated_store_ids.discard(store.id)
                db.session.query(Store).filter(Store.id == store.id).delete()

        for store_id in sorted(rated_store_ids):
            rating_service.recompute_store_aggregate(store_id)

        db.session.query(User).filter(User.id == user.id).delete()
        db.session.commit()

        return {
            "deleted_user": deleted_user,
            "ratings_deleted": ratings_deleted,
            "store_deleted": store_deleted,
            "store_media_deleted": store_media_deleted,
        }

    report = run_with_retry(_op)
    logger.info(
        "Admin %s deleted user %s (ratings=%s, store=%s, media=%s)",
        actor.id, target_user_id, report["ratings_deleted"],
        report["store_deleted"]["id"] if report["store_deleted"] else None,
        report["store_media_deleted"],
    )
    _audit(actor, "USER_DELETED", f"user_id={target_user_id}")

    if assets and media_host is not None:
        try:
            host = media_host()
        except ExternalServiceError:
            logger.warning("Media host unavailable; %d assets left on host", len(assets), exc_info=True)
        else:
            destroy_assets_best_effort(assets, host)

    return report

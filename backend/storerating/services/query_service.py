# Overview: Shared pagination, sorting and text-filter helpers for list endpoints.

"""
Query/Filter/Search helpers

Every paginated listing (stores, users, ratings) goes through paginate(),
so `total_count` always comes from a COUNT over the filtered query, never
from the length of the returned page.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..errors import ValidationError
from ..validation import MAX_DB_INTEGER

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass
class Page:
    items: list = field(default_factory=list)
    total_count: int = 0
    total_pages: int = 0
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    def to_dict(self, items_key: str = "items", serialize=None) -> dict:
        items = [serialize(item) for item in self.items] if serialize else list(self.items)
        return {
            items_key: items,
            "pagination": {
                "current_page": self.page,
                "total_pages": self.total_pages,
                "total_count": self.total_count,
                "limit": self.limit,
                "has_next": self.page < self.total_pages,
                "has_prev": self.page > 1,
            },
        }


def normalize_paging(page: Any = None, limit: Any = None) -> tuple[int, int]:
    """
    Coerce page/limit query values.

    Missing values take the defaults (1 and 10); limit is capped at 100.
    Non-numeric or non-positive values, and pages whose offset would not
    fit a database integer, are a ValidationError.
    """
    errors = []

    def _coerce(value, name, default):
        if value is None or value == "":
            return default
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append({"field": name, "message": f"{name} must be a positive integer"})
            return default
        if number < 1:
            errors.append({"field": name, "message": f"{name} must be a positive integer"})
            return default
        return number

    page = _coerce(page, "page", DEFAULT_PAGE)
    limit = min(_coerce(limit, "limit", DEFAULT_LIMIT), MAX_LIMIT)
    if (page - 1) * limit > MAX_DB_INTEGER:
        errors.append({"field": "page", "message": "page is out of range"})
    if errors:
        raise ValidationError("Validation failed", errors=errors)
    return page, limit


def apply_sort(query, model, sortable: Iterable[str], sort_by: str | None, sort_order: str | None,
               default: tuple[str, str] = ("created_at", "desc")):
    """
    Order by a whitelisted column.

    Unknown fields and directions silently fall back to `default`.
    The primary key is always the tie-breaker so pages are stable.
    """
    sortable = set(sortable)
    column_name, direction = default
    if sort_by in sortable:
        column_name = sort_by
        direction = sort_order.lower() if sort_order and sort_order.lower() in ("asc", "desc") else "asc"

    column = getattr(model, column_name)
    tie_breaker = model.id
    if direction == "asc":
        return query.order_by(column.asc(), tie_breaker.asc())
    return query.order_by(column.desc(), tie_breaker.desc())


def apply_text_filters(query, model, filters: dict[str, Any], fields: Iterable[str]):
    """Case-insensitive substring match for each non-blank filter value."""
    for name in fields:
        value = filters.get(name)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            query = query.filter(getattr(model, name).ilike(f"%{value}%"))
    return query


def paginate(query, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Page:
    """
    Run a COUNT over the (already filtered) query, then fetch one page.

    offset = (page - 1) * limit; total_pages = ceil(total_count / limit).
    """
    total_count = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(
        items=items,
        total_count=total_count,
        total_pages=math.ceil(total_count / limit) if limit else 0,
        page=page,
        limit=limit,
    )


def listing_args(args) -> dict:
    """page/limit/sort_by/sort_order from a query-string mapping."""
    page, limit = normalize_paging(args.get("page"), args.get("limit"))
    return {
        "page": page,
        "limit": limit,
        "sort_by": args.get("sort_by") or args.get("sortBy"),
        "sort_order": args.get("sort_order") or args.get("sortOrder"),
    }

# Overview: Permission system package.
# Re-exports all public APIs so callers import from storerating.permissions.

from .categories import PermissionCategory, OwnershipRule
from .definitions import (
    PERMISSION_DEFINITIONS,
    ROLE_DENIAL_MESSAGES,
    OWNERSHIP_DENIAL_MESSAGES,
    BROWSE_STORES,
    SUBMIT_RATING,
    MODIFY_RATING,
    VIEW_USER_RATINGS,
    UPDATE_STORE_PROFILE,
    VIEW_OWNER_DASHBOARD,
    MANAGE_STORE_MEDIA,
    MANAGE_OWN_PROFILE,
    ADMIN_MANAGE,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, ANONYMOUS
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    get_ownership_rule,
)

__all__ = [
    "PermissionCategory",
    "OwnershipRule",
    "PERMISSION_DEFINITIONS",
    "ROLE_DENIAL_MESSAGES",
    "OWNERSHIP_DENIAL_MESSAGES",
    "BROWSE_STORES",
    "SUBMIT_RATING",
    "MODIFY_RATING",
    "VIEW_USER_RATINGS",
    "UPDATE_STORE_PROFILE",
    "VIEW_OWNER_DASHBOARD",
    "MANAGE_STORE_MEDIA",
    "MANAGE_OWN_PROFILE",
    "ADMIN_MANAGE",
    "DEFAULT_ROLE_PERMISSIONS",
    "ANONYMOUS",
    "get_all_permission_codes",
    "get_permission_definition",
    "get_ownership_rule",
]

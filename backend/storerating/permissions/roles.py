# Overview: Role -> allowed operations matrix.
# This table and definitions.OWNERSHIP rules are the whole authorization model.

from ..models.auth import Role
from .definitions import (
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


# Pseudo-role for requests without a session
ANONYMOUS = "anonymous"


DEFAULT_ROLE_PERMISSIONS = {
    ANONYMOUS: frozenset({
        BROWSE_STORES,
    }),
    Role.USER: frozenset({
        BROWSE_STORES,
        SUBMIT_RATING,
        MODIFY_RATING,
        VIEW_USER_RATINGS,
        MANAGE_OWN_PROFILE,
    }),
    Role.STORE_OWNER: frozenset({
        BROWSE_STORES,
        MODIFY_RATING,
        VIEW_USER_RATINGS,
        UPDATE_STORE_PROFILE,
        VIEW_OWNER_DASHBOARD,
        MANAGE_STORE_MEDIA,
        MANAGE_OWN_PROFILE,
    }),
    Role.ADMIN: frozenset({
        BROWSE_STORES,
        SUBMIT_RATING,
        MODIFY_RATING,
        VIEW_USER_RATINGS,
        MANAGE_STORE_MEDIA,
        MANAGE_OWN_PROFILE,
        ADMIN_MANAGE,
    }),
}

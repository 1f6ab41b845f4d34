# Overview: Permission category constants for grouping related operations.


class PermissionCategory:
    """Operation categories for organization and UI display."""
    BROWSING = "BROWSING"
    RATINGS = "RATINGS"
    STORES = "STORES"
    MEDIA = "MEDIA"
    ACCOUNT = "ACCOUNT"
    ADMIN = "ADMIN"


class OwnershipRule:
    """
    Extra condition evaluated after the role gate.

    NONE:           the role gate is the whole check
    OWNER:          actor.id must equal the resource owner id
    OWNER_OR_ADMIN: admins pass; everyone else must be the resource owner
    """
    NONE = "NONE"
    OWNER = "OWNER"
    OWNER_OR_ADMIN = "OWNER_OR_ADMIN"

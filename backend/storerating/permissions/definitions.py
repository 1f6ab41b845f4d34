# Overview: All operation definitions.
# Each operation is defined as: (code, name, description, category, ownership_rule)

from .categories import PermissionCategory, OwnershipRule


BROWSE_STORES = "BROWSE_STORES"
SUBMIT_RATING = "SUBMIT_RATING"
MODIFY_RATING = "MODIFY_RATING"
VIEW_USER_RATINGS = "VIEW_USER_RATINGS"
UPDATE_STORE_PROFILE = "UPDATE_STORE_PROFILE"
VIEW_OWNER_DASHBOARD = "VIEW_OWNER_DASHBOARD"
MANAGE_STORE_MEDIA = "MANAGE_STORE_MEDIA"
MANAGE_OWN_PROFILE = "MANAGE_OWN_PROFILE"
ADMIN_MANAGE = "ADMIN_MANAGE"


PERMISSION_DEFINITIONS = [
    (
        BROWSE_STORES,
        "Browse Stores",
        "List, search and view stores, their ratings and media",
        PermissionCategory.BROWSING,
        OwnershipRule.NONE,
    ),
    (
        SUBMIT_RATING,
        "Submit Rating",
        "Rate a store (store owners are excluded: conflict of interest)",
        PermissionCategory.RATINGS,
        OwnershipRule.NONE,
    ),
    (
        MODIFY_RATING,
        "Update/Delete Rating",
        "Change or remove a rating the actor authored",
        PermissionCategory.RATINGS,
        OwnershipRule.OWNER,
    ),
    (
        VIEW_USER_RATINGS,
        "View User Ratings",
        "List the ratings a user has submitted",
        PermissionCategory.RATINGS,
        OwnershipRule.OWNER_OR_ADMIN,
    ),
    (
        UPDATE_STORE_PROFILE,
        "Update Store Profile",
        "Edit name, email and address of the actor's own store",
        PermissionCategory.STORES,
        OwnershipRule.OWNER,
    ),
    (
        VIEW_OWNER_DASHBOARD,
        "Owner Dashboard",
        "View aggregated feedback for the actor's own store",
        PermissionCategory.STORES,
        OwnershipRule.NONE,
    ),
    (
        MANAGE_STORE_MEDIA,
        "Manage Store Media",
        "Upload and delete images/videos of a store",
        PermissionCategory.MEDIA,
        OwnershipRule.OWNER_OR_ADMIN,
    ),
    (
        MANAGE_OWN_PROFILE,
        "Manage Own Profile",
        "View and edit own profile, change own password",
        PermissionCategory.ACCOUNT,
        OwnershipRule.NONE,
    ),
    (
        ADMIN_MANAGE,
        "Administration",
        "User/store CRUD, role changes, dashboard metrics and user search",
        PermissionCategory.ADMIN,
        OwnershipRule.NONE,
    ),
]


# Messages returned when the role gate or the ownership rule denies an operation
ROLE_DENIAL_MESSAGES = {
    SUBMIT_RATING: "Store owners cannot submit ratings",
    UPDATE_STORE_PROFILE: "Only store owners can update store details",
    VIEW_OWNER_DASHBOARD: "Only store owners can view the owner dashboard",
    MANAGE_STORE_MEDIA: "Only store owners and admins can manage store media",
    ADMIN_MANAGE: "Admin access required",
}

OWNERSHIP_DENIAL_MESSAGES = {
    MODIFY_RATING: "You can only modify your own ratings",
    VIEW_USER_RATINGS: "You can only view your own ratings",
    UPDATE_STORE_PROFILE: "You can only update your own store",
    MANAGE_STORE_MEDIA: "You can only manage media of your own store",
}

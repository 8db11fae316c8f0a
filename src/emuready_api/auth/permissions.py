"""Static permission registry and the permission predicate."""

import logging

from collections.abc import Collection

from emuready_api.auth.roles import at_least
from emuready_api.database.models.base import UserRole
from emuready_api.database.models.permission import PermissionCategory
from emuready_api.database.models.permission import PermissionDefinition
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.user import User

logger = logging.getLogger(__name__)

_CONTENT = PermissionCategory.CONTENT
_MODERATION = PermissionCategory.MODERATION
_USERS = PermissionCategory.USER_MANAGEMENT
_SYSTEM = PermissionCategory.SYSTEM

_DEFINITIONS: tuple[tuple[PermissionKey, str, PermissionCategory, UserRole], ...] = (
    # USER
    (PermissionKey.CREATE_LISTING, "Create Listings", _CONTENT, UserRole.USER),
    (PermissionKey.EDIT_OWN_COMMENT, "Edit Own Comments", _CONTENT, UserRole.USER),
    (PermissionKey.DELETE_OWN_COMMENT, "Delete Own Comments", _CONTENT, UserRole.USER),
    # DEVELOPER
    (
        PermissionKey.ACCESS_ADMIN_PANEL,
        "Access Admin Panel",
        _SYSTEM,
        UserRole.DEVELOPER,
    ),
    # MODERATOR
    (
        PermissionKey.APPROVE_LISTINGS,
        "Approve Listings",
        _MODERATION,
        UserRole.MODERATOR,
    ),
    (PermissionKey.APPROVE_GAMES, "Approve Games", _MODERATION, UserRole.MODERATOR),
    (PermissionKey.EDIT_ANY_LISTING, "Edit Any Listing", _CONTENT, UserRole.MODERATOR),
    (
        PermissionKey.DELETE_ANY_COMMENT,
        "Delete Any Comment",
        _CONTENT,
        UserRole.MODERATOR,
    ),
    (PermissionKey.EDIT_GAMES, "Edit Games", _CONTENT, UserRole.MODERATOR),
    (PermissionKey.MANAGE_REPORTS, "Review Reports", _MODERATION, UserRole.MODERATOR),
    (PermissionKey.VIEW_USER_BANS, "View User Bans", _MODERATION, UserRole.MODERATOR),
    (PermissionKey.VIEW_TRUST_LOGS, "View Trust Logs", _MODERATION, UserRole.MODERATOR),
    (PermissionKey.VIEW_STATISTICS, "View Statistics", _SYSTEM, UserRole.MODERATOR),
    (PermissionKey.VIEW_LOGS, "View Logs", _SYSTEM, UserRole.MODERATOR),
    # ADMIN
    (PermissionKey.DELETE_ANY_LISTING, "Delete Any Listing", _CONTENT, UserRole.ADMIN),
    (PermissionKey.DELETE_GAMES, "Delete Games", _CONTENT, UserRole.ADMIN),
    (PermissionKey.MANAGE_GAMES, "Manage Games", _CONTENT, UserRole.ADMIN),
    (PermissionKey.MANAGE_EMULATORS, "Manage Emulators", _CONTENT, UserRole.ADMIN),
    (
        PermissionKey.MANAGE_CUSTOM_FIELDS,
        "Manage Custom Fields",
        _CONTENT,
        UserRole.ADMIN,
    ),
    (
        PermissionKey.MANAGE_EMULATOR_VERIFIED_DEVELOPERS,
        "Manage Verified Developers",
        _USERS,
        UserRole.ADMIN,
    ),
    (PermissionKey.MANAGE_DEVICES, "Manage Devices", _CONTENT, UserRole.ADMIN),
    (PermissionKey.MANAGE_SYSTEMS, "Manage Systems", _CONTENT, UserRole.ADMIN),
    (PermissionKey.MANAGE_USERS, "Manage Users", _USERS, UserRole.ADMIN),
    (PermissionKey.CHANGE_USER_ROLES, "Change User Roles", _USERS, UserRole.ADMIN),
    (PermissionKey.MANAGE_USER_BANS, "Manage User Bans", _MODERATION, UserRole.ADMIN),
    (
        PermissionKey.MANAGE_TRUST_SYSTEM,
        "Manage Trust System",
        _MODERATION,
        UserRole.ADMIN,
    ),
    (
        PermissionKey.OVERRIDE_APPROVAL_STATUS,
        "Override Approval Status",
        _MODERATION,
        UserRole.ADMIN,
    ),
    # SUPER_ADMIN
    (
        PermissionKey.EDIT_ANY_COMMENT,
        "Edit Any Comment",
        _CONTENT,
        UserRole.SUPER_ADMIN,
    ),
    (
        PermissionKey.MODIFY_SUPER_ADMIN_USERS,
        "Modify Super Admin Users",
        _USERS,
        UserRole.SUPER_ADMIN,
    ),
    (
        PermissionKey.MANAGE_PERMISSIONS,
        "Manage Permissions",
        _SYSTEM,
        UserRole.SUPER_ADMIN,
    ),
    (
        PermissionKey.VIEW_PERMISSION_LOGS,
        "View Permission Logs",
        _SYSTEM,
        UserRole.SUPER_ADMIN,
    ),
    (
        PermissionKey.ARCHIVE_USER_BANS,
        "Archive User Bans",
        _MODERATION,
        UserRole.SUPER_ADMIN,
    ),
)

PERMISSION_REGISTRY: dict[str, PermissionDefinition] = {
    key.value: PermissionDefinition(
        key=key, label=label, category=category, minimum_role=minimum_role
    )
    for key, label, category, minimum_role in _DEFINITIONS
}


def get_permission(
    permission_key: PermissionKey | str,
) -> PermissionDefinition | None:
    """Look up a permission definition by key."""
    if isinstance(permission_key, PermissionKey):
        permission_key = permission_key.value
    return PERMISSION_REGISTRY.get(permission_key)


def role_has_permission(
    role: UserRole | str, permission_key: PermissionKey | str
) -> bool:
    """Whether a role meets a permission's minimum role. Unknown keys deny."""
    definition = get_permission(permission_key)
    if definition is None:
        return False
    return at_least(role, definition.minimum_role)


def get_role_permissions(role: UserRole | str) -> list[str]:
    """All permission keys a role holds without explicit grants."""
    return sorted(
        key
        for key, definition in PERMISSION_REGISTRY.items()
        if at_least(role, definition.minimum_role)
    )


def has_permission(
    user: User,
    permission_key: PermissionKey | str,
    granted_keys: Collection[str] = (),
) -> bool:
    """Decide whether ``user`` holds ``permission_key``.

    The role threshold is checked first; ``granted_keys`` are the user's
    explicit grants and act as an override. Keys missing from the registry
    are denied even when granted.
    """
    definition = get_permission(permission_key)
    if definition is None:
        logger.warning(f"Denied unknown permission key: {permission_key}")
        return False

    if at_least(user.role, definition.minimum_role):
        return True

    return definition.key in granted_keys

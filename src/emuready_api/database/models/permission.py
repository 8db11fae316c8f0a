"""Permission models for the EmuReady API."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator

from emuready_api.database.models.base import BaseDBModel
from emuready_api.database.models.base import UserRole


class PermissionCategory(str, Enum):
    """Grouping used by the admin permission screens."""

    CONTENT = "content"
    MODERATION = "moderation"
    USER_MANAGEMENT = "user_management"
    SYSTEM = "system"


class PermissionKey(str, Enum):
    """Every capability the application knows about."""

    # Content
    CREATE_LISTING = "create_listing"
    EDIT_ANY_LISTING = "edit_any_listing"
    DELETE_ANY_LISTING = "delete_any_listing"
    EDIT_OWN_COMMENT = "edit_own_comment"
    DELETE_OWN_COMMENT = "delete_own_comment"
    EDIT_ANY_COMMENT = "edit_any_comment"
    DELETE_ANY_COMMENT = "delete_any_comment"
    EDIT_GAMES = "edit_games"
    DELETE_GAMES = "delete_games"
    MANAGE_GAMES = "manage_games"
    MANAGE_EMULATORS = "manage_emulators"
    MANAGE_CUSTOM_FIELDS = "manage_custom_fields"
    MANAGE_EMULATOR_VERIFIED_DEVELOPERS = "manage_emulator_verified_developers"
    MANAGE_DEVICES = "manage_devices"
    MANAGE_SYSTEMS = "manage_systems"

    # Moderation
    APPROVE_LISTINGS = "approve_listings"
    APPROVE_GAMES = "approve_games"
    OVERRIDE_APPROVAL_STATUS = "override_approval_status"
    MANAGE_REPORTS = "manage_reports"
    VIEW_USER_BANS = "view_user_bans"
    MANAGE_USER_BANS = "manage_user_bans"
    ARCHIVE_USER_BANS = "archive_user_bans"
    VIEW_TRUST_LOGS = "view_trust_logs"
    MANAGE_TRUST_SYSTEM = "manage_trust_system"

    # User management
    MANAGE_USERS = "manage_users"
    CHANGE_USER_ROLES = "change_user_roles"
    MODIFY_SUPER_ADMIN_USERS = "modify_super_admin_users"

    # System
    ACCESS_ADMIN_PANEL = "access_admin_panel"
    VIEW_STATISTICS = "view_statistics"
    VIEW_LOGS = "view_logs"
    MANAGE_PERMISSIONS = "manage_permissions"
    VIEW_PERMISSION_LOGS = "view_permission_logs"


class PermissionDefinition(BaseModel):
    """A capability and the least privileged role that holds it."""

    key: PermissionKey
    label: str
    category: PermissionCategory
    minimum_role: UserRole

    model_config = ConfigDict(frozen=True, use_enum_values=True)


class PermissionGrant(BaseDBModel):
    """Explicit per-user grant that overrides the role threshold."""

    user_pk: UUID
    permission_key: str
    granted_by_pk: UUID


class PermissionGrantCreate(BaseModel):
    """Grant request body."""

    permission_key: str

    @field_validator("permission_key")
    @classmethod
    def validate_permission_key(cls, v: str) -> str:
        """Normalize the permission key."""
        if not v or not v.strip():
            raise ValueError("Permission key cannot be empty")
        return v.strip().lower()


class PermissionCheckResponse(BaseModel):
    """Result of a permission check."""

    user_pk: UUID
    permission_key: str
    allowed: bool


class UserPermissions(BaseModel):
    """Effective permissions for a user."""

    user_pk: UUID
    role: UserRole
    permissions: list[str]
    granted_permissions: list[str]

    model_config = ConfigDict(use_enum_values=True)

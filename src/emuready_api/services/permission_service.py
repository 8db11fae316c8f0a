"""Permission and role administration for the EmuReady API."""

import logging

from uuid import UUID

from asyncpg import Connection

from emuready_api.auth.permissions import get_permission
from emuready_api.auth.permissions import get_role_permissions
from emuready_api.auth.permissions import has_permission
from emuready_api.auth.permissions import role_has_permission
from emuready_api.auth.roles import at_least
from emuready_api.auth.roles import outranks
from emuready_api.database.connection import get_db_transaction
from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditEntityType
from emuready_api.database.models.base import UserRole
from emuready_api.database.models.notification import NotificationType
from emuready_api.database.models.permission import PermissionGrant
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.permission import UserPermissions
from emuready_api.database.models.user import User
from emuready_api.database.repositories.permission_grant import (
    PermissionGrantRepository,
)
from emuready_api.database.repositories.permission_grant import (
    get_permission_grant_repository,
)
from emuready_api.database.repositories.user import UserRepository
from emuready_api.database.repositories.user import get_user_repository
from emuready_api.services.audit_service import AuditService
from emuready_api.services.audit_service import get_audit_service
from emuready_api.services.errors import ConflictError
from emuready_api.services.errors import ForbiddenError
from emuready_api.services.errors import InvalidInputError
from emuready_api.services.errors import NotFoundError
from emuready_api.services.errors import UnauthorizedError
from emuready_api.services.errors import store_errors_as_internal
from emuready_api.services.notification_service import NotificationService
from emuready_api.services.notification_service import get_notification_service

logger = logging.getLogger(__name__)


class PermissionService:
    """Gatekeeper for privileged operations."""

    def __init__(
        self,
        grant_repository: PermissionGrantRepository,
        user_repository: UserRepository,
        audit_service: AuditService,
        notification_service: NotificationService,
    ):
        self.grant_repository = grant_repository
        self.user_repository = user_repository
        self.audit_service = audit_service
        self.notification_service = notification_service

    async def has_permission(
        self,
        user: User,
        permission_key: PermissionKey | str,
        connection: Connection | None = None,
    ) -> bool:
        """Check a permission, touching the database only for grant overrides."""
        if get_permission(permission_key) is None:
            return False

        if role_has_permission(user.role, permission_key):
            return True

        granted_keys = await self.grant_repository.get_keys_for_user(
            user.pk, connection=connection
        )
        return has_permission(user, permission_key, granted_keys)

    async def require_permission(
        self,
        user: User,
        permission_key: PermissionKey | str,
        connection: Connection | None = None,
    ) -> None:
        """Raise ForbiddenError unless ``user`` holds the permission."""
        if not await self.has_permission(user, permission_key, connection):
            key = getattr(permission_key, "value", permission_key)
            logger.warning(f"User {user.pk} denied permission {key}")
            raise ForbiddenError(f"Missing permission: {key}")

    async def load_actor(self, actor_pk: UUID, connection: Connection) -> User:
        """Re-read the acting user inside the current transaction.

        Roles can change between authentication and the write; the role seen
        here is the one every guard uses.
        """
        actor = await self.user_repository.get_by_pk(actor_pk, connection=connection)
        if actor is None:
            raise UnauthorizedError("Acting user no longer exists")
        return actor

    async def get_user_permissions(self, user: User) -> UserPermissions:
        """Role permissions plus explicit grants."""
        granted = await self.grant_repository.get_keys_for_user(user.pk)
        valid_grants = {key for key in granted if get_permission(key) is not None}
        return UserPermissions(
            user_pk=user.pk,
            role=user.role,
            permissions=sorted(set(get_role_permissions(user.role)) | valid_grants),
            granted_permissions=sorted(valid_grants),
        )

    async def grant_permission(
        self, actor: User, user_pk: UUID, permission_key: str
    ) -> PermissionGrant:
        """Explicitly grant a permission to a user."""
        if get_permission(permission_key) is None:
            raise InvalidInputError(f"Unknown permission: {permission_key}")

        async with store_errors_as_internal("grant permission"):
            async with get_db_transaction() as connection:
                actor = await self.load_actor(actor.pk, connection)
                await self.require_permission(
                    actor, PermissionKey.MANAGE_PERMISSIONS, connection
                )

                target = await self.user_repository.get_for_update(user_pk, connection)
                if target is None:
                    raise NotFoundError("User not found")

                grant = await self.grant_repository.create_grant(
                    user_pk, permission_key, actor.pk, connection
                )
                if grant is None:
                    raise ConflictError("Permission already granted")

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.PERMISSION_GRANTED,
                    entity_type=AuditEntityType.USER,
                    entity_pk=user_pk,
                    target_user_pk=user_pk,
                    after={"permission_key": permission_key},
                    connection=connection,
                )

        logger.info(f"Permission {permission_key} granted to {user_pk} by {actor.pk}")
        return grant

    async def revoke_permission(
        self, actor: User, user_pk: UUID, permission_key: str
    ) -> PermissionGrant:
        """Remove an explicit grant."""
        async with store_errors_as_internal("revoke permission"):
            async with get_db_transaction() as connection:
                actor = await self.load_actor(actor.pk, connection)
                await self.require_permission(
                    actor, PermissionKey.MANAGE_PERMISSIONS, connection
                )

                grant = await self.grant_repository.delete_grant(
                    user_pk, permission_key, connection
                )
                if grant is None:
                    raise NotFoundError("Permission grant not found")

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.PERMISSION_REVOKED,
                    entity_type=AuditEntityType.USER,
                    entity_pk=user_pk,
                    target_user_pk=user_pk,
                    before={"permission_key": permission_key},
                    connection=connection,
                )

        logger.info(f"Permission {permission_key} revoked from {user_pk} by {actor.pk}")
        return grant

    async def change_role(self, actor: User, user_pk: UUID, new_role: UserRole) -> User:
        """Change a user's role.

        The actor must outrank the target's current role and hold at least
        the role being assigned. Creating a super admin needs its own
        permission.
        """
        new_role = UserRole(new_role)
        if actor.pk == user_pk:
            raise ForbiddenError("You cannot change your own role")

        async with store_errors_as_internal("change user role"):
            async with get_db_transaction() as connection:
                actor = await self.load_actor(actor.pk, connection)
                await self.require_permission(
                    actor, PermissionKey.CHANGE_USER_ROLES, connection
                )
                if new_role == UserRole.SUPER_ADMIN:
                    await self.require_permission(
                        actor, PermissionKey.MODIFY_SUPER_ADMIN_USERS, connection
                    )

                target = await self.user_repository.get_for_update(user_pk, connection)
                if target is None:
                    raise NotFoundError("User not found")

                if not outranks(actor.role, target.role):
                    raise ForbiddenError("You can only change roles of users below you")
                if not at_least(actor.role, new_role):
                    raise ForbiddenError("You cannot assign a role above your own")

                updated = await self.user_repository.update_role(
                    user_pk, new_role, connection
                )
                if updated is None:
                    raise NotFoundError("User not found")

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.ROLE_CHANGED,
                    entity_type=AuditEntityType.USER,
                    entity_pk=user_pk,
                    target_user_pk=user_pk,
                    before={"role": target.role},
                    after={"role": updated.role},
                    connection=connection,
                )

        logger.info(f"User {user_pk} role changed {target.role} -> {updated.role} by {actor.pk}")
        await self.notification_service.dispatch(
            user_pk,
            NotificationType.ROLE_CHANGED,
            "Your role has changed",
            f"Your role is now {updated.role}.",
            {"previous_role": target.role, "role": updated.role},
        )
        return updated


def get_permission_service() -> PermissionService:
    """Get permission service instance."""
    return PermissionService(
        grant_repository=get_permission_grant_repository(),
        user_repository=get_user_repository(),
        audit_service=get_audit_service(),
        notification_service=get_notification_service(),
    )

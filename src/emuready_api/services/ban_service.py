"""Ban registry service for the EmuReady API."""

import logging

from datetime import UTC
from datetime import datetime
from uuid import UUID

from asyncpg import Connection

from emuready_api.auth.roles import outranks
from emuready_api.database.connection import get_db_transaction
from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditEntityType
from emuready_api.database.models.ban import Ban
from emuready_api.database.models.ban import BanArchive
from emuready_api.database.models.ban import BanCheckResponse
from emuready_api.database.models.ban import BanCreate
from emuready_api.database.models.ban import BanLift
from emuready_api.database.models.ban import BanState
from emuready_api.database.models.ban import BanStats
from emuready_api.database.models.ban import BanUpdate
from emuready_api.database.models.ban import EffectiveBanState
from emuready_api.database.models.notification import NotificationType
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.user import User
from emuready_api.database.repositories.ban import BanRepository
from emuready_api.database.repositories.ban import get_ban_repository
from emuready_api.database.repositories.user import UserRepository
from emuready_api.database.repositories.user import get_user_repository
from emuready_api.services.audit_service import AuditService
from emuready_api.services.audit_service import get_audit_service
from emuready_api.services.errors import AlreadyBannedError
from emuready_api.services.errors import BanNotActiveError
from emuready_api.services.errors import ExpirationInPastError
from emuready_api.services.errors import ForbiddenError
from emuready_api.services.errors import InvalidBanUpdateError
from emuready_api.services.errors import InvalidTransitionError
from emuready_api.services.errors import NotFoundError
from emuready_api.services.errors import SelfBanNotAllowedError
from emuready_api.services.errors import store_errors_as_internal
from emuready_api.services.notification_service import NotificationService
from emuready_api.services.notification_service import get_notification_service
from emuready_api.services.permission_service import PermissionService
from emuready_api.services.permission_service import get_permission_service

logger = logging.getLogger(__name__)


def _append_note(existing: str | None, note: str) -> str:
    if not existing:
        return note
    return f"{existing}\n\n{note}"


def _ensure_future(expires_at: datetime | None) -> None:
    if expires_at is not None and expires_at <= datetime.now(UTC):
        raise ExpirationInPastError


class BanService:
    """Service for managing user bans.

    Every mutation re-reads the acting user and the banned user inside its
    transaction and requires the actor to strictly outrank the banned user's
    current role.
    """

    def __init__(
        self,
        ban_repository: BanRepository,
        user_repository: UserRepository,
        permission_service: PermissionService,
        audit_service: AuditService,
        notification_service: NotificationService,
    ):
        self.ban_repository = ban_repository
        self.user_repository = user_repository
        self.permission_service = permission_service
        self.audit_service = audit_service
        self.notification_service = notification_service

    async def _require_outranks(
        self, actor: User, user_pk: UUID, connection: Connection
    ) -> User:
        target = await self.user_repository.get_by_pk(user_pk, connection=connection)
        if target is None:
            raise NotFoundError("User not found")
        if not outranks(actor.role, target.role):
            logger.warning(
                f"User {actor.pk} ({actor.role}) cannot manage bans of "
                f"{target.pk} ({target.role})"
            )
            raise ForbiddenError("You can only manage bans of users below your role")
        return target

    async def _lock_ban(self, ban_pk: UUID, connection: Connection) -> Ban:
        ban = await self.ban_repository.get_for_update(ban_pk, connection)
        if ban is None:
            raise NotFoundError("Ban not found")
        return ban

    @staticmethod
    def _revives(ban: Ban, changes: dict) -> bool:
        """Whether an edit would put an expired ban back in force."""
        if "expires_at" not in changes:
            return False
        return ban.state == BanState.ACTIVE and not ban.is_in_effect()

    async def create_ban(self, actor: User, ban_data: BanCreate) -> Ban:
        """Ban a user."""
        if actor.pk == ban_data.user_pk:
            raise SelfBanNotAllowedError
        _ensure_future(ban_data.expires_at)

        async with store_errors_as_internal("create ban"):
            async with get_db_transaction() as connection:
                actor = await self.permission_service.load_actor(actor.pk, connection)
                await self.permission_service.require_permission(
                    actor, PermissionKey.MANAGE_USER_BANS, connection
                )

                # Lock the target so concurrent bans serialize on the user row.
                target = await self.user_repository.get_for_update(
                    ban_data.user_pk, connection
                )
                if target is None:
                    raise NotFoundError("User not found")
                if not outranks(actor.role, target.role):
                    raise ForbiddenError("You can only ban users below your role")

                existing = await self.ban_repository.get_active_ban_for_user(
                    target.pk, connection
                )
                if existing is not None:
                    raise AlreadyBannedError

                ban = await self.ban_repository.create_ban(ban_data, actor.pk, connection)

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.BAN_CREATED,
                    entity_type=AuditEntityType.BAN,
                    entity_pk=ban.pk,
                    target_user_pk=target.pk,
                    after=ban,
                    connection=connection,
                )

        logger.info(
            f"User {ban.user_pk} banned by {actor.pk} until "
            f"{ban.expires_at or 'further notice'}. Reason: {ban.reason}"
        )
        await self.notification_service.dispatch(
            ban.user_pk,
            NotificationType.USER_BANNED,
            "Your account has been suspended",
            f"Reason: {ban.reason}",
            {
                "ban_pk": str(ban.pk),
                "expires_at": ban.expires_at.isoformat() if ban.expires_at else None,
            },
        )
        return ban

    async def update_ban(self, actor: User, ban_pk: UUID, update: BanUpdate) -> Ban:
        """Edit the reason, notes or expiry of a ban."""
        if update.is_active is not None or update.state is not None:
            raise InvalidBanUpdateError

        changes = update.changes()
        if not changes:
            raise InvalidBanUpdateError("No ban fields to update")
        if "reason" in changes and changes["reason"] is None:
            raise InvalidBanUpdateError("Ban reason cannot be removed")
        _ensure_future(changes.get("expires_at"))

        async with store_errors_as_internal("update ban"):
            async with get_db_transaction() as connection:
                actor = await self.permission_service.load_actor(actor.pk, connection)
                await self.permission_service.require_permission(
                    actor, PermissionKey.MANAGE_USER_BANS, connection
                )

                ban = await self._lock_ban(ban_pk, connection)
                if ban.state == BanState.ARCHIVED:
                    raise InvalidTransitionError("Archived bans cannot be edited")

                if self._revives(ban, changes):
                    # Same lock create_ban takes, so the two cannot interleave.
                    await self.user_repository.get_for_update(ban.user_pk, connection)
                    await self._require_outranks(actor, ban.user_pk, connection)
                    existing = await self.ban_repository.get_active_ban_for_user(
                        ban.user_pk, connection
                    )
                    if existing is not None and existing.pk != ban.pk:
                        raise AlreadyBannedError(
                            "User already has another active ban; "
                            "this expired ban cannot be extended"
                        )
                else:
                    await self._require_outranks(actor, ban.user_pk, connection)

                updated = await self.ban_repository.update_ban(
                    ban_pk, changes, connection
                )
                if updated is None:
                    raise InvalidTransitionError("Archived bans cannot be edited")

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.BAN_UPDATED,
                    entity_type=AuditEntityType.BAN,
                    entity_pk=ban.pk,
                    target_user_pk=ban.user_pk,
                    before=ban,
                    after=updated,
                    connection=connection,
                )

        logger.info(f"Ban {ban_pk} updated by {actor.pk}: {sorted(changes)}")
        return updated

    async def lift_ban(self, actor: User, ban_pk: UUID, lift: BanLift) -> Ban:
        """Lift an active ban."""
        async with store_errors_as_internal("lift ban"):
            async with get_db_transaction() as connection:
                actor = await self.permission_service.load_actor(actor.pk, connection)
                await self.permission_service.require_permission(
                    actor, PermissionKey.MANAGE_USER_BANS, connection
                )

                ban = await self._lock_ban(ban_pk, connection)
                if ban.state != BanState.ACTIVE:
                    raise BanNotActiveError
                await self._require_outranks(actor, ban.user_pk, connection)

                notes = ban.notes
                if lift.notes:
                    notes = _append_note(ban.notes, f"Unban notes: {lift.notes}")

                lifted = await self.ban_repository.lift_ban(
                    ban_pk, actor.pk, notes, connection
                )
                if lifted is None:
                    raise BanNotActiveError

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.BAN_LIFTED,
                    entity_type=AuditEntityType.BAN,
                    entity_pk=ban.pk,
                    target_user_pk=ban.user_pk,
                    before=ban,
                    after=lifted,
                    connection=connection,
                )

        logger.info(f"Ban {ban_pk} on user {lifted.user_pk} lifted by {actor.pk}")
        await self.notification_service.dispatch(
            lifted.user_pk,
            NotificationType.USER_UNBANNED,
            "Your suspension has been lifted",
            "You can use your account again.",
            {"ban_pk": str(lifted.pk)},
        )
        return lifted

    async def archive_ban(self, actor: User, ban_pk: UUID, archive: BanArchive) -> Ban:
        """Soft delete a ban. The row is kept and forced inactive."""
        async with store_errors_as_internal("archive ban"):
            async with get_db_transaction() as connection:
                actor = await self.permission_service.load_actor(actor.pk, connection)
                await self.permission_service.require_permission(
                    actor, PermissionKey.ARCHIVE_USER_BANS, connection
                )

                ban = await self._lock_ban(ban_pk, connection)
                if ban.state == BanState.ARCHIVED:
                    raise InvalidTransitionError("Ban is already archived")
                await self._require_outranks(actor, ban.user_pk, connection)

                note = f"Archived by {actor.username} on {datetime.now(UTC):%Y-%m-%d}"
                if archive.notes:
                    note = f"{note}: {archive.notes}"

                archived = await self.ban_repository.archive_ban(
                    ban_pk, actor.pk, _append_note(ban.notes, note), connection
                )
                if archived is None:
                    raise InvalidTransitionError("Ban is already archived")

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.BAN_ARCHIVED,
                    entity_type=AuditEntityType.BAN,
                    entity_pk=ban.pk,
                    target_user_pk=ban.user_pk,
                    before=ban,
                    after=archived,
                    connection=connection,
                )

        logger.info(f"Ban {ban_pk} on user {archived.user_pk} archived by {actor.pk}")
        return archived

    async def check_status(self, user_pk: UUID) -> BanCheckResponse:
        """Whether a user is banned right now."""
        ban = await self.ban_repository.get_active_ban_for_user(user_pk)
        return BanCheckResponse(user_pk=user_pk, is_banned=ban is not None, ban=ban)

    async def get_ban(self, ban_pk: UUID) -> Ban:
        ban = await self.ban_repository.get_by_pk(ban_pk)
        if ban is None:
            raise NotFoundError("Ban not found")
        return ban

    async def list_bans(
        self,
        state: EffectiveBanState | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Ban]:
        return await self.ban_repository.list_bans(state, limit, offset)

    async def get_user_bans(
        self, user_pk: UUID, limit: int = 50, offset: int = 0
    ) -> list[Ban]:
        """Ban history of a user, archived bans included."""
        return await self.ban_repository.get_bans_by_user(user_pk, limit, offset)

    async def get_stats(self) -> BanStats:
        return await self.ban_repository.get_stats()


def get_ban_service() -> BanService:
    """Get ban service instance."""
    return BanService(
        ban_repository=get_ban_repository(),
        user_repository=get_user_repository(),
        permission_service=get_permission_service(),
        audit_service=get_audit_service(),
        notification_service=get_notification_service(),
    )

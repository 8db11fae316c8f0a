"""Approval state machine for listings, games and PC listings."""

import logging

from uuid import UUID

from asyncpg import Connection

from emuready_api.database.connection import get_db_transaction
from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditEntityType
from emuready_api.database.models.base import ApprovalStatus
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.content import ApprovalDecision
from emuready_api.database.models.content import ModeratedContent
from emuready_api.database.models.content import StatusOverride
from emuready_api.database.models.notification import NotificationType
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.report import Report
from emuready_api.database.models.trust import TrustAction
from emuready_api.database.models.user import User
from emuready_api.database.repositories.ban import BanRepository
from emuready_api.database.repositories.ban import get_ban_repository
from emuready_api.database.repositories.content import ContentRepository
from emuready_api.database.repositories.content import get_content_repository
from emuready_api.services.audit_service import AuditService
from emuready_api.services.audit_service import get_audit_service
from emuready_api.services.errors import InvalidTransitionError
from emuready_api.services.errors import NotFoundError
from emuready_api.services.errors import store_errors_as_internal
from emuready_api.services.notification_service import NotificationService
from emuready_api.services.notification_service import get_notification_service
from emuready_api.services.permission_service import PermissionService
from emuready_api.services.permission_service import get_permission_service
from emuready_api.services.trust_service import TrustService
from emuready_api.services.trust_service import get_trust_service

logger = logging.getLogger(__name__)

APPROVAL_PERMISSIONS: dict[ContentType, PermissionKey] = {
    ContentType.LISTING: PermissionKey.APPROVE_LISTINGS,
    ContentType.GAME: PermissionKey.APPROVE_GAMES,
    ContentType.PC_LISTING: PermissionKey.APPROVE_LISTINGS,
}

# (approved, rejected) ledger actions credited to the author.
DECISION_TRUST_ACTIONS: dict[ContentType, tuple[TrustAction, TrustAction]] = {
    ContentType.LISTING: (TrustAction.LISTING_APPROVED, TrustAction.LISTING_REJECTED),
    ContentType.GAME: (
        TrustAction.GAME_SUBMISSION_APPROVED,
        TrustAction.GAME_SUBMISSION_REJECTED,
    ),
    ContentType.PC_LISTING: (
        TrustAction.LISTING_APPROVED,
        TrustAction.LISTING_REJECTED,
    ),
}


class ContentModerationService:
    """Drives content through PENDING -> APPROVED | REJECTED.

    Approve and reject only leave PENDING. The one path out of a terminal
    status is ``override_status``; the APPROVED -> REJECTED move caused by a
    confirmed report goes through ``reject_for_report``.
    """

    def __init__(
        self,
        content_repository: ContentRepository,
        ban_repository: BanRepository,
        permission_service: PermissionService,
        trust_service: TrustService,
        audit_service: AuditService,
        notification_service: NotificationService,
    ):
        self.content_repository = content_repository
        self.ban_repository = ban_repository
        self.permission_service = permission_service
        self.trust_service = trust_service
        self.audit_service = audit_service
        self.notification_service = notification_service

    async def _lock_content(
        self, content_type: ContentType, content_pk: UUID, connection: Connection
    ) -> ModeratedContent:
        content = await self.content_repository.get_for_update(
            content_type, content_pk, connection
        )
        if content is None:
            raise NotFoundError(f"{content_type.value} not found")
        return content

    async def _transition(
        self,
        content: ModeratedContent,
        to_status: ApprovalStatus,
        actor_pk: UUID,
        notes: str | None,
        connection: Connection,
    ) -> ModeratedContent:
        updated = await self.content_repository.transition_status(
            content.content_type,
            content.pk,
            content.status,
            to_status,
            actor_pk,
            notes,
            connection,
        )
        if updated is None:
            raise InvalidTransitionError("Content status changed concurrently")
        return updated

    async def _notify_decision(self, content: ModeratedContent) -> None:
        approved = content.status == ApprovalStatus.APPROVED
        await self.notification_service.dispatch(
            content.author_pk,
            NotificationType.LISTING_APPROVED
            if approved
            else NotificationType.LISTING_REJECTED,
            "Your submission was approved" if approved else "Your submission was rejected",
            content.processed_notes or "",
            {"content_type": content.content_type, "content_pk": str(content.pk)},
        )

    async def _decide(
        self,
        actor: User,
        content_type: ContentType,
        content_pk: UUID,
        decision: ApprovalDecision,
        to_status: ApprovalStatus,
    ) -> ModeratedContent:
        content_type = ContentType(content_type)
        approved_action, rejected_action = DECISION_TRUST_ACTIONS[content_type]
        verb = "approve" if to_status == ApprovalStatus.APPROVED else "reject"

        async with store_errors_as_internal(f"{verb} {content_type.value}"):
            async with get_db_transaction() as connection:
                actor = await self.permission_service.load_actor(actor.pk, connection)
                await self.permission_service.require_permission(
                    actor, APPROVAL_PERMISSIONS[content_type], connection
                )

                content = await self._lock_content(content_type, content_pk, connection)
                if content.status != ApprovalStatus.PENDING:
                    raise InvalidTransitionError(
                        f"Only pending content can be {verb}d; it is {content.status}"
                    )

                notes = decision.notes
                automatic = False
                if to_status == ApprovalStatus.APPROVED:
                    author_ban = await self.ban_repository.get_active_ban_for_user(
                        content.author_pk, connection
                    )
                    if author_ban is not None:
                        to_status = ApprovalStatus.REJECTED
                        automatic = True
                        notes = (
                            "Automatically rejected: author is currently banned "
                            f"({author_ban.reason})"
                        )

                updated = await self._transition(
                    content, to_status, actor.pk, notes, connection
                )

                if not automatic:
                    await self.trust_service.log_action(
                        content.author_pk,
                        approved_action
                        if to_status == ApprovalStatus.APPROVED
                        else rejected_action,
                        target_user_pk=actor.pk,
                        metadata={
                            "content_type": content_type.value,
                            "content_pk": str(content_pk),
                        },
                        connection=connection,
                    )

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.CONTENT_APPROVED
                    if to_status == ApprovalStatus.APPROVED
                    else AuditAction.CONTENT_REJECTED,
                    entity_type=AuditEntityType(content_type.value),
                    entity_pk=content_pk,
                    target_user_pk=content.author_pk,
                    before=content,
                    after=updated,
                    context={"automatic": True} if automatic else None,
                    connection=connection,
                )

        if automatic:
            logger.info(
                f"{content_type.value} {content_pk} auto-rejected: "
                f"author {content.author_pk} is banned"
            )
        else:
            logger.info(f"{content_type.value} {content_pk} {updated.status} by {actor.pk}")
            await self.trust_service.invalidate_cache(content.author_pk)

        await self._notify_decision(updated)
        return updated

    async def approve(
        self,
        actor: User,
        content_type: ContentType,
        content_pk: UUID,
        decision: ApprovalDecision,
    ) -> ModeratedContent:
        """Approve pending content, or reject it if its author is banned."""
        return await self._decide(
            actor, content_type, content_pk, decision, ApprovalStatus.APPROVED
        )

    async def reject(
        self,
        actor: User,
        content_type: ContentType,
        content_pk: UUID,
        decision: ApprovalDecision,
    ) -> ModeratedContent:
        """Reject pending content."""
        return await self._decide(
            actor, content_type, content_pk, decision, ApprovalStatus.REJECTED
        )

    async def override_status(
        self,
        actor: User,
        content_type: ContentType,
        content_pk: UUID,
        override: StatusOverride,
    ) -> ModeratedContent:
        """Force a status change, including out of a terminal status.

        Overrides correct mistakes and do not touch the trust ledger.
        """
        content_type = ContentType(content_type)
        new_status = ApprovalStatus(override.status)

        async with store_errors_as_internal(f"override {content_type.value} status"):
            async with get_db_transaction() as connection:
                actor = await self.permission_service.load_actor(actor.pk, connection)
                await self.permission_service.require_permission(
                    actor, PermissionKey.OVERRIDE_APPROVAL_STATUS, connection
                )

                content = await self._lock_content(content_type, content_pk, connection)
                if content.status == new_status:
                    raise InvalidTransitionError(f"Content is already {new_status.value}")

                updated = await self._transition(
                    content, new_status, actor.pk, override.notes, connection
                )

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.CONTENT_STATUS_OVERRIDDEN,
                    entity_type=AuditEntityType(content_type.value),
                    entity_pk=content_pk,
                    target_user_pk=content.author_pk,
                    before=content,
                    after=updated,
                    connection=connection,
                )

        logger.info(
            f"{content_type.value} {content_pk} overridden "
            f"{content.status} -> {updated.status} by {actor.pk}"
        )
        return updated

    async def reject_for_report(
        self,
        content: ModeratedContent,
        report: Report,
        reviewer_pk: UUID,
        connection: Connection,
    ) -> ModeratedContent | None:
        """Reject approved content because a report against it was upheld.

        Runs inside the report resolution transaction. Content that is not
        APPROVED is left alone and None is returned.
        """
        if content.status != ApprovalStatus.APPROVED:
            return None

        updated = await self._transition(
            content,
            ApprovalStatus.REJECTED,
            reviewer_pk,
            f"Rejected after report {report.pk} ({report.reason}) was resolved",
            connection,
        )

        await self.audit_service.record(
            actor_pk=reviewer_pk,
            action=AuditAction.CONTENT_REJECTED,
            entity_type=AuditEntityType(updated.content_type),
            entity_pk=updated.pk,
            target_user_pk=updated.author_pk,
            before=content,
            after=updated,
            context={"report_pk": str(report.pk)},
            connection=connection,
        )
        return updated

    async def get_pending(
        self, content_type: ContentType, limit: int = 50, offset: int = 0
    ) -> list[ModeratedContent]:
        """Content awaiting a decision, oldest first."""
        return await self.content_repository.list_by_status(
            content_type, ApprovalStatus.PENDING, limit, offset
        )


def get_content_moderation_service() -> ContentModerationService:
    """Get content moderation service instance."""
    return ContentModerationService(
        content_repository=get_content_repository(),
        ban_repository=get_ban_repository(),
        permission_service=get_permission_service(),
        trust_service=get_trust_service(),
        audit_service=get_audit_service(),
        notification_service=get_notification_service(),
    )

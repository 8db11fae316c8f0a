"""Content report service for the EmuReady API."""

import logging

from uuid import UUID

import asyncpg

from asyncpg import Connection

from emuready_api.database.connection import get_db_transaction
from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditEntityType
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.notification import NotificationType
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.report import Report
from emuready_api.database.models.report import ReportCreate
from emuready_api.database.models.report import ReportOutcome
from emuready_api.database.models.report import ReportResolution
from emuready_api.database.models.report import ReportResolve
from emuready_api.database.models.report import ReportStats
from emuready_api.database.models.report import ReportStatus
from emuready_api.database.models.report import UserReportStats
from emuready_api.database.models.trust import TrustAction
from emuready_api.database.models.user import User
from emuready_api.database.repositories.content import ContentRepository
from emuready_api.database.repositories.content import get_content_repository
from emuready_api.database.repositories.report import ReportRepository
from emuready_api.database.repositories.report import get_report_repository
from emuready_api.services.audit_service import AuditService
from emuready_api.services.audit_service import get_audit_service
from emuready_api.services.content_moderation_service import (
    ContentModerationService,
)
from emuready_api.services.content_moderation_service import (
    get_content_moderation_service,
)
from emuready_api.services.errors import AlreadyResolvedError
from emuready_api.services.errors import DuplicateReportError
from emuready_api.services.errors import ForbiddenError
from emuready_api.services.errors import InvalidTransitionError
from emuready_api.services.errors import NotFoundError
from emuready_api.services.errors import SelfReportNotAllowedError
from emuready_api.services.errors import store_errors_as_internal
from emuready_api.services.notification_service import NotificationService
from emuready_api.services.notification_service import get_notification_service
from emuready_api.services.permission_service import PermissionService
from emuready_api.services.permission_service import get_permission_service
from emuready_api.services.trust_service import TrustService
from emuready_api.services.trust_service import get_trust_service

logger = logging.getLogger(__name__)


def report_idempotency_key(report_pk: UUID) -> str:
    """Ledger key that ties a trust entry to the report that caused it."""
    return f"report:{report_pk}"


class ReportService:
    """Service for the report lifecycle PENDING -> UNDER_REVIEW -> terminal."""

    def __init__(
        self,
        report_repository: ReportRepository,
        content_repository: ContentRepository,
        content_moderation_service: ContentModerationService,
        permission_service: PermissionService,
        trust_service: TrustService,
        audit_service: AuditService,
        notification_service: NotificationService,
    ):
        self.report_repository = report_repository
        self.content_repository = content_repository
        self.content_moderation_service = content_moderation_service
        self.permission_service = permission_service
        self.trust_service = trust_service
        self.audit_service = audit_service
        self.notification_service = notification_service

    async def _lock_report(self, report_pk: UUID, connection: Connection) -> Report:
        report = await self.report_repository.get_for_update(report_pk, connection)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    async def create_report(self, reporter: User, report_data: ReportCreate) -> Report:
        """File a report against a listing, game or PC listing."""
        content = await self.content_repository.get_by_pk(
            report_data.content_type, report_data.content_pk
        )
        if content is None:
            raise NotFoundError("Reported content not found")
        if content.author_pk == reporter.pk:
            raise SelfReportNotAllowedError

        existing = await self.report_repository.get_by_reporter_and_content(
            reporter.pk, report_data.content_type, report_data.content_pk
        )
        if existing is not None:
            raise DuplicateReportError

        async with store_errors_as_internal("create report"):
            try:
                report = await self.report_repository.create_report(
                    report_data, reporter.pk
                )
            except asyncpg.UniqueViolationError as e:
                # Lost a race with the same reporter.
                raise DuplicateReportError from e

        logger.info(
            f"Report {report.pk} filed by {reporter.pk} against "
            f"{report.content_type} {report.content_pk} ({report.reason})"
        )
        await self.notification_service.dispatch(
            reporter.pk,
            NotificationType.REPORT_CREATED,
            "Report received",
            "Thanks, a moderator will review your report.",
            {"report_pk": str(report.pk)},
        )
        return report

    async def mark_under_review(self, reviewer: User, report_pk: UUID) -> Report:
        """Claim a pending report for review."""
        async with store_errors_as_internal("mark report under review"):
            async with get_db_transaction() as connection:
                reviewer = await self.permission_service.load_actor(
                    reviewer.pk, connection
                )
                await self.permission_service.require_permission(
                    reviewer, PermissionKey.MANAGE_REPORTS, connection
                )

                report = await self._lock_report(report_pk, connection)
                if report.is_terminal:
                    raise AlreadyResolvedError
                if report.reported_by_pk == reviewer.pk:
                    raise ForbiddenError("You cannot review your own report")
                if report.status != ReportStatus.PENDING:
                    raise InvalidTransitionError("Report is already under review")

                updated = await self.report_repository.mark_under_review(
                    report_pk, reviewer.pk, connection
                )
                if updated is None:
                    raise InvalidTransitionError("Report is already under review")

        logger.info(f"Report {report_pk} under review by {reviewer.pk}")
        await self.notification_service.dispatch(
            updated.reported_by_pk,
            NotificationType.REPORT_STATUS_CHANGED,
            "Your report is under review",
            "A moderator is looking at your report.",
            {"report_pk": str(updated.pk), "status": updated.status},
        )
        return updated

    async def resolve_report(
        self, reviewer: User, report_pk: UUID, resolve: ReportResolve
    ) -> ReportResolution:
        """Close a report and apply its consequences in one transaction.

        RESOLVED rejects the reported content if it is approved and credits
        the reporter with REPORT_CONFIRMED. DISMISSED leaves the content
        alone and records FALSE_REPORT against the reporter.
        """
        outcome = ReportOutcome(resolve.outcome)
        confirmed = outcome == ReportOutcome.RESOLVED
        content = None
        rejected_content = None

        async with store_errors_as_internal("resolve report"):
            async with get_db_transaction() as connection:
                reviewer = await self.permission_service.load_actor(
                    reviewer.pk, connection
                )
                await self.permission_service.require_permission(
                    reviewer, PermissionKey.MANAGE_REPORTS, connection
                )

                report = await self._lock_report(report_pk, connection)
                if report.is_terminal:
                    raise AlreadyResolvedError
                if report.reported_by_pk == reviewer.pk:
                    raise ForbiddenError("You cannot resolve your own report")

                content = await self.content_repository.get_for_update(
                    report.content_type, report.content_pk, connection
                )
                if confirmed and content is not None:
                    rejected_content = (
                        await self.content_moderation_service.reject_for_report(
                            content, report, reviewer.pk, connection
                        )
                    )

                updated = await self.report_repository.record_outcome(
                    report_pk, outcome.value, reviewer.pk, resolve.review_notes, connection
                )
                if updated is None:
                    raise AlreadyResolvedError

                trust_entry = await self.trust_service.log_action(
                    report.reported_by_pk,
                    TrustAction.REPORT_CONFIRMED if confirmed else TrustAction.FALSE_REPORT,
                    target_user_pk=content.author_pk if content else None,
                    metadata={
                        "report_pk": str(report.pk),
                        "content_type": report.content_type,
                        "content_pk": str(report.content_pk),
                    },
                    idempotency_key=report_idempotency_key(report.pk),
                    connection=connection,
                )

                await self.audit_service.record(
                    actor_pk=reviewer.pk,
                    action=AuditAction.REPORT_RESOLVED
                    if confirmed
                    else AuditAction.REPORT_DISMISSED,
                    entity_type=AuditEntityType.REPORT,
                    entity_pk=report.pk,
                    target_user_pk=report.reported_by_pk,
                    before=report,
                    after=updated,
                    context={"content_rejected": rejected_content is not None},
                    connection=connection,
                )

        logger.info(f"Report {report_pk} {updated.status} by {reviewer.pk}")
        await self.trust_service.invalidate_cache(updated.reported_by_pk)
        await self.notification_service.dispatch(
            updated.reported_by_pk,
            NotificationType.REPORT_STATUS_CHANGED,
            "Your report was reviewed",
            "The reported content was actioned."
            if confirmed
            else "The report was dismissed.",
            {"report_pk": str(updated.pk), "status": updated.status},
        )
        if rejected_content is not None:
            await self.notification_service.dispatch(
                rejected_content.author_pk,
                NotificationType.LISTING_REJECTED,
                "Your submission was rejected",
                rejected_content.processed_notes or "",
                {
                    "content_type": rejected_content.content_type,
                    "content_pk": str(rejected_content.pk),
                    "report_pk": str(updated.pk),
                },
            )

        return ReportResolution(
            report=updated,
            content=rejected_content or content,
            trust_entry=trust_entry,
        )

    async def get_report(self, report_pk: UUID) -> Report:
        report = await self.report_repository.get_by_pk(report_pk)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    async def list_reports(
        self,
        status: ReportStatus | None = None,
        content_type: ContentType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Report]:
        return await self.report_repository.list_reports(
            status, content_type, limit, offset
        )

    async def get_stats(self) -> ReportStats:
        return await self.report_repository.get_stats()

    async def get_user_report_stats(self, user_pk: UUID) -> UserReportStats:
        """Reports against a user's content."""
        return await self.report_repository.get_user_report_stats(user_pk)


def get_report_service() -> ReportService:
    """Get report service instance."""
    return ReportService(
        report_repository=get_report_repository(),
        content_repository=get_content_repository(),
        content_moderation_service=get_content_moderation_service(),
        permission_service=get_permission_service(),
        trust_service=get_trust_service(),
        audit_service=get_audit_service(),
        notification_service=get_notification_service(),
    )

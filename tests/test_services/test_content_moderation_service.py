"""Tests for the content approval state machine."""

from unittest.mock import AsyncMock
from unittest.mock import patch
from uuid import uuid4

import pytest

from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.base import ApprovalStatus
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.base import UserRole
from emuready_api.database.models.content import ApprovalDecision
from emuready_api.database.models.content import StatusOverride
from emuready_api.database.models.notification import NotificationType
from emuready_api.database.models.trust import TrustAction
from emuready_api.services.content_moderation_service import ContentModerationService
from emuready_api.services.errors import ForbiddenError
from emuready_api.services.errors import InvalidTransitionError
from emuready_api.services.errors import NotFoundError

TRANSACTION = "emuready_api.services.content_moderation_service.get_db_transaction"


@pytest.fixture
def mock_content_repo():
    """Content repository whose transitions apply the requested status."""
    repo = AsyncMock()

    async def _transition(
        content_type, content_pk, from_status, to_status, processed_by_pk, notes, connection
    ):
        content = repo.get_for_update.return_value
        return content.model_copy(
            update={
                "status": ApprovalStatus(to_status).value,
                "processed_by_pk": processed_by_pk,
                "processed_notes": notes,
            }
        )

    repo.transition_status.side_effect = _transition
    return repo


@pytest.fixture
def mock_ban_repo():
    """Ban repository with no banned authors."""
    repo = AsyncMock()
    repo.get_active_ban_for_user.return_value = None
    return repo


@pytest.fixture
def mock_trust_service():
    """Mock TrustService."""
    return AsyncMock()


@pytest.fixture
def make_service(
    mock_content_repo,
    mock_ban_repo,
    mock_trust_service,
    mock_audit_service,
    mock_notification_service,
    make_permission_service,
):
    """Factory for ContentModerationService acting for the given users."""

    def _make_service(*users) -> ContentModerationService:
        return ContentModerationService(
            content_repository=mock_content_repo,
            ban_repository=mock_ban_repo,
            permission_service=make_permission_service(*users),
            trust_service=mock_trust_service,
            audit_service=mock_audit_service,
            notification_service=mock_notification_service,
        )

    return _make_service


class TestApprove:
    """Test approving pending content."""

    @pytest.mark.asyncio
    async def test_approve_listing(
        self,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_trust_service,
        mock_audit_service,
        mock_notification_service,
        mock_transaction,
    ):
        moderator = make_user(UserRole.MODERATOR)
        content = make_content()
        mock_content_repo.get_for_update.return_value = content
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            result = await service.approve(
                moderator, ContentType.LISTING, content.pk, ApprovalDecision(notes="ok")
            )

        assert result.status == "approved"
        assert result.processed_by_pk == moderator.pk
        trust_args = mock_trust_service.log_action.call_args
        assert trust_args[0] == (content.author_pk, TrustAction.LISTING_APPROVED)
        assert trust_args.kwargs["target_user_pk"] == moderator.pk
        assert trust_args.kwargs["connection"] is mock_transaction.connection
        assert (
            mock_audit_service.record.call_args.kwargs["action"]
            == AuditAction.CONTENT_APPROVED
        )
        mock_trust_service.invalidate_cache.assert_called_once_with(content.author_pk)
        assert (
            mock_notification_service.dispatch.call_args[0][1]
            == NotificationType.LISTING_APPROVED
        )

    @pytest.mark.asyncio
    async def test_approve_game_uses_game_weights(
        self,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_trust_service,
        mock_transaction,
    ):
        moderator = make_user(UserRole.MODERATOR)
        content = make_content(content_type=ContentType.GAME)
        mock_content_repo.get_for_update.return_value = content
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            await service.approve(
                moderator, ContentType.GAME, content.pk, ApprovalDecision()
            )

        assert (
            mock_trust_service.log_action.call_args[0][1]
            == TrustAction.GAME_SUBMISSION_APPROVED
        )

    @pytest.mark.asyncio
    async def test_banned_author_is_rejected_automatically(
        self,
        make_service,
        make_user,
        make_content,
        make_ban,
        mock_content_repo,
        mock_ban_repo,
        mock_trust_service,
        mock_audit_service,
        mock_notification_service,
        mock_transaction,
    ):
        moderator = make_user(UserRole.MODERATOR)
        content = make_content()
        mock_content_repo.get_for_update.return_value = content
        mock_ban_repo.get_active_ban_for_user.return_value = make_ban(
            user_pk=content.author_pk, reason="Spam"
        )
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            result = await service.approve(
                moderator, ContentType.LISTING, content.pk, ApprovalDecision()
            )

        assert result.status == "rejected"
        assert result.processed_notes == (
            "Automatically rejected: author is currently banned (Spam)"
        )
        mock_trust_service.log_action.assert_not_called()
        audit_kwargs = mock_audit_service.record.call_args.kwargs
        assert audit_kwargs["action"] == AuditAction.CONTENT_REJECTED
        assert audit_kwargs["context"] == {"automatic": True}
        assert (
            mock_notification_service.dispatch.call_args[0][1]
            == NotificationType.LISTING_REJECTED
        )

    @pytest.mark.asyncio
    async def test_only_pending_can_be_approved(
        self,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_trust_service,
        mock_transaction,
    ):
        moderator = make_user(UserRole.MODERATOR)
        content = make_content(status=ApprovalStatus.REJECTED)
        mock_content_repo.get_for_update.return_value = content
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            with pytest.raises(InvalidTransitionError):
                await service.approve(
                    moderator, ContentType.LISTING, content.pk, ApprovalDecision()
                )

        mock_trust_service.log_action.assert_not_called()

    @pytest.mark.asyncio
    async def test_author_role_cannot_approve(
        self, make_service, make_user, mock_content_repo, mock_transaction
    ):
        author = make_user(UserRole.AUTHOR)
        service = make_service(author)

        with patch(TRANSACTION, mock_transaction):
            with pytest.raises(ForbiddenError):
                await service.approve(
                    author, ContentType.LISTING, uuid4(), ApprovalDecision()
                )

        mock_content_repo.get_for_update.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_content(
        self, make_service, make_user, mock_content_repo, mock_transaction
    ):
        moderator = make_user(UserRole.MODERATOR)
        mock_content_repo.get_for_update.return_value = None
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            with pytest.raises(NotFoundError):
                await service.approve(
                    moderator, ContentType.PC_LISTING, uuid4(), ApprovalDecision()
                )

    @pytest.mark.asyncio
    async def test_concurrent_decision_loses(
        self,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_trust_service,
        mock_transaction,
    ):
        moderator = make_user(UserRole.MODERATOR)
        mock_content_repo.get_for_update.return_value = make_content()
        mock_content_repo.transition_status.side_effect = None
        mock_content_repo.transition_status.return_value = None
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            with pytest.raises(InvalidTransitionError):
                await service.approve(
                    moderator, ContentType.LISTING, uuid4(), ApprovalDecision()
                )

        mock_trust_service.log_action.assert_not_called()


class TestReject:
    """Test rejecting pending content."""

    @pytest.mark.asyncio
    async def test_reject_penalizes_author(
        self,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_trust_service,
        mock_transaction,
    ):
        moderator = make_user(UserRole.MODERATOR)
        content = make_content()
        mock_content_repo.get_for_update.return_value = content
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            result = await service.reject(
                moderator,
                ContentType.LISTING,
                content.pk,
                ApprovalDecision(notes="Missing emulator settings"),
            )

        assert result.status == "rejected"
        assert result.processed_notes == "Missing emulator settings"
        assert mock_trust_service.log_action.call_args[0][1] == TrustAction.LISTING_REJECTED

    @pytest.mark.asyncio
    async def test_ledger_failure_rolls_back(
        self,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_trust_service,
        mock_notification_service,
        mock_transaction,
    ):
        moderator = make_user(UserRole.MODERATOR)
        mock_content_repo.get_for_update.return_value = make_content()
        mock_trust_service.log_action.side_effect = RuntimeError("ledger unavailable")
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            with pytest.raises(RuntimeError):
                await service.reject(
                    moderator, ContentType.LISTING, uuid4(), ApprovalDecision()
                )

        assert mock_transaction.rolled_back
        mock_notification_service.dispatch.assert_not_called()


class TestApprovalLegality:
    """Normal decisions only ever leave PENDING."""

    @pytest.mark.parametrize("decision", ["approve", "reject"])
    @pytest.mark.parametrize("current_status", list(ApprovalStatus))
    @pytest.mark.asyncio
    async def test_decision_from_each_status(
        self,
        current_status,
        decision,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_trust_service,
        mock_audit_service,
        mock_transaction,
    ):
        moderator = make_user(UserRole.MODERATOR)
        content = make_content(status=current_status)
        mock_content_repo.get_for_update.return_value = content
        service = make_service(moderator)
        decide = getattr(service, decision)

        with patch(TRANSACTION, mock_transaction):
            if current_status == ApprovalStatus.PENDING:
                result = await decide(
                    moderator, ContentType.LISTING, content.pk, ApprovalDecision()
                )
            else:
                with pytest.raises(InvalidTransitionError):
                    await decide(
                        moderator, ContentType.LISTING, content.pk, ApprovalDecision()
                    )

        if current_status == ApprovalStatus.PENDING:
            expected = "approved" if decision == "approve" else "rejected"
            assert result.status == expected
            mock_trust_service.log_action.assert_called_once()
        else:
            mock_content_repo.transition_status.assert_not_called()
            mock_trust_service.log_action.assert_not_called()
            mock_audit_service.record.assert_not_called()
            assert mock_transaction.rolled_back

    @pytest.mark.parametrize("new_status", list(ApprovalStatus))
    @pytest.mark.parametrize("current_status", list(ApprovalStatus))
    @pytest.mark.asyncio
    async def test_override_from_each_status(
        self,
        current_status,
        new_status,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_transaction,
    ):
        admin = make_user(UserRole.ADMIN)
        content = make_content(status=current_status)
        mock_content_repo.get_for_update.return_value = content
        service = make_service(admin)
        override = StatusOverride(status=new_status, notes="Correction")

        with patch(TRANSACTION, mock_transaction):
            if current_status == new_status:
                with pytest.raises(InvalidTransitionError):
                    await service.override_status(
                        admin, ContentType.LISTING, content.pk, override
                    )
            else:
                result = await service.override_status(
                    admin, ContentType.LISTING, content.pk, override
                )
                assert result.status == new_status.value


class TestOverride:
    """Test administrative overrides."""

    @pytest.mark.asyncio
    async def test_override_rejected_to_approved(
        self,
        make_service,
        make_user,
        make_content,
        mock_content_repo,
        mock_trust_service,
        mock_audit_service,
        mock_transaction,
    ):
        admin = make_user(UserRole.ADMIN)
        content = make_content(status=ApprovalStatus.REJECTED)
        mock_content_repo.get_for_update.return_value = content
        service = make_service(admin)

        with patch(TRANSACTION, mock_transaction):
            result = await service.override_status(
                admin,
                ContentType.LISTING,
                content.pk,
                StatusOverride(status=ApprovalStatus.APPROVED, notes="Rejected by mistake"),
            )

        assert result.status == "approved"
        mock_trust_service.log_action.assert_not_called()
        assert (
            mock_audit_service.record.call_args.kwargs["action"]
            == AuditAction.CONTENT_STATUS_OVERRIDDEN
        )

    @pytest.mark.asyncio
    async def test_moderator_cannot_override(
        self, make_service, make_user, mock_transaction
    ):
        moderator = make_user(UserRole.MODERATOR)
        service = make_service(moderator)

        with patch(TRANSACTION, mock_transaction):
            with pytest.raises(ForbiddenError):
                await service.override_status(
                    moderator,
                    ContentType.LISTING,
                    uuid4(),
                    StatusOverride(status=ApprovalStatus.APPROVED, notes="x"),
                )

    @pytest.mark.asyncio
    async def test_override_to_same_status(
        self, make_service, make_user, make_content, mock_content_repo, mock_transaction
    ):
        admin = make_user(UserRole.ADMIN)
        mock_content_repo.get_for_update.return_value = make_content(
            status=ApprovalStatus.APPROVED
        )
        service = make_service(admin)

        with patch(TRANSACTION, mock_transaction):
            with pytest.raises(InvalidTransitionError):
                await service.override_status(
                    admin,
                    ContentType.LISTING,
                    uuid4(),
                    StatusOverride(status=ApprovalStatus.APPROVED, notes="x"),
                )

    def test_override_requires_notes(self):
        with pytest.raises(ValueError):
            StatusOverride(status=ApprovalStatus.APPROVED, notes="")


class TestRejectForReport:
    """Test report-driven rejection."""

    @pytest.mark.asyncio
    async def test_rejects_approved_content(
        self,
        make_service,
        make_content,
        make_report,
        mock_content_repo,
        mock_audit_service,
        mock_connection,
    ):
        content = make_content(status=ApprovalStatus.APPROVED)
        mock_content_repo.get_for_update.return_value = content
        report = make_report(content_pk=content.pk)
        reviewer_pk = uuid4()
        service = make_service()

        result = await service.reject_for_report(
            content, report, reviewer_pk, mock_connection
        )

        assert result.status == "rejected"
        assert result.processed_notes == (
            f"Rejected after report {report.pk} (fake_listing) was resolved"
        )
        assert mock_audit_service.record.call_args.kwargs["context"] == {
            "report_pk": str(report.pk)
        }

    @pytest.mark.asyncio
    async def test_pending_content_left_alone(
        self, make_service, make_content, make_report, mock_content_repo, mock_connection
    ):
        content = make_content()
        service = make_service()

        result = await service.reject_for_report(
            content, make_report(content_pk=content.pk), uuid4(), mock_connection
        )

        assert result is None
        mock_content_repo.transition_status.assert_not_called()

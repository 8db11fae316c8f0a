"""Test configuration and fixtures for the EmuReady API tests."""

from datetime import UTC
from datetime import datetime
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from emuready_api.database.models.base import ApprovalStatus
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.base import UserRole
from emuready_api.database.models.ban import Ban
from emuready_api.database.models.ban import BanState
from emuready_api.database.models.content import ModeratedContent
from emuready_api.database.models.report import Report
from emuready_api.database.models.report import ReportReason
from emuready_api.database.models.report import ReportStatus
from emuready_api.database.models.trust import TrustLedgerEntry
from emuready_api.database.models.user import User
from emuready_api.services.permission_service import PermissionService


class MockDBTransaction:
    """Stand-in for ``get_db_transaction()`` yielding a mock connection.

    Records whether the block exited with an error so tests can assert
    that a failed operation would have rolled back.
    """

    def __init__(self, connection):
        self.connection = connection
        self.entered = 0
        self.rolled_back = False

    def __call__(self):
        return self

    async def __aenter__(self):
        self.entered += 1
        return self.connection

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.rolled_back = exc_type is not None
        return False


@pytest.fixture
def mock_connection():
    """Mock database connection for testing."""
    connection = AsyncMock()
    connection.fetchval = AsyncMock()
    connection.fetchrow = AsyncMock()
    connection.fetch = AsyncMock()
    connection.execute = AsyncMock()
    return connection


@pytest.fixture
def mock_transaction(mock_connection) -> MockDBTransaction:
    """Patchable replacement for get_db_transaction."""
    return MockDBTransaction(mock_connection)


@pytest.fixture
def make_user():
    """Factory for User models with a given role."""

    def _make_user(role: UserRole = UserRole.USER, **overrides) -> User:
        pk = overrides.pop("pk", uuid4())
        data = {
            "pk": pk,
            "email": f"{pk.hex[:8]}@example.com",
            "username": f"user_{pk.hex[:8]}",
            "role": role,
            "created_at": datetime.now(UTC),
        }
        data.update(overrides)
        return User.model_validate(data)

    return _make_user


@pytest.fixture
def make_ban():
    """Factory for Ban models."""

    def _make_ban(user_pk=None, banned_by_pk=None, **overrides) -> Ban:
        data = {
            "pk": uuid4(),
            "user_pk": user_pk or uuid4(),
            "banned_by_pk": banned_by_pk or uuid4(),
            "reason": "Spamming fake listings",
            "state": BanState.ACTIVE,
            "created_at": datetime.now(UTC),
        }
        data.update(overrides)
        return Ban.model_validate(data)

    return _make_ban


@pytest.fixture
def make_content():
    """Factory for the approval view of content."""

    def _make_content(
        author_pk=None,
        status: ApprovalStatus = ApprovalStatus.PENDING,
        content_type: ContentType = ContentType.LISTING,
        **overrides,
    ) -> ModeratedContent:
        data = {
            "pk": uuid4(),
            "content_type": content_type,
            "author_pk": author_pk or uuid4(),
            "status": status,
            "created_at": datetime.now(UTC),
        }
        data.update(overrides)
        return ModeratedContent.model_validate(data)

    return _make_content


@pytest.fixture
def make_report():
    """Factory for Report models."""

    def _make_report(
        reported_by_pk=None,
        content_pk=None,
        status: ReportStatus = ReportStatus.PENDING,
        **overrides,
    ) -> Report:
        data = {
            "pk": uuid4(),
            "content_type": ContentType.LISTING,
            "content_pk": content_pk or uuid4(),
            "reported_by_pk": reported_by_pk or uuid4(),
            "reason": ReportReason.FAKE_LISTING,
            "status": status,
            "created_at": datetime.now(UTC),
        }
        data.update(overrides)
        return Report.model_validate(data)

    return _make_report


@pytest.fixture
def make_ledger_entry():
    """Factory for trust ledger entries."""

    def _make_ledger_entry(user_pk=None, action="listing_approved", weight=10, **overrides):
        data = {
            "pk": uuid4(),
            "user_pk": user_pk or uuid4(),
            "action": action,
            "weight": weight,
            "created_at": datetime.now(UTC),
        }
        data.update(overrides)
        return TrustLedgerEntry.model_validate(data)

    return _make_ledger_entry


@pytest.fixture
def mock_audit_service():
    """Mock AuditService."""
    return AsyncMock()


@pytest.fixture
def mock_notification_service():
    """Mock NotificationService."""
    service = AsyncMock()
    service.dispatch.return_value = True
    return service


@pytest.fixture
def make_permission_service(mock_audit_service, mock_notification_service):
    """Factory for a PermissionService that knows a fixed set of users."""

    def _make_permission_service(*users: User, granted=()) -> PermissionService:
        users_by_pk = {user.pk: user for user in users}

        user_repo = AsyncMock()
        user_repo.get_by_pk.side_effect = lambda pk, connection=None: users_by_pk.get(pk)
        user_repo.get_for_update.side_effect = lambda pk, connection: users_by_pk.get(pk)

        grant_repo = AsyncMock()
        grant_repo.get_keys_for_user.return_value = set(granted)

        return PermissionService(
            grant_repository=grant_repo,
            user_repository=user_repo,
            audit_service=mock_audit_service,
            notification_service=mock_notification_service,
        )

    return _make_permission_service

"""Tests for repositories against a mock connection."""

from datetime import UTC
from datetime import datetime
from unittest.mock import patch
from uuid import uuid4

import pytest

from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditLogFilters
from emuready_api.database.models.base import ApprovalStatus
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.ban import EffectiveBanState
from emuready_api.database.models.trust import TrustAction
from emuready_api.database.models.trust import TrustLedgerEntryCreate
from emuready_api.database.repositories.audit_log import AuditLogRepository
from emuready_api.database.repositories.ban import BanRepository
from emuready_api.database.repositories.content import ContentRepository
from emuready_api.database.repositories.permission_grant import (
    PermissionGrantRepository,
)
from emuready_api.database.repositories.trust_ledger import TrustLedgerRepository
from emuready_api.database.repositories.user import UserRepository


class MockDBConnection:
    """Async context manager yielding a mock connection."""

    def __init__(self, connection):
        self.connection = connection

    async def __aenter__(self):
        return self.connection

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


def ledger_record(**overrides) -> dict:
    record = {
        "pk": uuid4(),
        "user_pk": uuid4(),
        "action": "report_confirmed",
        "weight": 10,
        "target_user_pk": None,
        "metadata": {},
        "idempotency_key": None,
        "created_at": datetime.now(UTC),
        "updated_at": None,
    }
    record.update(overrides)
    return record


class TestBaseRepository:
    """Test connection handling shared by all repositories."""

    @pytest.mark.asyncio
    async def test_uses_callers_connection(self, mock_connection):
        """A supplied connection is used instead of the pool."""
        repo = UserRepository()
        mock_connection.fetchval.return_value = True

        with patch(
            "emuready_api.database.repositories.base.get_db_connection"
        ) as mock_get_db:
            assert await repo.exists(uuid4(), connection=mock_connection)

        mock_get_db.assert_not_called()

    @pytest.mark.asyncio
    async def test_falls_back_to_pool(self, mock_connection):
        repo = UserRepository()
        mock_connection.fetchval.return_value = 3

        with patch(
            "emuready_api.database.repositories.base.get_db_connection",
            return_value=MockDBConnection(mock_connection),
        ):
            assert await repo.count() == 3

    @pytest.mark.asyncio
    async def test_get_for_update_locks_row(self, mock_connection):
        repo = UserRepository()
        mock_connection.fetchrow.return_value = None

        assert await repo.get_for_update(uuid4(), mock_connection) is None

        query = mock_connection.fetchrow.call_args[0][0]
        assert "FOR UPDATE" in query

    @pytest.mark.asyncio
    async def test_update_from_dict_bumps_updated_at(self, mock_connection):
        repo = UserRepository()
        user_pk = uuid4()
        mock_connection.fetchrow.return_value = None

        await repo.update_from_dict(user_pk, {"role": "admin"}, mock_connection)

        query, *params = mock_connection.fetchrow.call_args[0]
        assert "role = $1" in query
        assert "updated_at = NOW()" in query
        assert params == ["admin", user_pk]


class TestTrustLedgerRepository:
    """Test the insert-only ledger."""

    @pytest.mark.asyncio
    async def test_insert_entry(self, mock_connection):
        repo = TrustLedgerRepository()
        entry = TrustLedgerEntryCreate(
            user_pk=uuid4(),
            action=TrustAction.REPORT_CONFIRMED,
            weight=10,
            idempotency_key="report:1",
        )
        mock_connection.fetchrow.return_value = ledger_record(
            user_pk=entry.user_pk, idempotency_key="report:1"
        )

        result = await repo.insert_entry(entry, mock_connection)

        assert result.user_pk == entry.user_pk
        assert result.action == "report_confirmed"
        query, *params = mock_connection.fetchrow.call_args[0]
        assert "ON CONFLICT (user_pk, idempotency_key) DO NOTHING" in query
        assert params[1] == "report_confirmed"
        assert params[5] == "report:1"

    @pytest.mark.asyncio
    async def test_insert_duplicate_key_returns_none(self, mock_connection):
        repo = TrustLedgerRepository()
        mock_connection.fetchrow.return_value = None
        entry = TrustLedgerEntryCreate(
            user_pk=uuid4(),
            action=TrustAction.MONTHLY_ACTIVE_BONUS,
            weight=10,
            idempotency_key="monthly_active_bonus:2026-10",
        )

        assert await repo.insert_entry(entry, mock_connection) is None

    @pytest.mark.asyncio
    async def test_get_score_sums_weights(self, mock_connection):
        repo = TrustLedgerRepository()
        mock_connection.fetchval.return_value = 42

        assert await repo.get_score(uuid4(), mock_connection) == 42
        assert "SUM(weight)" in mock_connection.fetchval.call_args[0][0]

    @pytest.mark.asyncio
    async def test_count_user_entries_filters(self, mock_connection):
        repo = TrustLedgerRepository()
        user_pk = uuid4()
        since = datetime.now(UTC)
        mock_connection.fetchval.return_value = 7

        count = await repo.count_user_entries(
            user_pk, since=since, actions=["upvote", "downvote"], connection=mock_connection
        )

        assert count == 7
        query, *params = mock_connection.fetchval.call_args[0]
        assert "created_at >= $2" in query
        assert "action = ANY($3::text[])" in query
        assert params == [user_pk, since, ["upvote", "downvote"]]

    def test_ledger_has_no_mutation_helpers(self):
        """Only inserts are exposed beyond the shared base helpers."""
        repo = TrustLedgerRepository()
        assert not hasattr(repo, "update_entry")
        assert not hasattr(repo, "delete_entry")


class TestBanRepository:
    """Test conditional ban updates."""

    @pytest.mark.asyncio
    async def test_lift_requires_active_state(self, mock_connection):
        repo = BanRepository()
        mock_connection.fetchrow.return_value = None

        result = await repo.lift_ban(uuid4(), uuid4(), "notes", mock_connection)

        assert result is None
        assert "state = 'active'" in mock_connection.fetchrow.call_args[0][0]

    @pytest.mark.asyncio
    async def test_archive_skips_archived(self, mock_connection):
        repo = BanRepository()
        mock_connection.fetchrow.return_value = None

        await repo.archive_ban(uuid4(), uuid4(), "Archived", mock_connection)

        assert "state <> 'archived'" in mock_connection.fetchrow.call_args[0][0]

    @pytest.mark.asyncio
    async def test_active_ban_lookup_checks_expiry(self, mock_connection):
        repo = BanRepository()
        mock_connection.fetchrow.return_value = None

        await repo.get_active_ban_for_user(uuid4(), mock_connection)

        query = mock_connection.fetchrow.call_args[0][0]
        assert "expires_at IS NULL OR expires_at > NOW()" in query

    @pytest.mark.asyncio
    async def test_list_expired_bans(self, mock_connection):
        repo = BanRepository()
        mock_connection.fetch.return_value = []

        with patch(
            "emuready_api.database.repositories.base.get_db_connection",
            return_value=MockDBConnection(mock_connection),
        ):
            await repo.list_bans(EffectiveBanState.EXPIRED)

        query = mock_connection.fetch.call_args[0][0]
        assert "expires_at <= NOW()" in query

    @pytest.mark.asyncio
    async def test_stats_count_duration_of_active_bans_only(self, mock_connection):
        repo = BanRepository()
        mock_connection.fetchrow.return_value = {
            "total": 4,
            "active": 1,
            "expired": 1,
            "lifted": 1,
            "archived": 1,
            "permanent": 1,
            "temporary": 1,
        }

        with patch(
            "emuready_api.database.repositories.base.get_db_connection",
            return_value=MockDBConnection(mock_connection),
        ):
            stats = await repo.get_stats()

        query = mock_connection.fetchrow.call_args[0][0]
        assert "state = 'active' AND expires_at IS NULL) AS permanent" in query
        assert "state = 'active' AND expires_at IS NOT NULL)" in query
        assert stats.permanent == 1


class TestContentRepository:
    """Test approval-cluster access."""

    @pytest.mark.asyncio
    async def test_game_author_column(self, mock_connection):
        repo = ContentRepository()
        mock_connection.fetchrow.return_value = None

        await repo.get_for_update(ContentType.GAME, uuid4(), mock_connection)

        query = mock_connection.fetchrow.call_args[0][0]
        assert "FROM games" in query
        assert "submitted_by_pk AS author_pk" in query
        assert "FOR UPDATE" in query

    @pytest.mark.asyncio
    async def test_transition_is_conditional(self, mock_connection):
        repo = ContentRepository()
        content_pk = uuid4()
        reviewer_pk = uuid4()
        mock_connection.fetchrow.return_value = {
            "pk": content_pk,
            "content_type": "pc_listing",
            "author_pk": uuid4(),
            "status": "approved",
            "processed_at": datetime.now(UTC),
            "processed_by_pk": reviewer_pk,
            "processed_notes": "Looks good",
            "created_at": datetime.now(UTC),
        }

        result = await repo.transition_status(
            ContentType.PC_LISTING,
            content_pk,
            ApprovalStatus.PENDING,
            ApprovalStatus.APPROVED,
            reviewer_pk,
            "Looks good",
            mock_connection,
        )

        assert result.status == "approved"
        query, *params = mock_connection.fetchrow.call_args[0]
        assert "UPDATE pc_listings" in query
        assert "WHERE pk = $1 AND status = $2" in query
        assert params[:3] == [content_pk, "pending", "approved"]


class TestPermissionGrantRepository:
    """Test explicit grants."""

    @pytest.mark.asyncio
    async def test_get_keys_for_user(self, mock_connection):
        repo = PermissionGrantRepository()
        mock_connection.fetch.return_value = [
            {"permission_key": "manage_reports"},
            {"permission_key": "view_logs"},
        ]

        keys = await repo.get_keys_for_user(uuid4(), mock_connection)

        assert keys == {"manage_reports", "view_logs"}

    @pytest.mark.asyncio
    async def test_duplicate_grant_returns_none(self, mock_connection):
        repo = PermissionGrantRepository()
        mock_connection.fetchrow.return_value = None

        result = await repo.create_grant(uuid4(), "view_logs", uuid4(), mock_connection)

        assert result is None
        assert "ON CONFLICT" in mock_connection.fetchrow.call_args[0][0]


class TestAuditLogRepository:
    """Test audit filters."""

    def test_build_filters(self):
        repo = AuditLogRepository()
        actor_pk = uuid4()

        where_clause, params = repo._build_filters(
            AuditLogFilters(actor_pk=actor_pk, action=AuditAction.BAN_CREATED)
        )

        assert where_clause == "actor_pk = $1 AND action = $2"
        assert params == [actor_pk, "ban_created"]

    def test_empty_filters(self):
        repo = AuditLogRepository()
        assert repo._build_filters(AuditLogFilters()) == ("", [])

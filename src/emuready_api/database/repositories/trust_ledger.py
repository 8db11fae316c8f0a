"""Trust ledger repository for the EmuReady API.

The ledger is insert-only: this repository exposes no update or delete
path, and database triggers reject both.
"""

from datetime import datetime
from uuid import UUID

from asyncpg import Connection
from asyncpg import Record

from emuready_api.database.models.trust import TrustActionBreakdown
from emuready_api.database.models.trust import TrustActionStats
from emuready_api.database.models.trust import TrustLedgerEntry
from emuready_api.database.models.trust import TrustLedgerEntryCreate
from emuready_api.database.repositories.base import BaseRepository


class TrustLedgerRepository(BaseRepository[TrustLedgerEntry]):
    """Repository for trust ledger entries."""

    def __init__(self):
        super().__init__("trust_ledger")

    def _record_to_model(self, record: Record) -> TrustLedgerEntry:
        """Convert database record to TrustLedgerEntry model."""
        return TrustLedgerEntry.model_validate(dict(record))

    async def insert_entry(
        self,
        entry: TrustLedgerEntryCreate,
        connection: Connection | None = None,
    ) -> TrustLedgerEntry | None:
        """Append an entry.

        Returns None when an entry with the same ``(user_pk, idempotency_key)``
        already exists.
        """
        query = """
            INSERT INTO trust_ledger
                (user_pk, action, weight, target_user_pk, metadata, idempotency_key)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (user_pk, idempotency_key) DO NOTHING
            RETURNING *
        """

        async with self._acquire(connection) as conn:
            record = await conn.fetchrow(
                query,
                entry.user_pk,
                entry.action,
                entry.weight,
                entry.target_user_pk,
                entry.metadata,
                entry.idempotency_key,
            )
            return self._record_to_model(record) if record else None

    async def get_by_idempotency_key(
        self,
        user_pk: UUID,
        idempotency_key: str,
        connection: Connection | None = None,
    ) -> TrustLedgerEntry | None:
        """Find the entry previously written under an idempotency key."""
        return await self.find_one_by(
            connection=connection, user_pk=user_pk, idempotency_key=idempotency_key
        )

    async def get_score(
        self, user_pk: UUID, connection: Connection | None = None
    ) -> int:
        """Sum of all weights for a user."""
        query = "SELECT COALESCE(SUM(weight), 0) FROM trust_ledger WHERE user_pk = $1"

        async with self._acquire(connection) as conn:
            result = await conn.fetchval(query, user_pk)
            return int(result or 0)

    async def get_user_entries(
        self,
        user_pk: UUID,
        limit: int = 50,
        offset: int = 0,
        connection: Connection | None = None,
    ) -> list[TrustLedgerEntry]:
        """Ledger entries for a user, newest first."""
        query = """
            SELECT * FROM trust_ledger
            WHERE user_pk = $1
            ORDER BY created_at DESC, pk DESC
            LIMIT $2 OFFSET $3
        """

        async with self._acquire(connection) as conn:
            records = await conn.fetch(query, user_pk, limit, offset)
            return [self._record_to_model(record) for record in records]

    async def count_user_entries(
        self,
        user_pk: UUID,
        since: datetime | None = None,
        actions: list[str] | None = None,
        connection: Connection | None = None,
    ) -> int:
        """Count a user's entries, optionally within a window and action set."""
        conditions = ["user_pk = $1"]
        params: list = [user_pk]

        if since is not None:
            params.append(since)
            conditions.append(f"created_at >= ${len(params)}")

        if actions:
            params.append(actions)
            conditions.append(f"action = ANY(${len(params)}::text[])")

        return await self.count(" AND ".join(conditions), params, connection)

    async def get_action_stats(
        self,
        user_pk: UUID | None = None,
        connection: Connection | None = None,
    ) -> TrustActionStats:
        """Aggregate ledger entries per action."""
        where_clause = "WHERE user_pk = $1" if user_pk else ""
        params = [user_pk] if user_pk else []

        query = f"""
            SELECT action, COUNT(*) AS count, COALESCE(SUM(weight), 0) AS total_weight
            FROM trust_ledger
            {where_clause}
            GROUP BY action
            ORDER BY action
        """  # nosec B608

        totals_query = f"""
            SELECT
                COUNT(*) AS total_entries,
                COALESCE(SUM(weight), 0) AS total_weight,
                COALESCE(SUM(weight) FILTER (WHERE weight > 0), 0) AS positive_weight,
                COALESCE(SUM(weight) FILTER (WHERE weight < 0), 0) AS negative_weight
            FROM trust_ledger
            {where_clause}
        """  # nosec B608

        async with self._acquire(connection) as conn:
            records = await conn.fetch(query, *params)
            totals = await conn.fetchrow(totals_query, *params)

        return TrustActionStats(
            user_pk=user_pk,
            total_entries=totals["total_entries"],
            total_weight=totals["total_weight"],
            positive_weight=totals["positive_weight"],
            negative_weight=totals["negative_weight"],
            breakdown=[
                TrustActionBreakdown(
                    action=record["action"],
                    count=record["count"],
                    total_weight=record["total_weight"],
                )
                for record in records
            ],
        )


def get_trust_ledger_repository() -> TrustLedgerRepository:
    """Get trust ledger repository instance."""
    return TrustLedgerRepository()

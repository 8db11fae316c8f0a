"""Ban repository for the EmuReady API."""

from typing import Any
from uuid import UUID

from asyncpg import Connection
from asyncpg import Record

from emuready_api.database.models.ban import Ban
from emuready_api.database.models.ban import BanCreate
from emuready_api.database.models.ban import BanState
from emuready_api.database.models.ban import BanStats
from emuready_api.database.models.ban import EffectiveBanState
from emuready_api.database.repositories.base import BaseRepository

# SQL fragments for the read-time lifecycle; expiry is never written.
_IN_EFFECT = "state = 'active' AND (expires_at IS NULL OR expires_at > NOW())"
_EXPIRED = "state = 'active' AND expires_at IS NOT NULL AND expires_at <= NOW()"

_EFFECTIVE_STATE_FILTERS = {
    EffectiveBanState.ACTIVE: _IN_EFFECT,
    EffectiveBanState.EXPIRED: _EXPIRED,
    EffectiveBanState.LIFTED: "state = 'lifted'",
    EffectiveBanState.ARCHIVED: "state = 'archived'",
}


class BanRepository(BaseRepository[Ban]):
    """Repository for ban database operations."""

    def __init__(self):
        super().__init__("bans")

    def _record_to_model(self, record: Record) -> Ban:
        """Convert database record to Ban model."""
        return Ban.model_validate(dict(record))

    async def create_ban(
        self,
        ban_data: BanCreate,
        banned_by_pk: UUID,
        connection: Connection,
    ) -> Ban:
        """Insert an ACTIVE ban."""
        query = """
            INSERT INTO bans (user_pk, banned_by_pk, reason, notes, expires_at, state)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING *
        """

        record = await connection.fetchrow(
            query,
            ban_data.user_pk,
            banned_by_pk,
            ban_data.reason,
            ban_data.notes,
            ban_data.expires_at,
            BanState.ACTIVE.value,
        )
        return self._record_to_model(record)

    async def get_active_ban_for_user(
        self, user_pk: UUID, connection: Connection | None = None
    ) -> Ban | None:
        """The ban currently blocking a user, if any."""
        query = f"""
            SELECT * FROM bans
            WHERE user_pk = $1 AND {_IN_EFFECT}
            ORDER BY created_at DESC
            LIMIT 1
        """  # nosec B608

        async with self._acquire(connection) as conn:
            record = await conn.fetchrow(query, user_pk)
            return self._record_to_model(record) if record else None

    async def update_ban(
        self,
        ban_pk: UUID,
        changes: dict[str, Any],
        connection: Connection,
    ) -> Ban | None:
        """Apply field changes to a ban that is not archived."""
        if not changes:
            return await self.get_by_pk(ban_pk, connection=connection)

        set_clauses = [f"{column} = ${i + 1}" for i, column in enumerate(changes)]
        set_clauses.append("updated_at = NOW()")
        values = [*changes.values(), ban_pk]

        query = f"""
            UPDATE bans
            SET {", ".join(set_clauses)}
            WHERE pk = ${len(values)} AND state <> 'archived'
            RETURNING *
        """  # nosec B608

        record = await connection.fetchrow(query, *values)
        return self._record_to_model(record) if record else None

    async def lift_ban(
        self,
        ban_pk: UUID,
        unbanned_by_pk: UUID,
        notes: str | None,
        connection: Connection,
    ) -> Ban | None:
        """Move an ACTIVE ban to LIFTED. Returns None if it was not ACTIVE."""
        query = """
            UPDATE bans
            SET state = 'lifted',
                unbanned_at = NOW(),
                unbanned_by_pk = $2,
                notes = $3,
                updated_at = NOW()
            WHERE pk = $1 AND state = 'active'
            RETURNING *
        """

        record = await connection.fetchrow(query, ban_pk, unbanned_by_pk, notes)
        return self._record_to_model(record) if record else None

    async def archive_ban(
        self,
        ban_pk: UUID,
        archived_by_pk: UUID,
        notes: str,
        connection: Connection,
    ) -> Ban | None:
        """Soft delete a ban. Returns None if it was already archived."""
        query = """
            UPDATE bans
            SET state = 'archived',
                archived_at = NOW(),
                archived_by_pk = $2,
                notes = $3,
                updated_at = NOW()
            WHERE pk = $1 AND state <> 'archived'
            RETURNING *
        """

        record = await connection.fetchrow(query, ban_pk, archived_by_pk, notes)
        return self._record_to_model(record) if record else None

    async def get_bans_by_user(
        self,
        user_pk: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Ban]:
        """Ban history for a user, newest first."""
        query = """
            SELECT * FROM bans
            WHERE user_pk = $1
            ORDER BY created_at DESC
            LIMIT $2 OFFSET $3
        """

        async with self._acquire() as conn:
            records = await conn.fetch(query, user_pk, limit, offset)
            return [self._record_to_model(record) for record in records]

    async def list_bans(
        self,
        state: EffectiveBanState | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Ban]:
        """List bans, optionally filtered by read-time state."""
        where_clause = ""
        if state is not None:
            where_clause = f"WHERE {_EFFECTIVE_STATE_FILTERS[EffectiveBanState(state)]}"

        query = f"""
            SELECT * FROM bans
            {where_clause}
            ORDER BY created_at DESC
            LIMIT $1 OFFSET $2
        """  # nosec B608

        async with self._acquire() as conn:
            records = await conn.fetch(query, limit, offset)
            return [self._record_to_model(record) for record in records]

    async def get_stats(self) -> BanStats:
        """Counts across the registry, evaluated at read time."""
        query = f"""
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE {_IN_EFFECT}) AS active,
                COUNT(*) FILTER (WHERE {_EXPIRED}) AS expired,
                COUNT(*) FILTER (WHERE state = 'lifted') AS lifted,
                COUNT(*) FILTER (WHERE state = 'archived') AS archived,
                COUNT(*) FILTER (WHERE state = 'active' AND expires_at IS NULL) AS permanent,
                COUNT(*) FILTER (WHERE state = 'active' AND expires_at IS NOT NULL)
                    AS temporary
            FROM bans
        """  # nosec B608

        async with self._acquire() as conn:
            record = await conn.fetchrow(query)
            return BanStats.model_validate(dict(record))


def get_ban_repository() -> BanRepository:
    """Get ban repository instance."""
    return BanRepository()

"""Permission grant repository for the EmuReady API."""

from uuid import UUID

from asyncpg import Connection
from asyncpg import Record

from emuready_api.database.models.permission import PermissionGrant
from emuready_api.database.repositories.base import BaseRepository


class PermissionGrantRepository(BaseRepository[PermissionGrant]):
    """Repository for explicit per-user permission grants."""

    def __init__(self):
        super().__init__("permission_grants")

    def _record_to_model(self, record: Record) -> PermissionGrant:
        """Convert database record to PermissionGrant model."""
        return PermissionGrant.model_validate(dict(record))

    async def get_keys_for_user(
        self, user_pk: UUID, connection: Connection | None = None
    ) -> set[str]:
        """Permission keys explicitly granted to a user."""
        query = "SELECT permission_key FROM permission_grants WHERE user_pk = $1"

        async with self._acquire(connection) as conn:
            records = await conn.fetch(query, user_pk)
            return {record["permission_key"] for record in records}

    async def get_grant(
        self,
        user_pk: UUID,
        permission_key: str,
        connection: Connection | None = None,
    ) -> PermissionGrant | None:
        """Get a single grant."""
        return await self.find_one_by(
            connection=connection, user_pk=user_pk, permission_key=permission_key
        )

    async def create_grant(
        self,
        user_pk: UUID,
        permission_key: str,
        granted_by_pk: UUID,
        connection: Connection,
    ) -> PermissionGrant | None:
        """Insert a grant. Returns None if it already exists."""
        query = """
            INSERT INTO permission_grants (user_pk, permission_key, granted_by_pk)
            VALUES ($1, $2, $3)
            ON CONFLICT (user_pk, permission_key) DO NOTHING
            RETURNING *
        """

        record = await connection.fetchrow(
            query, user_pk, permission_key, granted_by_pk
        )
        return self._record_to_model(record) if record else None

    async def delete_grant(
        self, user_pk: UUID, permission_key: str, connection: Connection
    ) -> PermissionGrant | None:
        """Delete a grant, returning the removed row."""
        query = """
            DELETE FROM permission_grants
            WHERE user_pk = $1 AND permission_key = $2
            RETURNING *
        """

        record = await connection.fetchrow(query, user_pk, permission_key)
        return self._record_to_model(record) if record else None


def get_permission_grant_repository() -> PermissionGrantRepository:
    """Get permission grant repository instance."""
    return PermissionGrantRepository()

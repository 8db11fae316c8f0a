"""User repository for the EmuReady API."""

from datetime import datetime
from uuid import UUID

from asyncpg import Connection
from asyncpg import Record

from emuready_api.database.models.base import UserRole
from emuready_api.database.models.user import User
from emuready_api.database.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for user operations."""

    def __init__(self):
        super().__init__("users")

    def _record_to_model(self, record: Record) -> User:
        """Convert database record to User model."""
        return User.model_validate(dict(record))

    async def update_role(
        self, user_pk: UUID, role: UserRole, connection: Connection
    ) -> User | None:
        """Set a user's role."""
        return await self.update_from_dict(
            user_pk, {"role": UserRole(role).value}, connection=connection
        )

    async def touch_last_active(
        self, user_pk: UUID, connection: Connection | None = None
    ) -> None:
        """Record that the user made an authenticated request."""
        query = """
            UPDATE users
            SET last_active_at = NOW()
            WHERE pk = $1
            AND (last_active_at IS NULL OR last_active_at < NOW() - INTERVAL '5 minutes')
        """

        async with self._acquire(connection) as conn:
            await conn.execute(query, user_pk)

    async def get_monthly_bonus_candidates(
        self,
        created_before: datetime,
        active_since: datetime,
        connection: Connection | None = None,
    ) -> list[UUID]:
        """Users old enough and recently active enough for the monthly bonus."""
        query = """
            SELECT pk FROM users
            WHERE created_at <= $1
            AND last_active_at >= $2
            ORDER BY created_at ASC
        """

        async with self._acquire(connection) as conn:
            records = await conn.fetch(query, created_before, active_since)
            return [record["pk"] for record in records]


def get_user_repository() -> UserRepository:
    """Get user repository instance."""
    return UserRepository()

"""Base repository class for the EmuReady API."""

from abc import ABC
from abc import abstractmethod
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from typing import Generic
from typing import TypeVar
from uuid import UUID

from asyncpg import Connection
from asyncpg import Record

from emuready_api.database.connection import get_db_connection

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Base repository class with common database operations.

    Every method accepts an optional ``connection``. When given, the query
    runs on it so callers can compose several repository calls inside one
    transaction; otherwise a pooled connection is used.
    """

    def __init__(self, table_name: str):
        self.table_name = table_name

    @abstractmethod
    def _record_to_model(self, record: Record) -> T:
        """Convert database record to model instance."""

    @asynccontextmanager
    async def _acquire(
        self, connection: Connection | None = None
    ) -> AsyncGenerator[Connection]:
        """Yield the caller's connection or borrow one from the pool."""
        if connection is not None:
            yield connection
            return

        async with get_db_connection() as pooled:
            yield pooled

    async def get_by_pk(
        self, pk: UUID, connection: Connection | None = None
    ) -> T | None:
        """Get a record by primary key."""
        query = f"SELECT * FROM {self.table_name} WHERE pk = $1"  # nosec B608

        async with self._acquire(connection) as conn:
            record = await conn.fetchrow(query, pk)
            return self._record_to_model(record) if record else None

    async def get_for_update(self, pk: UUID, connection: Connection) -> T | None:
        """Get a record by primary key and lock it until the transaction ends."""
        query = f"SELECT * FROM {self.table_name} WHERE pk = $1 FOR UPDATE"  # nosec B608

        record = await connection.fetchrow(query, pk)
        return self._record_to_model(record) if record else None

    async def get_all(
        self,
        limit: int = 100,
        offset: int = 0,
        connection: Connection | None = None,
    ) -> list[T]:
        """Get all records with pagination."""
        query = f"""
            SELECT * FROM {self.table_name}
            ORDER BY created_at DESC
            LIMIT $1 OFFSET $2
        """  # nosec B608

        async with self._acquire(connection) as conn:
            records = await conn.fetch(query, limit, offset)
            return [self._record_to_model(record) for record in records]

    async def count(
        self,
        where_clause: str = "",
        params: list[Any] | None = None,
        connection: Connection | None = None,
    ) -> int:
        """Count records with optional where clause."""
        if params is None:
            params = []

        query = f"SELECT COUNT(*) FROM {self.table_name}"  # nosec B608
        if where_clause:
            query += f" WHERE {where_clause}"

        async with self._acquire(connection) as conn:
            result = await conn.fetchval(query, *params)
            return result or 0

    async def exists(self, pk: UUID, connection: Connection | None = None) -> bool:
        """Check if a record exists by primary key."""
        query = f"SELECT EXISTS(SELECT 1 FROM {self.table_name} WHERE pk = $1)"  # nosec B608

        async with self._acquire(connection) as conn:
            result = await conn.fetchval(query, pk)
            return bool(result)

    async def create_from_dict(
        self, data: dict[str, Any], connection: Connection | None = None
    ) -> T:
        """Create a new record."""
        columns = list(data.keys())
        placeholders = [f"${i + 1}" for i in range(len(columns))]
        values = list(data.values())

        query = f"""
            INSERT INTO {self.table_name} ({", ".join(columns)})
            VALUES ({", ".join(placeholders)})
            RETURNING *
        """  # nosec B608

        async with self._acquire(connection) as conn:
            record = await conn.fetchrow(query, *values)
            if record is None:
                raise ValueError(f"Failed to create record in {self.table_name}")
            return self._record_to_model(record)

    async def update_from_dict(
        self,
        pk: UUID,
        data: dict[str, Any],
        connection: Connection | None = None,
    ) -> T | None:
        """Update a record by primary key and bump ``updated_at``."""
        if not data:
            return await self.get_by_pk(pk, connection=connection)

        set_clauses = [f"{column} = ${i + 1}" for i, column in enumerate(data)]
        set_clauses.append("updated_at = NOW()")
        values = [*data.values(), pk]

        query = f"""
            UPDATE {self.table_name}
            SET {", ".join(set_clauses)}
            WHERE pk = ${len(values)}
            RETURNING *
        """  # nosec B608

        async with self._acquire(connection) as conn:
            record = await conn.fetchrow(query, *values)
            return self._record_to_model(record) if record else None

    async def find_by(
        self, connection: Connection | None = None, **kwargs
    ) -> list[T]:
        """Find records by field values."""
        if not kwargs:
            return await self.get_all(connection=connection)

        conditions = [f"{field} = ${i + 1}" for i, field in enumerate(kwargs)]

        query = f"""
            SELECT * FROM {self.table_name}
            WHERE {" AND ".join(conditions)}
            ORDER BY created_at DESC
        """  # nosec B608

        async with self._acquire(connection) as conn:
            records = await conn.fetch(query, *kwargs.values())
            return [self._record_to_model(record) for record in records]

    async def find_one_by(self, connection: Connection | None = None, **kwargs) -> T | None:
        """Find a single record by field values."""
        results = await self.find_by(connection=connection, **kwargs)
        return results[0] if results else None

"""Audit log repository for the EmuReady API."""

from uuid import UUID

from asyncpg import Connection
from asyncpg import Record

from emuready_api.database.models.audit import AuditLogEntry
from emuready_api.database.models.audit import AuditLogEntryCreate
from emuready_api.database.models.audit import AuditLogFilters
from emuready_api.database.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLogEntry]):
    """Repository for the write-once audit trail."""

    def __init__(self):
        super().__init__("audit_log")

    def _record_to_model(self, record: Record) -> AuditLogEntry:
        """Convert database record to AuditLogEntry model."""
        return AuditLogEntry.model_validate(dict(record))

    async def create_entry(
        self, entry: AuditLogEntryCreate, connection: Connection
    ) -> AuditLogEntry:
        """Append an audit entry on the caller's transaction."""
        return await self.create_from_dict(entry.model_dump(), connection=connection)

    def _build_filters(self, filters: AuditLogFilters) -> tuple[str, list]:
        conditions = []
        params: list = []

        for column, value in filters.model_dump(exclude_none=True).items():
            params.append(value)
            conditions.append(f"{column} = ${len(params)}")

        return " AND ".join(conditions), params

    async def list_entries(
        self,
        filters: AuditLogFilters,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """List entries matching the filters, newest first."""
        where_clause, params = self._build_filters(filters)
        where_sql = f"WHERE {where_clause}" if where_clause else ""

        query = f"""
            SELECT * FROM audit_log
            {where_sql}
            ORDER BY created_at DESC
            LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
        """  # nosec B608

        async with self._acquire() as conn:
            records = await conn.fetch(query, *params, limit, offset)
            return [self._record_to_model(record) for record in records]

    async def count_entries(self, filters: AuditLogFilters) -> int:
        """Count entries matching the filters."""
        where_clause, params = self._build_filters(filters)
        return await self.count(where_clause, params)

    async def get_entity_history(
        self, entity_type: str, entity_pk: UUID
    ) -> list[AuditLogEntry]:
        """Every entry recorded for one entity, oldest first."""
        query = """
            SELECT * FROM audit_log
            WHERE entity_type = $1 AND entity_pk = $2
            ORDER BY created_at ASC
        """

        async with self._acquire() as conn:
            records = await conn.fetch(query, entity_type, entity_pk)
            return [self._record_to_model(record) for record in records]


def get_audit_log_repository() -> AuditLogRepository:
    """Get audit log repository instance."""
    return AuditLogRepository()

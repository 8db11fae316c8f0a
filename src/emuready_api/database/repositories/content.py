"""Approval-cluster access to listings, games and PC listings."""

from uuid import UUID

from asyncpg import Connection
from asyncpg import Record

from emuready_api.database.connection import get_db_connection
from emuready_api.database.models.base import ApprovalStatus
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.content import ModeratedContent

# Table and author column per content type. Games record their submitter
# rather than an author.
CONTENT_TABLES: dict[ContentType, tuple[str, str]] = {
    ContentType.LISTING: ("listings", "author_pk"),
    ContentType.GAME: ("games", "submitted_by_pk"),
    ContentType.PC_LISTING: ("pc_listings", "author_pk"),
}


class ContentRepository:
    """Reads and writes only the approval fields of moderated content."""

    def _table(self, content_type: ContentType | str) -> tuple[str, str]:
        return CONTENT_TABLES[ContentType(content_type)]

    def _select(self, content_type: ContentType | str) -> str:
        table, author_column = self._table(content_type)
        return f"""
            SELECT
                pk,
                '{ContentType(content_type).value}' AS content_type,
                {author_column} AS author_pk,
                status,
                processed_at,
                processed_by_pk,
                processed_notes,
                created_at
            FROM {table}
        """  # nosec B608

    def _record_to_model(self, record: Record) -> ModeratedContent:
        """Convert database record to ModeratedContent model."""
        return ModeratedContent.model_validate(dict(record))

    async def get_by_pk(
        self,
        content_type: ContentType | str,
        content_pk: UUID,
        connection: Connection | None = None,
    ) -> ModeratedContent | None:
        """Get the approval view of a content row."""
        query = f"{self._select(content_type)} WHERE pk = $1"

        if connection is not None:
            record = await connection.fetchrow(query, content_pk)
        else:
            async with get_db_connection() as conn:
                record = await conn.fetchrow(query, content_pk)
        return self._record_to_model(record) if record else None

    async def get_for_update(
        self,
        content_type: ContentType | str,
        content_pk: UUID,
        connection: Connection,
    ) -> ModeratedContent | None:
        """Get and lock a content row for an approval transition."""
        query = f"{self._select(content_type)} WHERE pk = $1 FOR UPDATE"

        record = await connection.fetchrow(query, content_pk)
        return self._record_to_model(record) if record else None

    async def transition_status(
        self,
        content_type: ContentType | str,
        content_pk: UUID,
        from_status: ApprovalStatus | str,
        to_status: ApprovalStatus | str,
        processed_by_pk: UUID,
        processed_notes: str | None,
        connection: Connection,
    ) -> ModeratedContent | None:
        """Move content between statuses if it is still in ``from_status``.

        Returns None when the row changed underneath the caller.
        """
        table, author_column = self._table(content_type)
        query = f"""
            UPDATE {table}
            SET status = $3,
                processed_at = NOW(),
                processed_by_pk = $4,
                processed_notes = $5
            WHERE pk = $1 AND status = $2
            RETURNING
                pk,
                '{ContentType(content_type).value}' AS content_type,
                {author_column} AS author_pk,
                status,
                processed_at,
                processed_by_pk,
                processed_notes,
                created_at
        """  # nosec B608

        record = await connection.fetchrow(
            query,
            content_pk,
            ApprovalStatus(from_status).value,
            ApprovalStatus(to_status).value,
            processed_by_pk,
            processed_notes,
        )
        return self._record_to_model(record) if record else None

    async def list_by_status(
        self,
        content_type: ContentType | str,
        status: ApprovalStatus | str = ApprovalStatus.PENDING,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ModeratedContent]:
        """Content in a given status, oldest first."""
        query = f"""
            {self._select(content_type)}
            WHERE status = $1
            ORDER BY created_at ASC
            LIMIT $2 OFFSET $3
        """

        async with get_db_connection() as connection:
            records = await connection.fetch(
                query, ApprovalStatus(status).value, limit, offset
            )
            return [self._record_to_model(record) for record in records]


def get_content_repository() -> ContentRepository:
    """Get content repository instance."""
    return ContentRepository()

"""Report repository for the EmuReady API."""

from uuid import UUID

from asyncpg import Connection
from asyncpg import Record

from emuready_api.database.models.base import ContentType
from emuready_api.database.models.report import Report
from emuready_api.database.models.report import ReportCreate
from emuready_api.database.models.report import ReportStats
from emuready_api.database.models.report import ReportStatus
from emuready_api.database.models.report import UserReportStats
from emuready_api.database.repositories.base import BaseRepository


class ReportRepository(BaseRepository[Report]):
    """Repository for content reports."""

    def __init__(self):
        super().__init__("reports")

    def _record_to_model(self, record: Record) -> Report:
        """Convert database record to Report model."""
        return Report.model_validate(dict(record))

    async def create_report(
        self,
        report_data: ReportCreate,
        reported_by_pk: UUID,
        connection: Connection | None = None,
    ) -> Report:
        """Insert a PENDING report.

        Raises asyncpg.UniqueViolationError if the reporter already reported
        this content.
        """
        query = """
            INSERT INTO reports
                (content_type, content_pk, reported_by_pk, reason, description, status)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING *
        """

        async with self._acquire(connection) as conn:
            record = await conn.fetchrow(
                query,
                ContentType(report_data.content_type).value,
                report_data.content_pk,
                reported_by_pk,
                report_data.reason.value,
                report_data.description,
                ReportStatus.PENDING.value,
            )
            return self._record_to_model(record)

    async def get_by_reporter_and_content(
        self,
        reported_by_pk: UUID,
        content_type: ContentType | str,
        content_pk: UUID,
        connection: Connection | None = None,
    ) -> Report | None:
        """The report a user already filed against a piece of content."""
        return await self.find_one_by(
            connection=connection,
            reported_by_pk=reported_by_pk,
            content_type=ContentType(content_type).value,
            content_pk=content_pk,
        )

    async def mark_under_review(
        self, report_pk: UUID, reviewer_pk: UUID, connection: Connection
    ) -> Report | None:
        """PENDING to UNDER_REVIEW. Returns None if the report moved on."""
        query = """
            UPDATE reports
            SET status = 'under_review',
                reviewed_by_pk = $2,
                updated_at = NOW()
            WHERE pk = $1 AND status = 'pending'
            RETURNING *
        """

        record = await connection.fetchrow(query, report_pk, reviewer_pk)
        return self._record_to_model(record) if record else None

    async def record_outcome(
        self,
        report_pk: UUID,
        outcome: ReportStatus | str,
        reviewer_pk: UUID,
        review_notes: str | None,
        connection: Connection,
    ) -> Report | None:
        """Stamp a terminal outcome on a report that is not yet terminal.

        Returns None if another reviewer got there first.
        """
        query = """
            UPDATE reports
            SET status = $2,
                reviewed_by_pk = $3,
                reviewed_at = NOW(),
                review_notes = $4,
                updated_at = NOW()
            WHERE pk = $1 AND status NOT IN ('resolved', 'dismissed')
            RETURNING *
        """

        record = await connection.fetchrow(
            query,
            report_pk,
            ReportStatus(outcome).value,
            reviewer_pk,
            review_notes,
        )
        return self._record_to_model(record) if record else None

    async def list_reports(
        self,
        status: ReportStatus | None = None,
        content_type: ContentType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Report]:
        """List reports with optional filters, newest first."""
        conditions = []
        params: list = []

        if status is not None:
            params.append(ReportStatus(status).value)
            conditions.append(f"status = ${len(params)}")

        if content_type is not None:
            params.append(ContentType(content_type).value)
            conditions.append(f"content_type = ${len(params)}")

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT * FROM reports
            {where_clause}
            ORDER BY created_at DESC
            LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
        """  # nosec B608

        async with self._acquire() as conn:
            records = await conn.fetch(query, *params, limit, offset)
            return [self._record_to_model(record) for record in records]

    async def get_stats(self) -> ReportStats:
        """Counts per report status."""
        query = """
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE status = 'pending') AS pending,
                COUNT(*) FILTER (WHERE status = 'under_review') AS under_review,
                COUNT(*) FILTER (WHERE status = 'resolved') AS resolved,
                COUNT(*) FILTER (WHERE status = 'dismissed') AS dismissed
            FROM reports
        """

        async with self._acquire() as conn:
            record = await conn.fetchrow(query)
            return ReportStats.model_validate(dict(record))

    async def get_user_report_stats(self, user_pk: UUID) -> UserReportStats:
        """Reports filed against content authored by a user."""
        query = """
            WITH authored AS (
                SELECT 'listing' AS content_type, pk FROM listings WHERE author_pk = $1
                UNION ALL
                SELECT 'game', pk FROM games WHERE submitted_by_pk = $1
                UNION ALL
                SELECT 'pc_listing', pk FROM pc_listings WHERE author_pk = $1
            )
            SELECT
                COUNT(*) AS total_reports,
                COUNT(*) FILTER (WHERE r.status = 'resolved') AS confirmed_reports,
                COUNT(*) FILTER (WHERE r.status = 'under_review') AS under_review_reports
            FROM reports r
            JOIN authored a
              ON a.content_type = r.content_type AND a.pk = r.content_pk
        """

        async with self._acquire() as conn:
            record = await conn.fetchrow(query, user_pk)
            return UserReportStats(user_pk=user_pk, **dict(record))


def get_report_repository() -> ReportRepository:
    """Get report repository instance."""
    return ReportRepository()

"""Content report models for the EmuReady API."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from emuready_api.database.models.base import BaseDBModel
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.content import ModeratedContent
from emuready_api.database.models.trust import TrustLedgerEntry


class ReportReason(str, Enum):
    """Why content was reported."""

    INAPPROPRIATE_CONTENT = "inappropriate_content"
    SPAM = "spam"
    MISLEADING_INFORMATION = "misleading_information"
    FAKE_LISTING = "fake_listing"
    COPYRIGHT_VIOLATION = "copyright_violation"
    OTHER = "other"


class ReportStatus(str, Enum):
    """Report lifecycle status."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ReportOutcome(str, Enum):
    """Terminal outcomes a reviewer can choose."""

    RESOLVED = "resolved"
    DISMISSED = "dismissed"


TERMINAL_REPORT_STATUSES = (ReportStatus.RESOLVED, ReportStatus.DISMISSED)


class Report(BaseDBModel):
    """Report database model."""

    content_type: ContentType
    content_pk: UUID
    reported_by_pk: UUID
    reason: ReportReason
    description: str | None = None
    status: ReportStatus = ReportStatus.PENDING
    reviewed_by_pk: UUID | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None

    @property
    def is_terminal(self) -> bool:
        """Whether the report can no longer change."""
        return self.status in TERMINAL_REPORT_STATUSES


class ReportCreate(BaseModel):
    """Report creation model."""

    content_type: ContentType
    content_pk: UUID
    reason: ReportReason
    description: str | None = Field(default=None, max_length=1000)


class ReportResolve(BaseModel):
    """Resolution request body."""

    outcome: ReportOutcome
    review_notes: str | None = Field(default=None, max_length=2000)


class ReportResolution(BaseModel):
    """Everything a resolution changed."""

    report: Report
    content: ModeratedContent | None = None
    trust_entry: TrustLedgerEntry


class ReportStats(BaseModel):
    """Counts per report status."""

    total: int
    pending: int
    under_review: int
    resolved: int
    dismissed: int

    model_config = ConfigDict(from_attributes=True)


class UserReportStats(BaseModel):
    """Reports filed against a user's content."""

    user_pk: UUID
    total_reports: int
    confirmed_reports: int
    under_review_reports: int

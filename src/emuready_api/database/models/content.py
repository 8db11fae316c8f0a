"""Approval-cluster view of moderated content."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from emuready_api.database.models.base import ApprovalStatus
from emuready_api.database.models.base import ContentType


class ModeratedContent(BaseModel):
    """Approval fields of a listing, game or PC listing.

    Only the approval cluster and the author are visible here; the rest of
    each content row is owned by its catalog module.
    """

    pk: UUID
    content_type: ContentType
    author_pk: UUID
    status: ApprovalStatus
    processed_at: datetime | None = None
    processed_by_pk: UUID | None = None
    processed_notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class ApprovalDecision(BaseModel):
    """Approve or reject request body."""

    notes: str | None = Field(default=None, max_length=2000)


class StatusOverride(BaseModel):
    """Override request body; notes are mandatory."""

    status: ApprovalStatus
    notes: str = Field(min_length=1, max_length=2000)

"""Audit log models for the EmuReady API."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from emuready_api.database.models.base import BaseDBModel


class AuditAction(str, Enum):
    """Privileged state changes that are recorded."""

    BAN_CREATED = "ban_created"
    BAN_UPDATED = "ban_updated"
    BAN_LIFTED = "ban_lifted"
    BAN_ARCHIVED = "ban_archived"
    ROLE_CHANGED = "role_changed"
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_REVOKED = "permission_revoked"
    CONTENT_APPROVED = "content_approved"
    CONTENT_REJECTED = "content_rejected"
    CONTENT_STATUS_OVERRIDDEN = "content_status_overridden"
    REPORT_RESOLVED = "report_resolved"
    REPORT_DISMISSED = "report_dismissed"
    TRUST_ADJUSTED = "trust_adjusted"


class AuditEntityType(str, Enum):
    """Kinds of entity an audit entry points at."""

    BAN = "ban"
    USER = "user"
    LISTING = "listing"
    GAME = "game"
    PC_LISTING = "pc_listing"
    REPORT = "report"
    TRUST_LEDGER_ENTRY = "trust_ledger_entry"


class AuditLogEntry(BaseDBModel):
    """Immutable audit log row.

    ``metadata`` holds ``{"changes": {field: {"before": x, "after": y}}}``
    plus any action specific context.
    """

    actor_pk: UUID
    action: AuditAction
    entity_type: AuditEntityType
    entity_pk: UUID
    target_user_pk: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AuditLogEntryCreate(BaseModel):
    """Values for a new audit row."""

    actor_pk: UUID
    action: AuditAction
    entity_type: AuditEntityType
    entity_pk: UUID
    target_user_pk: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(use_enum_values=True)


class AuditLogFilters(BaseModel):
    """Filters for audit log listing."""

    actor_pk: UUID | None = None
    target_user_pk: UUID | None = None
    action: AuditAction | None = None
    entity_type: AuditEntityType | None = None

    model_config = ConfigDict(use_enum_values=True)


class AuditLogResponse(BaseModel):
    """Response model for audit log listing."""

    entries: list[AuditLogEntry]
    total_count: int
    limit: int
    offset: int

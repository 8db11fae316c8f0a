"""Notification models for the EmuReady API."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from emuready_api.database.models.base import BaseDBModel


class NotificationType(str, Enum):
    """Events users are told about."""

    USER_BANNED = "user_banned"
    USER_UNBANNED = "user_unbanned"
    REPORT_CREATED = "report_created"
    REPORT_STATUS_CHANGED = "report_status_changed"
    LISTING_APPROVED = "listing_approved"
    LISTING_REJECTED = "listing_rejected"
    ROLE_CHANGED = "role_changed"


class Notification(BaseDBModel):
    """Notification database model."""

    user_pk: UUID
    type: NotificationType
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False


class NotificationCreate(BaseModel):
    """Notification payload carried through the job queue."""

    user_pk: UUID
    type: NotificationType
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(use_enum_values=True)

"""Base models and types for the EmuReady API database."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict


class UserRole(str, Enum):
    """User role enumeration, declared from least to most privileged."""

    USER = "user"
    AUTHOR = "author"
    DEVELOPER = "developer"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class ApprovalStatus(str, Enum):
    """Approval status of moderated content."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContentType(str, Enum):
    """Kinds of content that pass through approval."""

    LISTING = "listing"
    GAME = "game"
    PC_LISTING = "pc_listing"


class BaseDBModel(BaseModel):
    """Base model for database entities."""

    pk: UUID
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

"""User model for the EmuReady API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict

from emuready_api.database.models.base import BaseDBModel
from emuready_api.database.models.base import UserRole


class User(BaseDBModel):
    """User database model.

    Ban state and trust score are not stored on the user row; both are
    derived from the bans table and the trust ledger.
    """

    email: str
    username: str
    role: UserRole = UserRole.USER
    last_active_at: datetime | None = None


class UserRoleUpdate(BaseModel):
    """Role change request."""

    role: UserRole


class UserSummary(BaseModel):
    """Public user summary."""

    pk: UUID
    username: str
    role: UserRole
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

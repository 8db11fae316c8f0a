"""Ban models for the EmuReady API."""

from datetime import UTC
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import computed_field
from pydantic import field_validator

from emuready_api.database.models.base import BaseDBModel


class BanState(str, Enum):
    """Stored lifecycle state of a ban."""

    ACTIVE = "active"
    LIFTED = "lifted"
    ARCHIVED = "archived"


class EffectiveBanState(str, Enum):
    """Lifecycle state as observed at read time."""

    ACTIVE = "active"
    EXPIRED = "expired"
    LIFTED = "lifted"
    ARCHIVED = "archived"


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Ban(BaseDBModel):
    """Ban database model.

    Expiry is never written back; a stored ACTIVE ban whose ``expires_at``
    has passed is reported as EXPIRED.
    """

    user_pk: UUID
    banned_by_pk: UUID
    reason: str
    notes: str | None = None
    state: BanState = BanState.ACTIVE
    expires_at: datetime | None = None
    unbanned_at: datetime | None = None
    unbanned_by_pk: UUID | None = None
    archived_at: datetime | None = None
    archived_by_pk: UUID | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_active(self) -> bool:
        """Whether the ban has not been lifted or archived."""
        return self.state == BanState.ACTIVE

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_permanent(self) -> bool:
        """Whether the ban has no expiry."""
        return self.expires_at is None

    def is_in_effect(self, now: datetime | None = None) -> bool:
        """Whether the ban currently blocks the user."""
        if not self.is_active:
            return False
        if self.expires_at is None:
            return True
        return _as_utc(self.expires_at) > (now or datetime.now(UTC))

    def effective_state(self, now: datetime | None = None) -> EffectiveBanState:
        """Resolve the read-time lifecycle state."""
        if self.state == BanState.ARCHIVED:
            return EffectiveBanState.ARCHIVED
        if self.state == BanState.LIFTED:
            return EffectiveBanState.LIFTED
        if self.is_in_effect(now):
            return EffectiveBanState.ACTIVE
        return EffectiveBanState.EXPIRED


class BanCreate(BaseModel):
    """Ban creation model."""

    user_pk: UUID
    reason: str = Field(min_length=1, max_length=500)
    notes: str | None = Field(default=None, max_length=2000)
    expires_at: datetime | None = None

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        return _as_utc(v)


class BanUpdate(BaseModel):
    """Ban update model.

    ``is_active`` and ``state`` are accepted only so that attempts to flip
    activity directly can be rejected explicitly; use lift or archive.
    """

    reason: str | None = Field(default=None, min_length=1, max_length=500)
    notes: str | None = Field(default=None, max_length=2000)
    expires_at: datetime | None = None
    is_active: bool | None = None
    state: BanState | None = None

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        return _as_utc(v)

    def changes(self) -> dict:
        """Fields the caller explicitly supplied, minus activity flags."""
        return self.model_dump(exclude_unset=True, exclude={"is_active", "state"})


class BanLift(BaseModel):
    """Ban lift request."""

    notes: str | None = Field(default=None, max_length=2000)


class BanArchive(BaseModel):
    """Ban archive request."""

    notes: str | None = Field(default=None, max_length=2000)


class BanCheckResponse(BaseModel):
    """Read-time ban status for a user."""

    user_pk: UUID
    is_banned: bool
    ban: Ban | None = None


class BanStats(BaseModel):
    """Counts across the ban registry."""

    total: int
    active: int
    expired: int
    lifted: int
    archived: int
    permanent: int
    temporary: int

    model_config = ConfigDict(from_attributes=True)

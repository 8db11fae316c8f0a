"""Trust ledger models and scoring tables for the EmuReady API."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from emuready_api.database.models.base import BaseDBModel


class TrustAction(str, Enum):
    """Reputation-affecting events recorded in the ledger."""

    UPVOTE = "upvote"
    DOWNVOTE = "downvote"
    LISTING_CREATED = "listing_created"
    LISTING_APPROVED = "listing_approved"
    LISTING_REJECTED = "listing_rejected"
    MONTHLY_ACTIVE_BONUS = "monthly_active_bonus"
    LISTING_RECEIVED_UPVOTE = "listing_received_upvote"
    LISTING_RECEIVED_DOWNVOTE = "listing_received_downvote"
    LISTING_DEVELOPER_VERIFIED = "listing_developer_verified"
    COMMENT_RECEIVED_UPVOTE = "comment_received_upvote"
    COMMENT_RECEIVED_DOWNVOTE = "comment_received_downvote"
    HELPFUL_COMMENT = "helpful_comment"
    REPORT_CONFIRMED = "report_confirmed"
    FALSE_REPORT = "false_report"
    GAME_SUBMISSION_APPROVED = "game_submission_approved"
    GAME_SUBMISSION_REJECTED = "game_submission_rejected"
    ADMIN_ADJUSTMENT_POSITIVE = "admin_adjustment_positive"
    ADMIN_ADJUSTMENT_NEGATIVE = "admin_adjustment_negative"


class TrustLevel(str, Enum):
    """Score buckets, declared from lowest to highest."""

    NEWCOMER = "newcomer"
    REGULAR = "regular"
    TRUSTED = "trusted"
    VETERAN = "veteran"
    ELITE = "elite"


# Fixed point value per action. Admin adjustments carry a caller-supplied
# weight and are intentionally absent.
TRUST_ACTION_WEIGHTS: dict[TrustAction, int] = {
    TrustAction.UPVOTE: 1,
    TrustAction.DOWNVOTE: 1,
    TrustAction.LISTING_CREATED: 1,
    TrustAction.LISTING_APPROVED: 10,
    TrustAction.LISTING_REJECTED: -5,
    TrustAction.MONTHLY_ACTIVE_BONUS: 10,
    TrustAction.LISTING_RECEIVED_UPVOTE: 2,
    TrustAction.LISTING_RECEIVED_DOWNVOTE: -1,
    TrustAction.LISTING_DEVELOPER_VERIFIED: 25,
    TrustAction.COMMENT_RECEIVED_UPVOTE: 1,
    TrustAction.COMMENT_RECEIVED_DOWNVOTE: -1,
    TrustAction.HELPFUL_COMMENT: 5,
    TrustAction.REPORT_CONFIRMED: 10,
    TrustAction.FALSE_REPORT: -10,
    TrustAction.GAME_SUBMISSION_APPROVED: 5,
    TrustAction.GAME_SUBMISSION_REJECTED: -2,
}

ADJUSTMENT_ACTIONS = (
    TrustAction.ADMIN_ADJUSTMENT_POSITIVE,
    TrustAction.ADMIN_ADJUSTMENT_NEGATIVE,
)

VOTE_ACTIONS = (TrustAction.UPVOTE, TrustAction.DOWNVOTE)

# Inclusive lower bound of each level, ascending. Everything below the first
# non-zero threshold (negative scores included) is NEWCOMER.
TRUST_LEVEL_THRESHOLDS: tuple[tuple[TrustLevel, int], ...] = (
    (TrustLevel.REGULAR, 100),
    (TrustLevel.TRUSTED, 500),
    (TrustLevel.VETERAN, 1000),
    (TrustLevel.ELITE, 5000),
)


def get_action_weight(action: TrustAction | str) -> int:
    """Return the fixed weight for an action."""
    action = TrustAction(action)
    if action in ADJUSTMENT_ACTIONS:
        raise ValueError(f"{action.value} has no fixed weight")
    return TRUST_ACTION_WEIGHTS[action]


def get_trust_level(score: int) -> TrustLevel:
    """Map a score to its trust level."""
    level = TrustLevel.NEWCOMER
    for candidate, threshold in TRUST_LEVEL_THRESHOLDS:
        if score < threshold:
            break
        level = candidate
    return level


def get_next_level(score: int) -> tuple[TrustLevel, int] | None:
    """Return the next level above ``score`` and its threshold."""
    for candidate, threshold in TRUST_LEVEL_THRESHOLDS:
        if score < threshold:
            return candidate, threshold
    return None


class TrustLedgerEntry(BaseDBModel):
    """Immutable trust ledger row."""

    user_pk: UUID
    action: TrustAction
    weight: int
    target_user_pk: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    idempotency_key: str | None = None


class TrustLedgerEntryCreate(BaseModel):
    """Values for a new ledger row."""

    user_pk: UUID
    action: TrustAction
    weight: int
    target_user_pk: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    idempotency_key: str | None = None

    model_config = ConfigDict(use_enum_values=True)


class TrustAdjustmentRequest(BaseModel):
    """Manual adjustment request from an administrator."""

    adjustment: int
    reason: str = Field(min_length=1, max_length=500)

    @field_validator("adjustment")
    @classmethod
    def validate_adjustment(cls, v: int) -> int:
        """Reject no-op adjustments."""
        if v == 0:
            raise ValueError("Adjustment cannot be zero")
        return v


class TrustProfile(BaseModel):
    """Derived trust summary for a user."""

    user_pk: UUID
    score: int
    level: TrustLevel
    next_level: TrustLevel | None = None
    points_to_next_level: int | None = None
    entry_count: int
    recent_entries: list[TrustLedgerEntry] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True)


class TrustActionBreakdown(BaseModel):
    """Aggregate for a single action."""

    action: TrustAction
    count: int
    total_weight: int

    model_config = ConfigDict(use_enum_values=True)


class TrustActionStats(BaseModel):
    """Ledger statistics, system wide or for one user."""

    user_pk: UUID | None = None
    total_entries: int
    total_weight: int
    positive_weight: int
    negative_weight: int
    breakdown: list[TrustActionBreakdown] = Field(default_factory=list)


class TrustActionDefinition(BaseModel):
    """Public description of an action and its weight."""

    action: TrustAction
    weight: int | None

    model_config = ConfigDict(use_enum_values=True)


class TrustLevelDefinition(BaseModel):
    """Public description of a level and its threshold."""

    level: TrustLevel
    minimum_score: int | None

    model_config = ConfigDict(use_enum_values=True)


class TrustReversalRequest(BaseModel):
    """Administrator request to cancel one earlier ledger action."""

    action: TrustAction
    reason: str = Field(min_length=1, max_length=500)

    model_config = ConfigDict(use_enum_values=True)


class TrustAutoApproval(BaseModel):
    """Whether a user's submissions skip manual approval."""

    user_pk: UUID
    can_auto_approve: bool


class TrustActionRate(BaseModel):
    """Whether a user may log another entry for an action right now."""

    user_pk: UUID
    action: TrustAction
    allowed: bool

    model_config = ConfigDict(use_enum_values=True)

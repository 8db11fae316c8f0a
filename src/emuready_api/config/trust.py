"""Trust system configuration for the EmuReady API."""

from pydantic import Field
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class TrustSettings(BaseSettings):
    """Trust ledger tuning knobs.

    Action weights and level thresholds are fixed in code; only operational
    limits live here.
    """

    profile_cache_ttl: int = Field(
        default=600, description="Trust profile cache lifetime in seconds"
    )
    recent_entries_limit: int = Field(
        default=20, description="Ledger entries included in a trust profile"
    )
    auto_approval_level: str = Field(
        default="trusted",
        description="Minimum trust level whose submissions skip manual approval",
    )

    # Rate limits
    max_daily_actions: int = Field(
        default=100, description="Ledger entries a user may generate per day"
    )
    vote_rate_limit: int = Field(
        default=50, description="Vote entries a user may generate per window"
    )
    vote_rate_window_seconds: int = Field(
        default=3600, description="Window for the vote rate limit"
    )

    # Monthly active bonus eligibility
    bonus_min_account_age_days: int = Field(
        default=30, description="Minimum account age for the monthly bonus"
    )
    bonus_activity_window_days: int = Field(
        default=30, description="User must have been active within this window"
    )

    model_config = SettingsConfigDict(env_prefix="TRUST_", case_sensitive=False)

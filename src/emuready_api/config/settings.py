"""Application settings for the EmuReady API."""

from pydantic import Field
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from emuready_api.config.auth import AuthSettings
from emuready_api.config.database import DatabaseSettings
from emuready_api.config.redis import RedisSettings
from emuready_api.config.trust import TrustSettings


class AppSettings(BaseSettings):
    """Main application settings."""

    # App info
    app_name: str = Field(default="EmuReady API", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")  # nosec B104
    port: int = Field(default=8000, description="Server port")

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "https://emuready.com"],
        description="Allowed CORS origins",
    )

    # Component settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    trust: TrustSettings = Field(default_factory=TrustSettings)

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )


# Global settings instance
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Get application settings (singleton pattern)."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = AppSettings()
    return _settings


def get_trust_settings() -> TrustSettings:
    """Get trust system settings."""
    return get_settings().trust

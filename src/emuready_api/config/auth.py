"""Access token verification settings for the EmuReady API.

Tokens are issued by the identity provider; this service only verifies them.
"""

from pydantic import Field
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class AuthSettings(BaseSettings):
    """Authentication configuration settings."""

    # JWT verification
    jwt_secret_key: str = Field(default="", description="JWT verification key")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_issuer: str = Field(default="emuready-auth", description="JWT issuer")
    jwt_audience: str = Field(default="emuready.com", description="JWT audience")
    jwt_leeway: int = Field(
        default=10, description="Clock skew tolerance in seconds"
    )

    # Where the access token is read from
    access_cookie_name: str = Field(
        default="emuready_at", description="Access token cookie name"
    )
    allow_bearer_header: bool = Field(
        default=True, description="Accept Authorization: Bearer tokens"
    )

    model_config = SettingsConfigDict(env_prefix="AUTH_", case_sensitive=False)


def get_auth_settings() -> AuthSettings:
    """Get authentication settings instance."""
    from emuready_api.config.settings import get_settings

    return get_settings().auth

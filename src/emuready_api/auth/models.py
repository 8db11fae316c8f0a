"""Authentication models for the EmuReady API."""

from uuid import UUID

from pydantic import BaseModel
from pydantic import Field


class TokenClaims(BaseModel):
    """Claims of an access token issued by the identity provider.

    Only ``sub`` is trusted for identity; the actor's role is always read
    from the user store.
    """

    sub: UUID = Field(description="User UUID")
    iss: str = Field(description="Token issuer")
    aud: str = Field(description="Token audience")
    iat: int = Field(description="Issued at timestamp")
    exp: int = Field(description="Expiration timestamp")
    nbf: int | None = Field(default=None, description="Not before timestamp")
    sid: str | None = Field(default=None, description="Session ID")

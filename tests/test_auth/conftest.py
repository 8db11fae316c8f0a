"""Test fixtures for authentication tests."""

from datetime import UTC
from datetime import datetime
from datetime import timedelta
from uuid import UUID

import jwt
import pytest

from emuready_api.auth.jwt_service import JWTService
from emuready_api.config.auth import AuthSettings


@pytest.fixture
def auth_settings() -> AuthSettings:
    """Auth settings with a known verification key."""
    return AuthSettings(
        jwt_secret_key="test-secret-key-that-is-long-enough-for-hs256",
        jwt_algorithm="HS256",
        jwt_issuer="emuready-auth",
        jwt_audience="emuready.com",
        jwt_leeway=0,
    )


@pytest.fixture
def jwt_service(auth_settings) -> JWTService:
    """JWT service bound to the test settings."""
    return JWTService(auth_settings)


@pytest.fixture
def make_token(auth_settings):
    """Mint access tokens the way the identity provider does."""

    def _make_token(
        sub: UUID | str,
        /,
        expires_in: timedelta = timedelta(minutes=15),
        **claim_overrides,
    ) -> str:
        now = datetime.now(UTC)
        claims = {
            "sub": str(sub),
            "iss": auth_settings.jwt_issuer,
            "aud": auth_settings.jwt_audience,
            "iat": int(now.timestamp()),
            "exp": int((now + expires_in).timestamp()),
        }
        claims.update(claim_overrides)
        claims = {key: value for key, value in claims.items() if value is not None}
        return jwt.encode(
            claims, auth_settings.jwt_secret_key, algorithm=auth_settings.jwt_algorithm
        )

    return _make_token

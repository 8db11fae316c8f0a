"""Access token verification for the EmuReady API."""

import logging

import jwt

from jwt import DecodeError
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError
from pydantic import ValidationError

from emuready_api.auth.models import TokenClaims
from emuready_api.config.auth import AuthSettings
from emuready_api.config.auth import get_auth_settings

logger = logging.getLogger(__name__)


class JWTService:
    """Verifies access tokens minted by the identity provider."""

    def __init__(self, settings: AuthSettings | None = None):
        self._settings = settings or get_auth_settings()

    def decode_token(self, token: str) -> TokenClaims | None:
        """Decode and validate a JWT, returning None when it is unusable."""
        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret_key,
                algorithms=[self._settings.jwt_algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                leeway=self._settings.jwt_leeway,
                options={"require": ["sub", "exp", "iat"]},
            )
            return TokenClaims(**claims)
        except ExpiredSignatureError:
            logger.info("Rejected expired access token")
            return None
        except (DecodeError, InvalidTokenError, ValidationError) as e:
            logger.warning(f"Rejected invalid access token: {e}")
            return None


def get_jwt_service() -> JWTService:
    """Get JWT service instance."""
    return JWTService()

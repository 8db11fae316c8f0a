"""Authentication dependencies for FastAPI endpoints."""

import logging

from collections.abc import Awaitable
from collections.abc import Callable
from typing import Annotated

from fastapi import Depends
from fastapi import HTTPException
from fastapi import Request
from fastapi import status

from emuready_api.auth.jwt_service import JWTService
from emuready_api.auth.jwt_service import get_jwt_service
from emuready_api.config.auth import get_auth_settings
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.user import User
from emuready_api.database.repositories.ban import BanRepository
from emuready_api.database.repositories.ban import get_ban_repository
from emuready_api.database.repositories.user import UserRepository
from emuready_api.database.repositories.user import get_user_repository
from emuready_api.services.errors import ForbiddenError
from emuready_api.services.permission_service import PermissionService
from emuready_api.services.permission_service import get_permission_service

logger = logging.getLogger(__name__)


def extract_access_token(request: Request) -> str | None:
    """Read the access token from its cookie or a bearer header."""
    settings = get_auth_settings()

    access_token = request.cookies.get(settings.access_cookie_name)
    if access_token:
        return access_token

    if settings.allow_bearer_header:
        scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()

    return None


async def get_current_user(
    request: Request,
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    user_repository: Annotated[UserRepository, Depends(get_user_repository)],
    ban_repository: Annotated[BanRepository, Depends(get_ban_repository)],
) -> User:
    """Get the current authenticated, non-banned user from the request."""
    access_token = extract_access_token(request)
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required"
        )

    claims = jwt_service.decode_token(access_token)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )

    user = await user_repository.get_by_pk(claims.sub)
    if not user:
        logger.warning(f"Token subject not found in database: {claims.sub}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found"
        )

    # Expiry is evaluated here, at read time; nothing clears expired bans.
    ban = await ban_repository.get_active_ban_for_user(user.pk)
    if ban is not None:
        logger.warning(f"Banned user {user.pk} rejected (ban {ban.pk})")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="User account is banned"
        )

    await user_repository.touch_last_active(user.pk)
    return user


# Create dependency instance to avoid function calls in defaults
get_current_user_dependency = Depends(get_current_user)


def require_permission(
    permission_key: PermissionKey,
) -> Callable[..., Awaitable[User]]:
    """Dependency factory to require a permission, by role or explicit grant."""

    async def permission_dependency(
        current_user: Annotated[User, Depends(get_current_user)],
        permission_service: Annotated[
            PermissionService, Depends(get_permission_service)
        ],
    ) -> User:
        """Check if user holds the permission."""
        try:
            await permission_service.require_permission(current_user, permission_key)
        except ForbiddenError as e:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail=str(e)
            ) from e
        return current_user

    return permission_dependency

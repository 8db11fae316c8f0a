"""Permission and role administration API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import status

from emuready_api.auth.dependencies import get_current_user
from emuready_api.auth.permissions import PERMISSION_REGISTRY
from emuready_api.database.models.permission import PermissionCheckResponse
from emuready_api.database.models.permission import PermissionDefinition
from emuready_api.database.models.permission import PermissionGrant
from emuready_api.database.models.permission import PermissionGrantCreate
from emuready_api.database.models.permission import UserPermissions
from emuready_api.database.models.user import User
from emuready_api.database.models.user import UserRoleUpdate
from emuready_api.database.models.user import UserSummary
from emuready_api.services.errors import ModerationError
from emuready_api.services.permission_service import PermissionService
from emuready_api.services.permission_service import get_permission_service

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("/")
async def list_permissions(
    current_user: Annotated[User, Depends(get_current_user)],
) -> list[PermissionDefinition]:
    """The static permission registry."""
    return list(PERMISSION_REGISTRY.values())


@router.get("/me")
async def get_my_permissions(
    current_user: Annotated[User, Depends(get_current_user)],
    permission_service: Annotated[PermissionService, Depends(get_permission_service)],
) -> UserPermissions:
    """Effective permissions of the current user."""
    return await permission_service.get_user_permissions(current_user)


@router.get("/check/{permission_key}")
async def check_permission(
    permission_key: str,
    current_user: Annotated[User, Depends(get_current_user)],
    permission_service: Annotated[PermissionService, Depends(get_permission_service)],
) -> PermissionCheckResponse:
    """Whether the current user holds a permission."""
    allowed = await permission_service.has_permission(current_user, permission_key)
    return PermissionCheckResponse(
        user_pk=current_user.pk, permission_key=permission_key, allowed=allowed
    )


@router.post("/users/{user_pk}/grants", status_code=status.HTTP_201_CREATED)
async def grant_permission(
    user_pk: UUID,
    grant: PermissionGrantCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    permission_service: Annotated[PermissionService, Depends(get_permission_service)],
) -> PermissionGrant:
    """Explicitly grant a permission (requires manage_permissions)."""
    try:
        return await permission_service.grant_permission(
            current_user, user_pk, grant.permission_key
        )
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.delete("/users/{user_pk}/grants/{permission_key}")
async def revoke_permission(
    user_pk: UUID,
    permission_key: str,
    current_user: Annotated[User, Depends(get_current_user)],
    permission_service: Annotated[PermissionService, Depends(get_permission_service)],
) -> PermissionGrant:
    """Revoke an explicit grant (requires manage_permissions)."""
    try:
        return await permission_service.revoke_permission(
            current_user, user_pk, permission_key
        )
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.put("/users/{user_pk}/role")
async def change_user_role(
    user_pk: UUID,
    role_update: UserRoleUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    permission_service: Annotated[PermissionService, Depends(get_permission_service)],
) -> UserSummary:
    """Change a user's role (requires change_user_roles and a higher role)."""
    try:
        user = await permission_service.change_role(
            current_user, user_pk, role_update.role
        )
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

    return UserSummary.model_validate(user)

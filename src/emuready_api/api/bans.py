"""Ban registry API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import status

from emuready_api.auth.dependencies import get_current_user
from emuready_api.auth.dependencies import require_permission
from emuready_api.database.models.ban import Ban
from emuready_api.database.models.ban import BanArchive
from emuready_api.database.models.ban import BanCheckResponse
from emuready_api.database.models.ban import BanCreate
from emuready_api.database.models.ban import BanLift
from emuready_api.database.models.ban import BanStats
from emuready_api.database.models.ban import BanUpdate
from emuready_api.database.models.ban import EffectiveBanState
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.user import User
from emuready_api.services.ban_service import BanService
from emuready_api.services.ban_service import get_ban_service
from emuready_api.services.errors import ModerationError

router = APIRouter(prefix="/bans", tags=["bans"])

require_view_bans = require_permission(PermissionKey.VIEW_USER_BANS)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_ban(
    ban_data: BanCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
) -> Ban:
    """Ban a user (requires manage_user_bans and a higher role)."""
    try:
        return await ban_service.create_ban(current_user, ban_data)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.get("/")
async def list_bans(
    current_user: Annotated[User, Depends(require_view_bans)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
    state: Annotated[EffectiveBanState | None, Query()] = None,
    limit: Annotated[int, Query(le=100, ge=1)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[Ban]:
    """List bans, optionally by read-time state."""
    return await ban_service.list_bans(state, limit=limit, offset=offset)


@router.get("/stats")
async def get_ban_stats(
    current_user: Annotated[User, Depends(require_view_bans)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
) -> BanStats:
    """Counts across the ban registry."""
    return await ban_service.get_stats()


@router.get("/users/{user_pk}/status")
async def check_user_ban_status(
    user_pk: UUID,
    current_user: Annotated[User, Depends(require_view_bans)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
) -> BanCheckResponse:
    """Whether a user is banned right now."""
    return await ban_service.check_status(user_pk)


@router.get("/users/{user_pk}")
async def get_user_bans(
    user_pk: UUID,
    current_user: Annotated[User, Depends(require_view_bans)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
    limit: Annotated[int, Query(le=100, ge=1)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[Ban]:
    """Ban history of a user."""
    return await ban_service.get_user_bans(user_pk, limit=limit, offset=offset)


@router.get("/{ban_pk}")
async def get_ban(
    ban_pk: UUID,
    current_user: Annotated[User, Depends(require_view_bans)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
) -> Ban:
    """Get a specific ban."""
    try:
        return await ban_service.get_ban(ban_pk)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.patch("/{ban_pk}")
async def update_ban(
    ban_pk: UUID,
    update: BanUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
) -> Ban:
    """Edit reason, notes or expiry. Use lift or archive to end a ban."""
    try:
        return await ban_service.update_ban(current_user, ban_pk, update)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/{ban_pk}/lift")
async def lift_ban(
    ban_pk: UUID,
    lift: BanLift,
    current_user: Annotated[User, Depends(get_current_user)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
) -> Ban:
    """Lift an active ban."""
    try:
        return await ban_service.lift_ban(current_user, ban_pk, lift)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/{ban_pk}/archive")
async def archive_ban(
    ban_pk: UUID,
    archive: BanArchive,
    current_user: Annotated[User, Depends(get_current_user)],
    ban_service: Annotated[BanService, Depends(get_ban_service)],
) -> Ban:
    """Archive a ban (super admins only). The record is kept."""
    try:
        return await ban_service.archive_ban(current_user, ban_pk, archive)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

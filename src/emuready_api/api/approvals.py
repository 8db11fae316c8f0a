"""Content approval API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query

from emuready_api.auth.dependencies import get_current_user
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.content import ApprovalDecision
from emuready_api.database.models.content import ModeratedContent
from emuready_api.database.models.content import StatusOverride
from emuready_api.database.models.user import User
from emuready_api.services.content_moderation_service import APPROVAL_PERMISSIONS
from emuready_api.services.content_moderation_service import (
    ContentModerationService,
)
from emuready_api.services.content_moderation_service import (
    get_content_moderation_service,
)
from emuready_api.services.errors import ModerationError
from emuready_api.services.permission_service import PermissionService
from emuready_api.services.permission_service import get_permission_service

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("/{content_type}/pending")
async def get_pending_content(
    content_type: ContentType,
    current_user: Annotated[User, Depends(get_current_user)],
    moderation_service: Annotated[
        ContentModerationService, Depends(get_content_moderation_service)
    ],
    permission_service: Annotated[PermissionService, Depends(get_permission_service)],
    limit: Annotated[int, Query(le=100, ge=1)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[ModeratedContent]:
    """Content awaiting approval, oldest first."""
    try:
        await permission_service.require_permission(
            current_user, APPROVAL_PERMISSIONS[content_type]
        )
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

    return await moderation_service.get_pending(content_type, limit=limit, offset=offset)


@router.post("/{content_type}/{content_pk}/approve")
async def approve_content(
    content_type: ContentType,
    content_pk: UUID,
    decision: ApprovalDecision,
    current_user: Annotated[User, Depends(get_current_user)],
    moderation_service: Annotated[
        ContentModerationService, Depends(get_content_moderation_service)
    ],
) -> ModeratedContent:
    """Approve pending content.

    Content by a currently banned author is rejected instead; check the
    returned status.
    """
    try:
        return await moderation_service.approve(
            current_user, content_type, content_pk, decision
        )
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/{content_type}/{content_pk}/reject")
async def reject_content(
    content_type: ContentType,
    content_pk: UUID,
    decision: ApprovalDecision,
    current_user: Annotated[User, Depends(get_current_user)],
    moderation_service: Annotated[
        ContentModerationService, Depends(get_content_moderation_service)
    ],
) -> ModeratedContent:
    """Reject pending content."""
    try:
        return await moderation_service.reject(
            current_user, content_type, content_pk, decision
        )
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/{content_type}/{content_pk}/override")
async def override_content_status(
    content_type: ContentType,
    content_pk: UUID,
    override: StatusOverride,
    current_user: Annotated[User, Depends(get_current_user)],
    moderation_service: Annotated[
        ContentModerationService, Depends(get_content_moderation_service)
    ],
) -> ModeratedContent:
    """Force a status change (requires override_approval_status)."""
    try:
        return await moderation_service.override_status(
            current_user, content_type, content_pk, override
        )
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

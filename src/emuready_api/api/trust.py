"""Trust ledger API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import status

from emuready_api.auth.dependencies import get_current_user
from emuready_api.auth.dependencies import require_permission
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.trust import TRUST_ACTION_WEIGHTS
from emuready_api.database.models.trust import TRUST_LEVEL_THRESHOLDS
from emuready_api.database.models.trust import TrustAction
from emuready_api.database.models.trust import TrustActionDefinition
from emuready_api.database.models.trust import TrustActionRate
from emuready_api.database.models.trust import TrustActionStats
from emuready_api.database.models.trust import TrustAdjustmentRequest
from emuready_api.database.models.trust import TrustAutoApproval
from emuready_api.database.models.trust import TrustLedgerEntry
from emuready_api.database.models.trust import TrustLevel
from emuready_api.database.models.trust import TrustLevelDefinition
from emuready_api.database.models.trust import TrustProfile
from emuready_api.database.models.trust import TrustReversalRequest
from emuready_api.database.models.user import User
from emuready_api.services.errors import ModerationError
from emuready_api.services.trust_service import TrustService
from emuready_api.services.trust_service import get_trust_service

router = APIRouter(prefix="/trust", tags=["trust"])

require_view_trust_logs = require_permission(PermissionKey.VIEW_TRUST_LOGS)
require_manage_trust_system = require_permission(PermissionKey.MANAGE_TRUST_SYSTEM)


@router.get("/actions")
async def get_trust_actions() -> list[TrustActionDefinition]:
    """Every ledger action and its fixed weight.

    Manual adjustments have no fixed weight.
    """
    return [
        TrustActionDefinition(action=action, weight=TRUST_ACTION_WEIGHTS.get(action))
        for action in TrustAction
    ]


@router.get("/levels")
async def get_trust_levels() -> list[TrustLevelDefinition]:
    """Trust levels and the minimum score of each."""
    thresholds = dict(TRUST_LEVEL_THRESHOLDS)
    return [
        TrustLevelDefinition(level=level, minimum_score=thresholds.get(level))
        for level in TrustLevel
    ]


@router.get("/me")
async def get_my_trust_profile(
    current_user: Annotated[User, Depends(get_current_user)],
    trust_service: Annotated[TrustService, Depends(get_trust_service)],
) -> TrustProfile:
    """Trust profile of the current user."""
    return await trust_service.get_profile(current_user.pk)


@router.get("/me/rate-limit")
async def get_my_action_rate(
    action: Annotated[TrustAction, Query()],
    current_user: Annotated[User, Depends(get_current_user)],
    trust_service: Annotated[TrustService, Depends(get_trust_service)],
) -> TrustActionRate:
    """Whether the current user may log another entry for ``action`` now."""
    allowed = await trust_service.check_action_rate(current_user.pk, action)
    return TrustActionRate(user_pk=current_user.pk, action=action, allowed=allowed)


@router.get("/stats")
async def get_trust_stats(
    current_user: Annotated[User, Depends(require_view_trust_logs)],
    trust_service: Annotated[TrustService, Depends(get_trust_service)],
    user_pk: Annotated[UUID | None, Query()] = None,
) -> TrustActionStats:
    """Ledger totals per action, system wide or for one user."""
    return await trust_service.get_action_stats(user_pk)


@router.get("/users/{user_pk}")
async def get_user_trust_profile(
    user_pk: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    trust_service: Annotated[TrustService, Depends(get_trust_service)],
) -> TrustProfile:
    """Trust profile of any user."""
    return await trust_service.get_profile(user_pk)


@router.get("/users/{user_pk}/ledger")
async def get_user_trust_ledger(
    user_pk: UUID,
    current_user: Annotated[User, Depends(require_view_trust_logs)],
    trust_service: Annotated[TrustService, Depends(get_trust_service)],
    limit: Annotated[int, Query(le=100, ge=1)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[TrustLedgerEntry]:
    """Raw ledger entries of a user, newest first."""
    return await trust_service.get_ledger(user_pk, limit=limit, offset=offset)


@router.get("/users/{user_pk}/auto-approval")
async def get_user_auto_approval(
    user_pk: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    trust_service: Annotated[TrustService, Depends(get_trust_service)],
) -> TrustAutoApproval:
    """Whether a user's submissions skip manual approval."""
    return TrustAutoApproval(
        user_pk=user_pk,
        can_auto_approve=await trust_service.can_auto_approve(user_pk),
    )


@router.post("/users/{user_pk}/adjust", status_code=status.HTTP_201_CREATED)
async def adjust_user_trust(
    user_pk: UUID,
    request: TrustAdjustmentRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    trust_service: Annotated[TrustService, Depends(get_trust_service)],
) -> TrustLedgerEntry:
    """Manually adjust a user's trust score (requires manage_trust_system)."""
    try:
        return await trust_service.adjust_manually(current_user, user_pk, request)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/users/{user_pk}/reverse", status_code=status.HTTP_201_CREATED)
async def reverse_user_trust_action(
    user_pk: UUID,
    request: TrustReversalRequest,
    current_user: Annotated[User, Depends(require_manage_trust_system)],
    trust_service: Annotated[TrustService, Depends(get_trust_service)],
) -> TrustLedgerEntry:
    """Cancel one earlier ledger action with a compensating entry."""
    try:
        return await trust_service.reverse_action(
            user_pk,
            request.action,
            target_user_pk=current_user.pk,
            metadata={"reason": request.reason, "reversed_by": str(current_user.pk)},
        )
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

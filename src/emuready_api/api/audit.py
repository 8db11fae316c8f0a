"""Audit log API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query

from emuready_api.auth.dependencies import require_permission
from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditEntityType
from emuready_api.database.models.audit import AuditLogEntry
from emuready_api.database.models.audit import AuditLogFilters
from emuready_api.database.models.audit import AuditLogResponse
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.user import User
from emuready_api.services.audit_service import AuditService
from emuready_api.services.audit_service import get_audit_service

router = APIRouter(prefix="/audit", tags=["audit"])

require_view_logs = require_permission(PermissionKey.VIEW_LOGS)


@router.get("/")
async def list_audit_entries(
    current_user: Annotated[User, Depends(require_view_logs)],
    audit_service: Annotated[AuditService, Depends(get_audit_service)],
    actor_pk: Annotated[UUID | None, Query()] = None,
    target_user_pk: Annotated[UUID | None, Query()] = None,
    action: Annotated[AuditAction | None, Query()] = None,
    entity_type: Annotated[AuditEntityType | None, Query()] = None,
    limit: Annotated[int, Query(le=100, ge=1)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> AuditLogResponse:
    """Audit entries, newest first."""
    filters = AuditLogFilters(
        actor_pk=actor_pk,
        target_user_pk=target_user_pk,
        action=action,
        entity_type=entity_type,
    )
    return await audit_service.list_entries(filters, limit=limit, offset=offset)


@router.get("/{entity_type}/{entity_pk}")
async def get_entity_history(
    entity_type: AuditEntityType,
    entity_pk: UUID,
    current_user: Annotated[User, Depends(require_view_logs)],
    audit_service: Annotated[AuditService, Depends(get_audit_service)],
) -> list[AuditLogEntry]:
    """Every audit entry recorded for one entity."""
    return await audit_service.get_entity_history(entity_type, entity_pk)

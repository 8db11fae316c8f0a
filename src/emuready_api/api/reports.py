"""Content report API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query
from fastapi import status

from emuready_api.auth.dependencies import get_current_user
from emuready_api.auth.dependencies import require_permission
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.report import Report
from emuready_api.database.models.report import ReportCreate
from emuready_api.database.models.report import ReportResolution
from emuready_api.database.models.report import ReportResolve
from emuready_api.database.models.report import ReportStats
from emuready_api.database.models.report import ReportStatus
from emuready_api.database.models.report import UserReportStats
from emuready_api.database.models.user import User
from emuready_api.services.errors import ModerationError
from emuready_api.services.report_service import ReportService
from emuready_api.services.report_service import get_report_service

router = APIRouter(prefix="/reports", tags=["reports"])

require_manage_reports = require_permission(PermissionKey.MANAGE_REPORTS)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_report(
    report_data: ReportCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    report_service: Annotated[ReportService, Depends(get_report_service)],
) -> Report:
    """Report a listing, game or PC listing."""
    try:
        return await report_service.create_report(current_user, report_data)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.get("/")
async def list_reports(
    current_user: Annotated[User, Depends(require_manage_reports)],
    report_service: Annotated[ReportService, Depends(get_report_service)],
    report_status: Annotated[ReportStatus | None, Query(alias="status")] = None,
    content_type: Annotated[ContentType | None, Query()] = None,
    limit: Annotated[int, Query(le=100, ge=1)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[Report]:
    """List reports (moderators and above)."""
    return await report_service.list_reports(
        report_status, content_type, limit=limit, offset=offset
    )


@router.get("/stats")
async def get_report_stats(
    current_user: Annotated[User, Depends(require_manage_reports)],
    report_service: Annotated[ReportService, Depends(get_report_service)],
) -> ReportStats:
    """Counts per report status."""
    return await report_service.get_stats()


@router.get("/users/{user_pk}/stats")
async def get_user_report_stats(
    user_pk: UUID,
    current_user: Annotated[User, Depends(require_manage_reports)],
    report_service: Annotated[ReportService, Depends(get_report_service)],
) -> UserReportStats:
    """Reports filed against a user's content."""
    return await report_service.get_user_report_stats(user_pk)


@router.get("/{report_pk}")
async def get_report(
    report_pk: UUID,
    current_user: Annotated[User, Depends(require_manage_reports)],
    report_service: Annotated[ReportService, Depends(get_report_service)],
) -> Report:
    """Get a specific report."""
    try:
        return await report_service.get_report(report_pk)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/{report_pk}/review")
async def mark_under_review(
    report_pk: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    report_service: Annotated[ReportService, Depends(get_report_service)],
) -> Report:
    """Claim a pending report for review."""
    try:
        return await report_service.mark_under_review(current_user, report_pk)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/{report_pk}/resolve")
async def resolve_report(
    report_pk: UUID,
    resolve: ReportResolve,
    current_user: Annotated[User, Depends(get_current_user)],
    report_service: Annotated[ReportService, Depends(get_report_service)],
) -> ReportResolution:
    """Resolve or dismiss a report."""
    try:
        return await report_service.resolve_report(current_user, report_pk, resolve)
    except ModerationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

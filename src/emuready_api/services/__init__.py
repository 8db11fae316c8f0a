"""Service layer for the EmuReady API."""

from emuready_api.services.audit_service import AuditService
from emuready_api.services.ban_service import BanService
from emuready_api.services.content_moderation_service import (
    ContentModerationService,
)
from emuready_api.services.notification_service import NotificationService
from emuready_api.services.permission_service import PermissionService
from emuready_api.services.report_service import ReportService
from emuready_api.services.trust_service import TrustService

__all__ = [
    "AuditService",
    "BanService",
    "ContentModerationService",
    "NotificationService",
    "PermissionService",
    "ReportService",
    "TrustService",
]

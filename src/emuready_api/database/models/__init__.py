"""Database models for the EmuReady API."""

from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditEntityType
from emuready_api.database.models.audit import AuditLogEntry
from emuready_api.database.models.audit import AuditLogEntryCreate
from emuready_api.database.models.ban import Ban
from emuready_api.database.models.ban import BanCreate
from emuready_api.database.models.ban import BanState
from emuready_api.database.models.ban import BanUpdate
from emuready_api.database.models.ban import EffectiveBanState
from emuready_api.database.models.base import ApprovalStatus
from emuready_api.database.models.base import BaseDBModel
from emuready_api.database.models.base import ContentType
from emuready_api.database.models.base import UserRole
from emuready_api.database.models.content import ModeratedContent
from emuready_api.database.models.notification import Notification
from emuready_api.database.models.notification import NotificationCreate
from emuready_api.database.models.notification import NotificationType
from emuready_api.database.models.permission import PermissionCategory
from emuready_api.database.models.permission import PermissionDefinition
from emuready_api.database.models.permission import PermissionGrant
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.report import Report
from emuready_api.database.models.report import ReportCreate
from emuready_api.database.models.report import ReportOutcome
from emuready_api.database.models.report import ReportReason
from emuready_api.database.models.report import ReportStatus
from emuready_api.database.models.trust import TrustAction
from emuready_api.database.models.trust import TrustLedgerEntry
from emuready_api.database.models.trust import TrustLevel
from emuready_api.database.models.user import User

__all__ = [
    "ApprovalStatus",
    "AuditAction",
    "AuditEntityType",
    "AuditLogEntry",
    "AuditLogEntryCreate",
    "Ban",
    "BanCreate",
    "BanState",
    "BanUpdate",
    "BaseDBModel",
    "ContentType",
    "EffectiveBanState",
    "ModeratedContent",
    "Notification",
    "NotificationCreate",
    "NotificationType",
    "PermissionCategory",
    "PermissionDefinition",
    "PermissionGrant",
    "PermissionKey",
    "Report",
    "ReportCreate",
    "ReportOutcome",
    "ReportReason",
    "ReportStatus",
    "TrustAction",
    "TrustLedgerEntry",
    "TrustLevel",
    "User",
    "UserRole",
]

"""Database repositories for the EmuReady API."""

from emuready_api.database.repositories.audit_log import AuditLogRepository
from emuready_api.database.repositories.ban import BanRepository
from emuready_api.database.repositories.base import BaseRepository
from emuready_api.database.repositories.content import ContentRepository
from emuready_api.database.repositories.notification import NotificationRepository
from emuready_api.database.repositories.permission_grant import (
    PermissionGrantRepository,
)
from emuready_api.database.repositories.report import ReportRepository
from emuready_api.database.repositories.trust_ledger import TrustLedgerRepository
from emuready_api.database.repositories.user import UserRepository

__all__ = [
    "AuditLogRepository",
    "BanRepository",
    "BaseRepository",
    "ContentRepository",
    "NotificationRepository",
    "PermissionGrantRepository",
    "ReportRepository",
    "TrustLedgerRepository",
    "UserRepository",
]

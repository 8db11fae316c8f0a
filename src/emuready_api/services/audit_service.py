"""Audit trail service for the EmuReady API."""

import logging

from typing import Any
from uuid import UUID

from asyncpg import Connection
from pydantic import BaseModel
from pydantic import TypeAdapter

from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditEntityType
from emuready_api.database.models.audit import AuditLogEntry
from emuready_api.database.models.audit import AuditLogEntryCreate
from emuready_api.database.models.audit import AuditLogFilters
from emuready_api.database.models.audit import AuditLogResponse
from emuready_api.database.repositories.audit_log import AuditLogRepository
from emuready_api.database.repositories.audit_log import get_audit_log_repository

logger = logging.getLogger(__name__)

# Bookkeeping columns left out of diffs.
IGNORED_DIFF_FIELDS = frozenset({"updated_at"})

_DICT_ADAPTER = TypeAdapter(dict[str, Any])


def _snapshot(value: BaseModel | dict[str, Any] | None) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return _DICT_ADAPTER.dump_python(value, mode="json")


def compute_diff(
    before: BaseModel | dict[str, Any] | None,
    after: BaseModel | dict[str, Any] | None,
) -> dict[str, dict[str, Any]]:
    """Changed fields only, as ``{field: {"before": x, "after": y}}``."""
    old = _snapshot(before)
    new = _snapshot(after)

    changes = {}
    for field in sorted(old.keys() | new.keys()):
        if field in IGNORED_DIFF_FIELDS:
            continue
        if old.get(field) != new.get(field):
            changes[field] = {"before": old.get(field), "after": new.get(field)}
    return changes


class AuditService:
    """Writes audit entries inside the caller's transaction and reads them back."""

    def __init__(self, audit_log_repository: AuditLogRepository):
        self.audit_log_repository = audit_log_repository

    async def record(
        self,
        *,
        actor_pk: UUID,
        action: AuditAction,
        entity_type: AuditEntityType | str,
        entity_pk: UUID,
        connection: Connection,
        target_user_pk: UUID | None = None,
        before: BaseModel | dict[str, Any] | None = None,
        after: BaseModel | dict[str, Any] | None = None,
        context: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        """Append an audit entry.

        A failure here propagates so the surrounding transaction rolls back;
        an action that cannot be audited does not happen.
        """
        metadata: dict[str, Any] = {"changes": compute_diff(before, after)}
        if context:
            metadata["context"] = context

        entry = await self.audit_log_repository.create_entry(
            AuditLogEntryCreate(
                actor_pk=actor_pk,
                action=action,
                entity_type=AuditEntityType(entity_type),
                entity_pk=entity_pk,
                target_user_pk=target_user_pk,
                metadata=metadata,
            ),
            connection=connection,
        )
        logger.info(
            f"Audit {entry.action} on {entry.entity_type} {entity_pk} by {actor_pk}"
        )
        return entry

    async def list_entries(
        self,
        filters: AuditLogFilters,
        limit: int = 50,
        offset: int = 0,
    ) -> AuditLogResponse:
        """Paginated audit log listing."""
        entries = await self.audit_log_repository.list_entries(filters, limit, offset)
        total_count = await self.audit_log_repository.count_entries(filters)
        return AuditLogResponse(
            entries=entries, total_count=total_count, limit=limit, offset=offset
        )

    async def get_entity_history(
        self, entity_type: AuditEntityType | str, entity_pk: UUID
    ) -> list[AuditLogEntry]:
        """All audit entries for one entity."""
        return await self.audit_log_repository.get_entity_history(
            AuditEntityType(entity_type).value, entity_pk
        )


def get_audit_service() -> AuditService:
    """Get audit service instance."""
    return AuditService(audit_log_repository=get_audit_log_repository())

"""Audit trail recorded through structlog."""

from typing import Any

from sitedeploy.models.deployment import AuditEntry
from sitedeploy.models.enums import AuditEventType
from sitedeploy.utils.logging import get_logger


class StructlogAuditService:
    """Audit service that emits one structured event per entry.

    Entries are also kept in memory so the trail can be attached to the
    deployment record.
    """

    def __init__(self):
        self._entries: list[AuditEntry] = []
        self.logger = get_logger("audit")

    async def log_event(
        self,
        event_type: AuditEventType,
        user_id: str,
        action: str,
        resource_id: str,
        data: dict[str, Any] | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            event_type=event_type,
            user_id=user_id,
            action=action,
            resource_id=resource_id,
            data=data or {},
        )
        self._entries.append(entry)
        self.logger.info(
            f"audit.{event_type.value}",
            user_id=user_id,
            action=action,
            resource_id=resource_id,
            data=entry.data,
        )
        return entry

    async def get_audit_trail(self, resource_id: str) -> list[AuditEntry]:
        return [e for e in self._entries if e.resource_id == resource_id]

"""Operator log kept per deployment and mirrored to structlog."""

import traceback
from collections import defaultdict
from uuid import UUID

from sitedeploy.models.deployment import DeploymentLogEntry
from sitedeploy.models.enums import LogLevel
from sitedeploy.utils.logging import get_logger

_STRUCTLOG_METHOD = {
    LogLevel.TRACE: "debug",
    LogLevel.DEBUG: "debug",
    LogLevel.INFORMATION: "info",
    LogLevel.WARNING: "warning",
    LogLevel.ERROR: "error",
    LogLevel.CRITICAL: "critical",
}


class StructlogDeploymentLogger:
    """Keeps ordered log entries per deployment in memory."""

    def __init__(self):
        self._entries: dict[UUID, list[DeploymentLogEntry]] = defaultdict(list)
        self.logger = get_logger("deployment")

    def log(
        self,
        deployment_id: UUID,
        level: LogLevel,
        message: str,
        error: BaseException | None = None,
    ) -> DeploymentLogEntry:
        entry = DeploymentLogEntry(
            deployment_id=deployment_id,
            level=level,
            message=message,
            error=str(error) if error else None,
            traceback=(
                "".join(traceback.format_exception(type(error), error, error.__traceback__))
                if error
                else None
            ),
        )
        self._entries[deployment_id].append(entry)

        emit = getattr(self.logger, _STRUCTLOG_METHOD[level])
        emit(
            "deployment.log",
            deployment_id=str(deployment_id),
            message=message,
            error=entry.error,
        )
        return entry

    def get_logs(self, deployment_id: UUID) -> list[DeploymentLogEntry]:
        return list(self._entries.get(deployment_id, []))

"""Interfaces of the services the orchestrator calls out to.

Only the shapes are fixed here. Implementations live in this package
(defaults) or are supplied by the embedding application.
"""

from typing import Any, Protocol
from uuid import UUID

from sitedeploy.models.deployment import (
    AuditEntry,
    DatabaseConfiguration,
    Deployment,
    DeploymentLogEntry,
)
from sitedeploy.models.enums import AuditEventType, LogLevel
from sitedeploy.models.hosting import ProgressSink
from sitedeploy.models.results import (
    ApplicationDiscovery,
    BackupResult,
    CertificateResult,
    CloudEnvironmentInfo,
    HealthCheckSummary,
)


class DiscoveryService(Protocol):
    async def discover(self, path: str) -> ApplicationDiscovery: ...


class DatabaseService(Protocol):
    async def exists(self, config: DatabaseConfiguration) -> bool: ...

    async def create(
        self, config: DatabaseConfiguration, progress: ProgressSink | None = None
    ) -> None: ...

    async def backup(self, config: DatabaseConfiguration, backup_path: str) -> BackupResult: ...

    async def restore(self, config: DatabaseConfiguration, backup_path: str) -> None: ...

    async def run_scripts(
        self,
        config: DatabaseConfiguration,
        script_paths: list[str],
        progress: ProgressSink | None = None,
    ) -> None: ...

    async def run_migrations(self, config: DatabaseConfiguration, migrations_folder: str) -> None: ...

    async def test_connection(self, config: DatabaseConfiguration) -> bool: ...

    async def update_connection_string(self, config_file: str, connection_string: str) -> None: ...


class CertificateService(Protocol):
    async def generate_self_signed(self, domain_name: str, validity_days: int) -> CertificateResult: ...

    async def request_lets_encrypt(self, domain_name: str, email: str) -> CertificateResult: ...

    async def install_certificate(
        self, certificate_path: str, password: str | None
    ) -> CertificateResult: ...

    async def get_from_key_vault(
        self, key_vault_url: str, certificate_name: str
    ) -> CertificateResult: ...


class HealthCheckService(Protocol):
    async def run_all_checks(self, deployment: Deployment) -> HealthCheckSummary: ...


class CloudService(Protocol):
    async def detect_environment(self) -> CloudEnvironmentInfo: ...


class AuditService(Protocol):
    async def log_event(
        self,
        event_type: AuditEventType,
        user_id: str,
        action: str,
        resource_id: str,
        data: dict[str, Any] | None = None,
    ) -> AuditEntry: ...

    async def get_audit_trail(self, resource_id: str) -> list[AuditEntry]: ...


class DeploymentLogger(Protocol):
    """Per-deployment operator log.

    Synchronous so progress sinks can write to it without awaiting.
    """

    def log(
        self,
        deployment_id: UUID,
        level: LogLevel,
        message: str,
        error: BaseException | None = None,
    ) -> DeploymentLogEntry: ...

    def get_logs(self, deployment_id: UUID) -> list[DeploymentLogEntry]: ...

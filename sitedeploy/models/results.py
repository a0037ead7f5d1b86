"""Result shapes returned by the orchestrator and its collaborators."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from sitedeploy.models.enums import (
    ApplicationType,
    CertificateType,
    CloudProvider,
    DeploymentTarget,
    HealthCheckStatus,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationDiscovery(BaseModel):
    """What the discovery service learned about an application folder."""

    path: str
    detected_type: ApplicationType = ApplicationType.UNKNOWN
    framework_version: str = ""
    config_files: list[str] = Field(default_factory=list)
    recommended_target: DeploymentTarget | None = None
    warnings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class BackupResult(BaseModel):
    success: bool
    backup_path: str = ""
    size_bytes: int = 0
    error_message: str | None = None


class DatabaseDeploymentResult(BaseModel):
    success: bool
    database_name: str = ""
    server_name: str = ""
    scripts_executed: int = 0
    backup_path: str | None = None
    error_message: str | None = None


class CertificateResult(BaseModel):
    success: bool
    thumbprint: str = ""
    certificate_type: CertificateType
    expiry_date: datetime | None = None
    error_message: str | None = None


class HealthCheckResult(BaseModel):
    check_name: str
    status: HealthCheckStatus
    message: str | None = None
    response_time_ms: int = 0
    checked_at: datetime = Field(default_factory=utc_now)
    data: dict[str, Any] = Field(default_factory=dict)


class HealthCheckSummary(BaseModel):
    """Counts over a full health-check run."""

    all_healthy: bool
    total_checks: int = 0
    healthy_count: int = 0
    degraded_count: int = 0
    unhealthy_count: int = 0
    results: list[HealthCheckResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[HealthCheckResult]) -> "HealthCheckSummary":
        """Summarize a list of individual check results."""
        healthy = sum(1 for r in results if r.status == HealthCheckStatus.HEALTHY)
        return cls(
            all_healthy=healthy == len(results),
            total_checks=len(results),
            healthy_count=healthy,
            degraded_count=sum(1 for r in results if r.status == HealthCheckStatus.DEGRADED),
            unhealthy_count=sum(1 for r in results if r.status == HealthCheckStatus.UNHEALTHY),
            results=results,
        )


class CloudEnvironmentInfo(BaseModel):
    provider: CloudProvider = CloudProvider.NONE
    is_cloud: bool = False
    vm_name: str | None = None
    region: str | None = None
    instance_id: str | None = None
    public_ip: str | None = None
    private_ip: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

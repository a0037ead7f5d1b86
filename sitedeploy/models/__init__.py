"""Data models for sitedeploy."""

from sitedeploy.models.deployment import (
    AuditEntry,
    CloudConfiguration,
    DatabaseConfiguration,
    Deployment,
    DeploymentLogEntry,
    DeploymentRequest,
    DeploymentResult,
    SslConfiguration,
    build_target_url,
    derive_app_pool_name,
    derive_site_name,
)
from sitedeploy.models.enums import (
    ApplicationType,
    AuditEventType,
    CertificateType,
    CloudProvider,
    DatabaseProvider,
    DeploymentEnvironment,
    DeploymentStatus,
    DeploymentStrategy,
    DeploymentTarget,
    HealthCheckStatus,
    LogLevel,
    PipelineMode,
    RuntimeVersion,
)
from sitedeploy.models.hosting import (
    AppPoolConfiguration,
    ApplicationDeploymentConfig,
    FileSyncReport,
    ProgressInfo,
    ProgressSink,
    SiteBinding,
    SiteStatus,
    StepOutcome,
    StepStatus,
    WebsiteConfiguration,
)
from sitedeploy.models.profile import DeploymentProfile
from sitedeploy.models.results import (
    ApplicationDiscovery,
    BackupResult,
    CertificateResult,
    CloudEnvironmentInfo,
    DatabaseDeploymentResult,
    HealthCheckResult,
    HealthCheckSummary,
)

__all__ = [
    # Deployment models
    "Deployment",
    "DeploymentRequest",
    "DeploymentResult",
    "DeploymentLogEntry",
    "AuditEntry",
    "DatabaseConfiguration",
    "SslConfiguration",
    "CloudConfiguration",
    "DeploymentProfile",
    "build_target_url",
    "derive_app_pool_name",
    "derive_site_name",
    # Enums
    "ApplicationType",
    "AuditEventType",
    "CertificateType",
    "CloudProvider",
    "DatabaseProvider",
    "DeploymentEnvironment",
    "DeploymentStatus",
    "DeploymentStrategy",
    "DeploymentTarget",
    "HealthCheckStatus",
    "LogLevel",
    "PipelineMode",
    "RuntimeVersion",
    # Hosting models
    "AppPoolConfiguration",
    "ApplicationDeploymentConfig",
    "FileSyncReport",
    "ProgressInfo",
    "ProgressSink",
    "SiteBinding",
    "SiteStatus",
    "StepOutcome",
    "StepStatus",
    "WebsiteConfiguration",
    # Results
    "ApplicationDiscovery",
    "BackupResult",
    "CertificateResult",
    "CloudEnvironmentInfo",
    "DatabaseDeploymentResult",
    "HealthCheckResult",
    "HealthCheckSummary",
]

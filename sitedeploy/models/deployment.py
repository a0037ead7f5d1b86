"""Deployment-related data models."""

import re
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

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
    LogLevel,
    PipelineMode,
    RuntimeVersion,
)
from sitedeploy.models.results import (
    CertificateResult,
    DatabaseDeploymentResult,
    HealthCheckResult,
    HealthCheckSummary,
    utc_now,
)

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def derive_site_name(domain_name: str) -> str:
    """Site name for a domain: every non-alphanumeric character becomes '_'."""
    return _NON_ALNUM.sub("_", domain_name)


def derive_app_pool_name(domain_name: str) -> str:
    return f"AppPool_{derive_site_name(domain_name)}"


def build_target_url(domain_name: str, https_port: int) -> str:
    return f"https://{domain_name}:{https_port}"


class DatabaseConfiguration(BaseModel):
    """Database to provision alongside the application."""

    model_config = ConfigDict(frozen=True)

    provider: DatabaseProvider = DatabaseProvider.SQL_SERVER_LOCAL_DB
    server_name: str | None = None
    database_name: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    connection_string: str | None = None

    script_paths: list[str] = Field(default_factory=list)
    migrations_folder: str | None = None

    backup_before_deployment: bool = True
    backup_directory: str | None = None
    backup_path: str | None = None  # set once a backup has been taken

    auto_rollback_on_failure: bool = True


class SslConfiguration(BaseModel):
    """TLS certificate to obtain and bind."""

    model_config = ConfigDict(frozen=True)

    certificate_type: CertificateType = CertificateType.SELF_SIGNED
    enable_hsts: bool = True
    redirect_http_to_https: bool = True

    # Self-signed
    validity_days: int = Field(default=365, gt=0)

    # Let's Encrypt
    lets_encrypt_email: str | None = None

    # Custom certificate file
    certificate_path: str | None = None
    certificate_password: str | None = None

    # Key vault
    key_vault_url: str | None = None
    certificate_name: str | None = None

    # Filled in once the certificate is issued
    thumbprint: str | None = None
    expiry_date: datetime | None = None

    @model_validator(mode="after")
    def _check_type_fields(self) -> "SslConfiguration":
        required = {
            CertificateType.LETS_ENCRYPT: ("lets_encrypt_email",),
            CertificateType.CUSTOM_CERTIFICATE: ("certificate_path",),
            CertificateType.AZURE_KEY_VAULT: ("key_vault_url", "certificate_name"),
        }.get(self.certificate_type, ())
        missing = [name for name in required if not getattr(self, name)]
        if missing:
            raise ValueError(
                f"{self.certificate_type.value} certificates require: {', '.join(missing)}"
            )
        return self


class CloudConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: CloudProvider = CloudProvider.NONE
    region: str | None = None
    vm_name: str | None = None
    public_ip_address: str | None = None


class DeploymentLogEntry(BaseModel):
    """One line of a deployment's operator log."""

    deployment_id: UUID
    level: LogLevel
    message: str
    error: str | None = None
    traceback: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class AuditEntry(BaseModel):
    event_type: AuditEventType
    user_id: str
    action: str
    resource_id: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class Deployment(BaseModel):
    """A deployment attempt and its audit record.

    Instances are frozen. Status changes go through
    ``sitedeploy.core.state.advance`` which returns a new value.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str = ""

    # Application
    application_path: str
    application_type: ApplicationType = ApplicationType.UNKNOWN

    # Target
    target: DeploymentTarget = DeploymentTarget.LOCAL_IIS
    environment: DeploymentEnvironment = DeploymentEnvironment.DEVELOPMENT
    domain_name: str
    http_port: int = 80
    https_port: int = 443
    target_url: str = ""

    # Hosting engine
    site_name: str | None = None
    app_pool_name: str | None = None
    runtime_version: RuntimeVersion = RuntimeVersion.NO_MANAGED_CODE
    pipeline_mode: PipelineMode = PipelineMode.INTEGRATED
    idle_timeout_minutes: int = 20
    always_running: bool = False
    environment_variables: dict[str, str] = Field(default_factory=dict)
    exclude_patterns: list[str] = Field(default_factory=list)

    database: DatabaseConfiguration | None = None
    ssl: SslConfiguration | None = None
    cloud: CloudConfiguration | None = None

    strategy: DeploymentStrategy = DeploymentStrategy.STOP_AND_DEPLOY

    # Status tracking
    status: DeploymentStatus = DeploymentStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_seconds: int = 0

    # Results
    error_message: str | None = None
    rollback_command: str | None = None

    logs: list[DeploymentLogEntry] = Field(default_factory=list)
    health_checks: list[HealthCheckResult] = Field(default_factory=list)
    audit_entries: list[AuditEntry] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    profile_id: UUID | None = None
    created_by: str = "system"


class DeploymentRequest(BaseModel):
    """Ad-hoc request to deploy an application folder."""

    model_config = ConfigDict(frozen=True)

    application_path: str = Field(..., min_length=1)
    profile_id: str | None = None

    # Overrides (fall back to the profile, then to defaults)
    domain_name: str | None = None
    http_port: int | None = Field(default=None, ge=1, le=65535)
    https_port: int | None = Field(default=None, ge=1, le=65535)
    target: DeploymentTarget | None = None
    environment: DeploymentEnvironment | None = None
    strategy: DeploymentStrategy | None = None
    runtime_version: RuntimeVersion | None = None
    pipeline_mode: PipelineMode | None = None

    database: DatabaseConfiguration | None = None
    ssl: SslConfiguration | None = None
    cloud: CloudConfiguration | None = None

    run_health_checks: bool = True
    environment_variables: dict[str, str] = Field(default_factory=dict)
    exclude_patterns: list[str] = Field(default_factory=list)
    requested_by: str | None = None


class DeploymentResult(BaseModel):
    """Outcome of a deploy or rollback call."""

    success: bool
    deployment_id: UUID | None = None
    url: str = ""
    duration_seconds: int = 0
    status: DeploymentStatus

    database_result: DatabaseDeploymentResult | None = None
    certificate_result: CertificateResult | None = None
    health_check_summary: HealthCheckSummary | None = None

    error_message: str | None = None
    rollback_command: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

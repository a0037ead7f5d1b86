"""Deployment profile models."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from sitedeploy.models.deployment import (
    CloudConfiguration,
    DatabaseConfiguration,
    SslConfiguration,
)
from sitedeploy.models.enums import (
    DeploymentEnvironment,
    DeploymentStrategy,
    DeploymentTarget,
    PipelineMode,
    RuntimeVersion,
)
from sitedeploy.models.results import utc_now


class DeploymentProfile(BaseModel):
    """Reusable template of deployment defaults.

    ``domain_pattern`` may contain ``{appname}`` and ``{env}`` placeholders,
    e.g. ``"{appname}.{env}.local"``.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str = ""
    category: str = "active"

    target: DeploymentTarget | None = None
    environment: DeploymentEnvironment | None = None
    strategy: DeploymentStrategy | None = None

    domain_pattern: str | None = None
    http_port: int | None = None
    https_port: int | None = None

    runtime_version: RuntimeVersion | None = None
    pipeline_mode: PipelineMode | None = None
    app_pool_idle_timeout_minutes: int = 20
    app_pool_always_running: bool = False

    database_template: DatabaseConfiguration | None = None
    ssl_template: SslConfiguration | None = None
    cloud_template: CloudConfiguration | None = None

    environment_variables: dict[str, str] = Field(default_factory=dict)

    # Maintained outside the deployment core
    deployment_count: int = 0
    last_used_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

"""Parameter objects for the site lifecycle driver.

These describe the desired state of a process pool or site for a single
driver call. They are never persisted.
"""

from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from sitedeploy.models.enums import LogLevel, PipelineMode, RuntimeVersion


class ProgressInfo(BaseModel):
    """Progress of a long-running sub-operation."""

    model_config = ConfigDict(frozen=True)

    stage: str
    percent_complete: int = Field(default=0, ge=0, le=100)
    message: str = ""
    level: LogLevel = LogLevel.INFORMATION


ProgressSink = Callable[[ProgressInfo], None]


class AppPoolConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    runtime_version: RuntimeVersion = RuntimeVersion.NO_MANAGED_CODE
    pipeline_mode: PipelineMode = PipelineMode.INTEGRATED
    enable_32bit: bool = False
    idle_timeout_minutes: int = 20
    always_running: bool = False
    identity: str | None = None
    identity_password: str | None = None


class SiteBinding(BaseModel):
    """One protocol/port/host binding on a site."""

    model_config = ConfigDict(frozen=True)

    protocol: str = "http"
    ip_address: str = "*"
    port: int | None = None
    host: str = ""
    certificate_hash: str | None = None
    # Verbatim text of non-HTTP bindings (net.pipe/*, net.msmq/localhost)
    information: str | None = None

    @property
    def is_web(self) -> bool:
        return self.protocol.lower() in ("http", "https")

    @property
    def binding_information(self) -> str:
        if self.information is not None:
            return self.information
        return f"{self.ip_address}:{self.port}:{self.host}"


class WebsiteConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    physical_path: str
    app_pool_name: str
    domain_name: str
    http_port: int = 80
    https_port: int = 443
    enable_https: bool = True
    certificate_thumbprint: str | None = None


class ApplicationDeploymentConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_path: str
    destination_path: str
    site_name: str
    stop_site_before_deployment: bool = True
    backup_existing: bool = True
    exclude_patterns: list[str] = Field(default_factory=list)


class SiteStatus(BaseModel):
    """Snapshot of one site as the hosting engine reports it."""

    site_name: str
    url: str
    is_running: bool
    state: str
    app_pool_name: str
    app_pool_running: bool


class StepStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    FATAL = "fatal"


class StepOutcome(BaseModel):
    """Tagged result of one file-synchronization step."""

    step: str
    status: StepStatus = StepStatus.OK
    message: str = ""

    @classmethod
    def ok(cls, step: str, message: str = "") -> "StepOutcome":
        return cls(step=step, status=StepStatus.OK, message=message)

    @classmethod
    def warning(cls, step: str, message: str) -> "StepOutcome":
        return cls(step=step, status=StepStatus.WARNING, message=message)

    @classmethod
    def fatal(cls, step: str, message: str) -> "StepOutcome":
        return cls(step=step, status=StepStatus.FATAL, message=message)


class FileSyncReport(BaseModel):
    """Folded outcomes of a deploy-files run."""

    site_name: str
    destination_path: str
    backup_path: str | None = None
    files_copied: int = 0
    skipped_entries: list[str] = Field(default_factory=list)
    outcomes: list[StepOutcome] = Field(default_factory=list)

    @property
    def warnings(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if o.status == StepStatus.WARNING]

    @property
    def succeeded(self) -> bool:
        return all(o.status != StepStatus.FATAL for o in self.outcomes)

"""Hosting engine abstraction.

The engine is the source of truth for process pools and sites. The
lifecycle driver only ever removes and recreates objects through this
interface; it never patches them in place.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from sitedeploy.core.exceptions import (
    CertificateBindingError,
    EngineInstallationError,
    PoolConfigurationError,
    SiteNotFoundError,
)
from sitedeploy.models.enums import PipelineMode, RuntimeVersion
from sitedeploy.models.hosting import AppPoolConfiguration, ProgressInfo, ProgressSink, SiteBinding

STARTED = "Started"
STOPPED = "Stopped"


@dataclass
class PoolRecord:
    name: str
    runtime_version: RuntimeVersion = RuntimeVersion.NO_MANAGED_CODE
    pipeline_mode: PipelineMode = PipelineMode.INTEGRATED
    idle_timeout_minutes: int = 20
    always_running: bool = False
    enable_32bit: bool = False
    identity: str | None = None
    state: str = STARTED


@dataclass
class SiteRecord:
    name: str
    physical_path: str
    app_pool_name: str
    bindings: list[SiteBinding] = field(default_factory=list)
    state: str = STARTED


class HostingEngine(ABC):
    """Operations the lifecycle driver needs from a web-hosting engine."""

    name: str = "engine"

    @abstractmethod
    async def is_installed(self) -> bool:
        """Whether the engine is installed and reachable."""

    @abstractmethod
    async def install(self, progress: ProgressSink | None = None) -> None:
        """Install the engine's features.

        Raises:
            EngineInstallationError: If installation exits non-zero
        """

    @abstractmethod
    async def get_pool(self, name: str) -> PoolRecord | None: ...

    @abstractmethod
    async def add_pool(self, config: AppPoolConfiguration) -> None:
        """Create a pool.

        Raises:
            PoolConfigurationError: If the engine rejects the settings
        """

    @abstractmethod
    async def remove_pool(self, name: str) -> None: ...

    @abstractmethod
    async def list_sites(self) -> list[SiteRecord]: ...

    async def get_site(self, name: str) -> SiteRecord | None:
        for site in await self.list_sites():
            if site.name == name:
                return site
        return None

    @abstractmethod
    async def add_site(
        self, name: str, physical_path: str, app_pool_name: str, binding: SiteBinding
    ) -> None: ...

    @abstractmethod
    async def remove_site(self, name: str) -> None: ...

    @abstractmethod
    async def set_bindings(self, site_name: str, bindings: list[SiteBinding]) -> None:
        """Replace every binding of a site."""

    @abstractmethod
    async def attach_certificate(
        self, site_name: str, binding: SiteBinding, thumbprint: str
    ) -> None: ...

    @abstractmethod
    async def start_site(self, name: str) -> None: ...

    @abstractmethod
    async def stop_site(self, name: str) -> None: ...

    @abstractmethod
    async def grant_modify_access(self, path: str) -> None:
        """Give the engine's application identity modify rights on a tree."""


class InMemoryHostingEngine(HostingEngine):
    """Engine that keeps pools and sites in dictionaries.

    Used for dry runs on machines without a hosting engine and by the
    test suite. Failure knobs let callers simulate engine behaviour.
    """

    name = "memory"

    def __init__(
        self,
        installed: bool = True,
        install_exit_code: int = 0,
        rejected_pool_settings: set[tuple[RuntimeVersion, PipelineMode]] | None = None,
        fail_certificate_attach: bool = False,
        fail_stop: bool = False,
        fail_grant: bool = False,
    ):
        self.installed = installed
        self.install_exit_code = install_exit_code
        self.rejected_pool_settings = rejected_pool_settings or set()
        self.fail_certificate_attach = fail_certificate_attach
        self.fail_stop = fail_stop
        self.fail_grant = fail_grant

        self.pools: dict[str, PoolRecord] = {}
        self.sites: dict[str, SiteRecord] = {}
        self.certificates: dict[tuple[str, int], str] = {}
        self.granted_paths: list[str] = []
        self.calls: list[tuple[str, str]] = []
        self.install_count = 0

    async def is_installed(self) -> bool:
        return self.installed

    async def install(self, progress: ProgressSink | None = None) -> None:
        self.calls.append(("install", ""))
        self.install_count += 1
        if self.install_exit_code != 0:
            raise EngineInstallationError(
                f"feature installation exited with {self.install_exit_code}",
                exit_code=self.install_exit_code,
            )
        self.installed = True
        if progress:
            progress(ProgressInfo(stage="Installing engine", percent_complete=100, message="Installed"))

    async def get_pool(self, name: str) -> PoolRecord | None:
        return self.pools.get(name)

    async def add_pool(self, config: AppPoolConfiguration) -> None:
        self.calls.append(("add_pool", config.name))
        if (config.runtime_version, config.pipeline_mode) in self.rejected_pool_settings:
            raise PoolConfigurationError(
                config.name,
                f"runtime '{config.runtime_version.value}' cannot run in "
                f"{config.pipeline_mode.value} pipeline mode",
            )
        self.pools[config.name] = PoolRecord(
            name=config.name,
            runtime_version=config.runtime_version,
            pipeline_mode=config.pipeline_mode,
            idle_timeout_minutes=0 if config.always_running else config.idle_timeout_minutes,
            always_running=config.always_running,
            enable_32bit=config.enable_32bit,
            identity=config.identity,
        )

    async def remove_pool(self, name: str) -> None:
        self.calls.append(("remove_pool", name))
        self.pools.pop(name, None)

    async def list_sites(self) -> list[SiteRecord]:
        return list(self.sites.values())

    async def add_site(
        self, name: str, physical_path: str, app_pool_name: str, binding: SiteBinding
    ) -> None:
        self.calls.append(("add_site", name))
        self.sites[name] = SiteRecord(
            name=name,
            physical_path=physical_path,
            app_pool_name=app_pool_name,
            bindings=[binding],
        )

    async def remove_site(self, name: str) -> None:
        self.calls.append(("remove_site", name))
        self.sites.pop(name, None)

    async def set_bindings(self, site_name: str, bindings: list[SiteBinding]) -> None:
        self._require_site(site_name).bindings = list(bindings)

    async def attach_certificate(
        self, site_name: str, binding: SiteBinding, thumbprint: str
    ) -> None:
        self.calls.append(("attach_certificate", site_name))
        if self.fail_certificate_attach:
            raise CertificateBindingError(site_name, "certificate not found in store")
        self.certificates[(binding.host, binding.port)] = thumbprint

    async def start_site(self, name: str) -> None:
        self.calls.append(("start_site", name))
        self._require_site(name).state = STARTED

    async def stop_site(self, name: str) -> None:
        self.calls.append(("stop_site", name))
        site = self._require_site(name)
        if self.fail_stop:
            raise RuntimeError(f"site {name} did not stop in time")
        site.state = STOPPED

    async def grant_modify_access(self, path: str) -> None:
        if self.fail_grant:
            raise PermissionError(f"cannot change ACL of {path}")
        self.granted_paths.append(path)

    def _require_site(self, name: str) -> SiteRecord:
        site = self.sites.get(name)
        if site is None:
            raise SiteNotFoundError(name)
        return site

"""IIS engine driven through appcmd.exe, netsh and icacls."""

import asyncio
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Awaitable, Callable

from sitedeploy.config import settings
from sitedeploy.core.exceptions import (
    CertificateBindingError,
    EngineCommandError,
    EngineInstallationError,
    PoolConfigurationError,
)
from sitedeploy.hosting.engine import HostingEngine, PoolRecord, SiteRecord
from sitedeploy.models.enums import PipelineMode, RuntimeVersion
from sitedeploy.models.hosting import AppPoolConfiguration, ProgressInfo, ProgressSink, SiteBinding
from sitedeploy.utils.logging import get_logger

IIS_FEATURES = [
    "IIS-WebServerRole",
    "IIS-WebServer",
    "IIS-CommonHttpFeatures",
    "IIS-DefaultDocument",
    "IIS-StaticContent",
    "IIS-HttpErrors",
    "IIS-ISAPIExtensions",
    "IIS-ISAPIFilter",
    "IIS-NetFxExtensibility45",
    "IIS-ASPNET45",
    "IIS-ManagementConsole",
]

# Identity types appcmd accepts without a user name
BUILTIN_IDENTITIES = {"ApplicationPoolIdentity", "LocalSystem", "LocalService", "NetworkService"}

# Application id registered with http.sys for our certificate bindings
SSL_APP_ID = "{4dc3e181-e14b-4a21-b022-59fc669b0914}"


@dataclass
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        return self.stderr or self.stdout


CommandRunner = Callable[[list[str]], Awaitable[CommandResult]]


async def run_command(cmd: list[str]) -> CommandResult:
    """Run a child process and capture its output."""
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace") if stdout else "",
        stderr=stderr.decode(errors="replace") if stderr else "",
    )


def parse_binding(text: str) -> SiteBinding:
    """Parse appcmd's ``protocol/ip:port:host`` binding notation.

    Only http and https use that form; other protocols (net.tcp, net.pipe,
    net.msmq) are kept verbatim with no port.
    """
    protocol, _, information = text.partition("/")
    if protocol.lower() not in ("http", "https"):
        return SiteBinding(protocol=protocol, information=information)
    ip_port, _, host = information.rpartition(":")
    ip_address, _, port = ip_port.rpartition(":")
    return SiteBinding(
        protocol=protocol,
        ip_address=ip_address or "*",
        port=int(port),
        host=host,
    )


def format_bindings(bindings: list[SiteBinding]) -> str:
    return ",".join(f"{b.protocol}/{b.binding_information}" for b in bindings)


class AppCmdHostingEngine(HostingEngine):
    """Talks to IIS on the local machine.

    Every command goes through ``runner`` so tests can capture the
    command lines without a Windows host.
    """

    name = "iis"

    def __init__(self, appcmd_path: str | None = None, runner: CommandRunner | None = None):
        self.appcmd = appcmd_path or settings.appcmd_path
        self.runner = runner or run_command
        self.logger = get_logger("appcmd")

    async def _run(self, *args: str, check: bool = True) -> CommandResult:
        cmd = list(args)
        self.logger.debug("appcmd.run", cmd=" ".join(cmd))
        result = await self.runner(cmd)
        if check and result.returncode != 0:
            self.logger.warning(
                "appcmd.command_failed",
                cmd=" ".join(cmd[:4]),
                returncode=result.returncode,
                output=result.output[:500],
            )
            raise EngineCommandError(cmd, result.returncode, result.output)
        return result

    async def _appcmd(self, *args: str, check: bool = True) -> CommandResult:
        return await self._run(self.appcmd, *args, check=check)

    async def is_installed(self) -> bool:
        try:
            result = await self._appcmd("list", "site", "/xml", check=False)
        except FileNotFoundError:
            return False
        return result.returncode == 0

    async def install(self, progress: ProgressSink | None = None) -> None:
        if progress:
            progress(ProgressInfo(stage="Installing engine", percent_complete=10, message="Enabling IIS features"))
        script = (
            "Enable-WindowsOptionalFeature -Online -FeatureName "
            + ",".join(IIS_FEATURES)
            + " -All -NoRestart"
        )
        try:
            result = await self._run(
                "powershell", "-NoProfile", "-NonInteractive", "-Command", script, check=False
            )
        except FileNotFoundError as e:
            raise EngineInstallationError(str(e)) from e
        if result.returncode != 0:
            raise EngineInstallationError(
                f"feature installation exited with {result.returncode}",
                exit_code=result.returncode,
                output=result.output[:1000],
            )
        if progress:
            progress(ProgressInfo(stage="Installing engine", percent_complete=100, message="IIS features enabled"))

    async def get_pool(self, name: str) -> PoolRecord | None:
        result = await self._appcmd("list", "apppool", "/xml")
        for element in ET.fromstring(result.stdout).findall("APPPOOL"):
            if element.get("APPPOOL.NAME") != name:
                continue
            return PoolRecord(
                name=name,
                runtime_version=RuntimeVersion(element.get("RuntimeVersion", "")),
                pipeline_mode=PipelineMode(element.get("PipelineMode", "Integrated")),
                state=element.get("state", "Unknown"),
            )
        return None

    async def add_pool(self, config: AppPoolConfiguration) -> None:
        try:
            await self._appcmd(
                "add",
                "apppool",
                f"/name:{config.name}",
                f"/managedRuntimeVersion:{config.runtime_version.value}",
                f"/managedPipelineMode:{config.pipeline_mode.value}",
            )
        except EngineCommandError as e:
            raise PoolConfigurationError(config.name, e.output.strip() or e.message) from e

        settings_args = [
            "set",
            "apppool",
            f"/apppool.name:{config.name}",
            f"/enable32BitAppOnWin64:{str(config.enable_32bit).lower()}",
        ]
        if config.always_running:
            settings_args += ["/startMode:AlwaysRunning", "/processModel.idleTimeout:00:00:00"]
        else:
            hours, minutes = divmod(config.idle_timeout_minutes, 60)
            settings_args += ["/startMode:OnDemand", f"/processModel.idleTimeout:{hours:02d}:{minutes:02d}:00"]

        if config.identity:
            if config.identity in BUILTIN_IDENTITIES:
                settings_args.append(f"/processModel.identityType:{config.identity}")
            else:
                settings_args += [
                    "/processModel.identityType:SpecificUser",
                    f"/processModel.userName:{config.identity}",
                    f"/processModel.password:{config.identity_password or ''}",
                ]

        try:
            await self._appcmd(*settings_args)
        except EngineCommandError as e:
            # Do not leave a half-configured pool behind
            await self._appcmd("delete", "apppool", config.name, check=False)
            raise PoolConfigurationError(config.name, e.output.strip() or e.message) from e

    async def remove_pool(self, name: str) -> None:
        await self._appcmd("delete", "apppool", name)

    async def list_sites(self) -> list[SiteRecord]:
        sites_xml = await self._appcmd("list", "site", "/xml")
        apps_xml = await self._appcmd("list", "app", "/xml")

        pools: dict[str, str] = {}
        for app in ET.fromstring(apps_xml.stdout).findall("APP"):
            if app.get("path", "/") == "/":
                pools[app.get("SITE.NAME", "")] = app.get("APPPOOL.NAME", "")

        sites = []
        for element in ET.fromstring(sites_xml.stdout).findall("SITE"):
            name = element.get("SITE.NAME", "")
            bindings_text = element.get("bindings", "")
            directory = element.find("site/application/virtualDirectory")
            sites.append(
                SiteRecord(
                    name=name,
                    physical_path=directory.get("physicalPath", "") if directory is not None else "",
                    app_pool_name=pools.get(name, ""),
                    bindings=[parse_binding(b) for b in bindings_text.split(",") if b],
                    state=element.get("state", "Unknown"),
                )
            )
        return sites

    async def add_site(
        self, name: str, physical_path: str, app_pool_name: str, binding: SiteBinding
    ) -> None:
        await self._appcmd(
            "add",
            "site",
            f"/name:{name}",
            f"/physicalPath:{physical_path}",
            f"/bindings:{format_bindings([binding])}",
        )
        await self._appcmd("set", "app", f"{name}/", f"/applicationPool:{app_pool_name}")

    async def remove_site(self, name: str) -> None:
        await self._appcmd("delete", "site", name)

    async def set_bindings(self, site_name: str, bindings: list[SiteBinding]) -> None:
        await self._appcmd(
            "set", "site", f"/site.name:{site_name}", f"/bindings:{format_bindings(bindings)}"
        )

    async def attach_certificate(
        self, site_name: str, binding: SiteBinding, thumbprint: str
    ) -> None:
        if binding.host:
            endpoint = f"hostnameport={binding.host}:{binding.port}"
        else:
            endpoint = f"ipport=0.0.0.0:{binding.port}"

        # Replace whatever certificate http.sys already has for the endpoint
        await self._run("netsh", "http", "delete", "sslcert", endpoint, check=False)
        try:
            await self._run(
                "netsh",
                "http",
                "add",
                "sslcert",
                endpoint,
                f"certhash={thumbprint}",
                f"appid={SSL_APP_ID}",
                "certstorename=MY",
            )
        except EngineCommandError as e:
            raise CertificateBindingError(site_name, e.output.strip() or e.message) from e

    async def start_site(self, name: str) -> None:
        await self._appcmd("start", "site", f"/site.name:{name}")

    async def stop_site(self, name: str) -> None:
        await self._appcmd("stop", "site", f"/site.name:{name}")

    async def grant_modify_access(self, path: str) -> None:
        await self._run("icacls", path, "/grant", "IIS_IUSRS:(OI)(CI)M", "/T", "/Q")

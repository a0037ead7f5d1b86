"""Site lifecycle driver.

Reconciles process pools and sites on a hosting engine by removing and
recreating them, and synchronizes application files into a site's
physical path.
"""

import asyncio
from pathlib import Path

from sitedeploy.config import settings
from sitedeploy.core.certificates import normalize_thumbprint
from sitedeploy.core.exceptions import CertificateBindingError, SiteNotFoundError, SourceNotFoundError
from sitedeploy.hosting.engine import STARTED, STOPPED, HostingEngine
from sitedeploy.hosting.files import backup_directory, clear_directory, copy_tree, has_entries
from sitedeploy.hosting.hosts_file import HostsFileService
from sitedeploy.models.enums import LogLevel
from sitedeploy.models.hosting import (
    AppPoolConfiguration,
    ApplicationDeploymentConfig,
    FileSyncReport,
    ProgressInfo,
    ProgressSink,
    SiteBinding,
    SiteStatus,
    StepOutcome,
    WebsiteConfiguration,
)
from sitedeploy.utils.logging import get_logger


class EngineReadiness:
    """Process-wide record of whether the hosting engine is provisioned.

    Bootstrap code may call ``mark_ready`` after provisioning once; the
    driver then skips the installation probe.
    """

    def __init__(self):
        self._ready = False
        self.lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._ready

    def mark_ready(self) -> None:
        self._ready = True

    def reset(self) -> None:
        self._ready = False
        self.lock = asyncio.Lock()


# Singleton instance
_engine_readiness: EngineReadiness | None = None


def get_engine_readiness() -> EngineReadiness:
    """Get the engine readiness singleton."""
    global _engine_readiness
    if _engine_readiness is None:
        _engine_readiness = EngineReadiness()
    return _engine_readiness


class SiteLifecycleDriver:
    """Creates, deploys to, and removes sites on a hosting engine."""

    def __init__(
        self,
        engine: HostingEngine,
        hosts_file: HostsFileService | None = None,
        readiness: EngineReadiness | None = None,
        settle_seconds: float | None = None,
        require_certificate_binding: bool | None = None,
    ):
        self.engine = engine
        self.hosts_file = hosts_file
        self.readiness = readiness or get_engine_readiness()
        self.settle_seconds = (
            settings.site_stop_settle_seconds if settle_seconds is None else settle_seconds
        )
        self.require_certificate_binding = (
            settings.require_certificate_binding
            if require_certificate_binding is None
            else require_certificate_binding
        )
        self.logger = get_logger("lifecycle")

    async def ensure_engine_ready(self, progress: ProgressSink | None = None) -> None:
        """Install the hosting engine if it is not present.

        Concurrent callers share a single installation.

        Raises:
            EngineInstallationError: If installation fails
        """
        if self.readiness.is_ready:
            return

        async with self.readiness.lock:
            if self.readiness.is_ready:
                return

            if await self.engine.is_installed():
                self.logger.debug("lifecycle.engine_present", engine=self.engine.name)
            else:
                self.logger.info("lifecycle.engine_installing", engine=self.engine.name)
                if progress:
                    progress(
                        ProgressInfo(
                            stage="Installing engine",
                            percent_complete=0,
                            message=f"{self.engine.name} not found, installing",
                        )
                    )
                await self.engine.install(progress)
                self.logger.info("lifecycle.engine_installed", engine=self.engine.name)

            self.readiness.mark_ready()

    async def create_or_replace_pool(self, config: AppPoolConfiguration) -> None:
        """Remove any pool with the same name and create it afresh.

        Raises:
            PoolConfigurationError: If the engine rejects the settings
        """
        if await self.engine.get_pool(config.name) is not None:
            self.logger.info("lifecycle.pool_removing", pool=config.name)
            await self.engine.remove_pool(config.name)

        await self.engine.add_pool(config)
        self.logger.info(
            "lifecycle.pool_created",
            pool=config.name,
            runtime=config.runtime_version.value or "no_managed_code",
            pipeline=config.pipeline_mode.value,
            always_running=config.always_running,
        )

    async def create_or_replace_site(self, config: WebsiteConfiguration) -> list[StepOutcome]:
        """Remove any site with the same name and create it afresh.

        Returns the outcomes of the best-effort steps (certificate attach
        and hosts-file registration).

        Raises:
            CertificateBindingError: If the certificate cannot be attached
                and certificate binding is required
        """
        outcomes: list[StepOutcome] = []

        if await self.engine.get_site(config.name) is not None:
            self.logger.info("lifecycle.site_removing", site=config.name)
            await self.engine.remove_site(config.name)

        await asyncio.to_thread(Path(config.physical_path).mkdir, parents=True, exist_ok=True)

        http = SiteBinding(protocol="http", port=config.http_port, host=config.domain_name)
        await self.engine.add_site(config.name, config.physical_path, config.app_pool_name, http)

        bindings = [http]
        https = None
        if config.enable_https and config.certificate_thumbprint:
            https = SiteBinding(
                protocol="https",
                port=config.https_port,
                host=config.domain_name,
                certificate_hash=normalize_thumbprint(config.certificate_thumbprint),
            )
            bindings.append(https)
        await self.engine.set_bindings(config.name, bindings)

        if https is not None:
            try:
                await self.engine.attach_certificate(config.name, https, https.certificate_hash)
                outcomes.append(StepOutcome.ok("attach_certificate"))
            except Exception as e:
                if self.require_certificate_binding:
                    if isinstance(e, CertificateBindingError):
                        raise
                    raise CertificateBindingError(config.name, str(e)) from e
                self.logger.warning(
                    "lifecycle.certificate_attach_failed", site=config.name, error=str(e)
                )
                outcomes.append(StepOutcome.warning("attach_certificate", str(e)))

        if self.hosts_file is not None:
            added = await asyncio.to_thread(self.hosts_file.add_entry, config.domain_name)
            outcomes.append(
                StepOutcome.ok("hosts_file", "entry added" if added else "entry not added")
            )

        self.logger.info(
            "lifecycle.site_created",
            site=config.name,
            pool=config.app_pool_name,
            bindings=[f"{b.protocol}/{b.binding_information}" for b in bindings],
        )
        return outcomes

    async def deploy_files(
        self,
        config: ApplicationDeploymentConfig,
        progress: ProgressSink | None = None,
    ) -> FileSyncReport:
        """Copy the application into the site's physical path.

        Stop, backup, per-entry cleanup and permission grant are
        best-effort and reported as warnings. A missing source, a failed
        copy or a site that will not start aborts the deployment.
        """
        stage = "Deploying files"

        def report(percent: int, message: str, level: LogLevel = LogLevel.INFORMATION) -> None:
            if progress:
                progress(
                    ProgressInfo(stage=stage, percent_complete=percent, message=message, level=level)
                )

        source = Path(config.source_path)
        destination = Path(config.destination_path)
        sync = FileSyncReport(site_name=config.site_name, destination_path=str(destination))

        report(10, "Validating source")
        if not source.is_dir():
            raise SourceNotFoundError(config.source_path)

        if config.stop_site_before_deployment:
            report(20, f"Stopping site {config.site_name}")
            try:
                await self.stop_site(config.site_name)
                await asyncio.sleep(self.settle_seconds)
                sync.outcomes.append(StepOutcome.ok("stop_site"))
            except Exception as e:
                self._warn(sync, "stop_site", e)
                report(20, f"Could not stop site: {e}", LogLevel.WARNING)

        if config.backup_existing and has_entries(destination):
            report(30, "Backing up existing files")
            try:
                backup = await asyncio.to_thread(backup_directory, destination)
                sync.backup_path = str(backup)
                sync.outcomes.append(StepOutcome.ok("backup", str(backup)))
            except OSError as e:
                self._warn(sync, "backup", e)
                report(30, f"Backup failed: {e}", LogLevel.WARNING)

        report(50, "Copying application files")
        await asyncio.to_thread(destination.mkdir, parents=True, exist_ok=True)
        sync.skipped_entries = await asyncio.to_thread(clear_directory, destination)
        if sync.skipped_entries:
            sync.outcomes.append(
                StepOutcome.warning(
                    "clear_destination",
                    f"{len(sync.skipped_entries)} entries could not be removed",
                )
            )
            self.logger.warning(
                "lifecycle.entries_skipped",
                site=config.site_name,
                entries=sync.skipped_entries,
            )

        try:
            sync.files_copied = await asyncio.to_thread(
                copy_tree, source, destination, config.exclude_patterns
            )
        except OSError as e:
            sync.outcomes.append(StepOutcome.fatal("copy_files", str(e)))
            self.logger.error("lifecycle.copy_failed", site=config.site_name, error=str(e))
            raise
        sync.outcomes.append(StepOutcome.ok("copy_files", f"{sync.files_copied} files"))

        report(80, "Setting permissions")
        try:
            await self.engine.grant_modify_access(str(destination))
            sync.outcomes.append(StepOutcome.ok("grant_permissions"))
        except Exception as e:
            self._warn(sync, "grant_permissions", e)

        report(90, f"Starting site {config.site_name}")
        try:
            await self.start_site(config.site_name)
        except Exception as e:
            sync.outcomes.append(StepOutcome.fatal("start_site", str(e)))
            self.logger.error("lifecycle.start_failed", site=config.site_name, error=str(e))
            raise
        sync.outcomes.append(StepOutcome.ok("start_site"))

        report(100, "Application files deployed")
        self.logger.info(
            "lifecycle.files_deployed",
            site=config.site_name,
            files_copied=sync.files_copied,
            warnings=len(sync.warnings),
            backup_path=sync.backup_path,
        )
        return sync

    async def remove_site(self, name: str) -> bool:
        """Remove a site and its pool when no other site uses the pool.

        Returns False when the site did not exist.
        """
        site = await self.engine.get_site(name)
        if site is None:
            self.logger.debug("lifecycle.site_absent", site=name)
            return False

        await self.engine.remove_site(name)
        self.logger.info("lifecycle.site_removed", site=name)

        pool_name = site.app_pool_name
        if not pool_name:
            return True
        still_used = any(s.app_pool_name == pool_name for s in await self.engine.list_sites())
        if not still_used and await self.engine.get_pool(pool_name) is not None:
            await self.engine.remove_pool(pool_name)
            self.logger.info("lifecycle.pool_removed", pool=pool_name)
        return True

    async def list_sites(self) -> list[SiteStatus]:
        if not await self.engine.is_installed():
            return []

        statuses = []
        for site in await self.engine.list_sites():
            pool = await self.engine.get_pool(site.app_pool_name) if site.app_pool_name else None
            url = ""
            web = [b for b in site.bindings if b.is_web]
            if web:
                first = web[0]
                url = f"{first.protocol}://{first.host or 'localhost'}:{first.port}"
            statuses.append(
                SiteStatus(
                    site_name=site.name,
                    url=url,
                    is_running=site.state == STARTED,
                    state=site.state,
                    app_pool_name=site.app_pool_name,
                    app_pool_running=pool is not None and pool.state == STARTED,
                )
            )
        return statuses

    async def start_site(self, name: str) -> None:
        site = await self.engine.get_site(name)
        if site is None:
            raise SiteNotFoundError(name)
        if site.state != STARTED:
            await self.engine.start_site(name)
            self.logger.info("lifecycle.site_started", site=name)

    async def stop_site(self, name: str) -> None:
        site = await self.engine.get_site(name)
        if site is None:
            raise SiteNotFoundError(name)
        if site.state != STOPPED:
            await self.engine.stop_site(name)
            self.logger.info("lifecycle.site_stopped", site=name)

    def _warn(self, sync: FileSyncReport, step: str, error: Exception) -> None:
        sync.outcomes.append(StepOutcome.warning(step, str(error)))
        self.logger.warning(f"lifecycle.{step}_failed", site=sync.site_name, error=str(error))

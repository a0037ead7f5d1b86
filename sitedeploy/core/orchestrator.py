"""Deployment Orchestrator.

Sequences one deployment attempt through its stages and rolls it back
on request or on failure.

Stages:
1. resolve - merge request, profile and defaults into a record
2. cloud detection (cloud VM targets only)
3. discovery and engine readiness
4. database (if configured)
5. certificate (if configured)
6. application - pool, site, files
7. health checks (if requested)
"""

import asyncio
import os
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from sitedeploy.config import settings
from sitedeploy.core.certificates import acquire_certificate
from sitedeploy.core.connection_strings import build_connection_string
from sitedeploy.core.events import EventBus, get_event_bus
from sitedeploy.core.exceptions import (
    CollaboratorUnavailableError,
    DeploymentCancelledError,
    DeploymentNotFoundError,
    SiteDeployError,
)
from sitedeploy.core.locks import TargetLocks
from sitedeploy.core.repository import DeploymentRepository, ProfileRepository
from sitedeploy.core.resolver import ConfigurationResolver
from sitedeploy.core.state import DeploymentEvent, advance, revise, transition
from sitedeploy.hosting.appcmd import AppCmdHostingEngine
from sitedeploy.hosting.engine import InMemoryHostingEngine
from sitedeploy.hosting.hosts_file import HostsFileService
from sitedeploy.hosting.lifecycle import SiteLifecycleDriver
from sitedeploy.models.deployment import (
    CloudConfiguration,
    Deployment,
    DeploymentLogEntry,
    DeploymentRequest,
    DeploymentResult,
)
from sitedeploy.models.enums import (
    AuditEventType,
    DeploymentStatus,
    DeploymentStrategy,
    LogLevel,
)
from sitedeploy.models.hosting import (
    AppPoolConfiguration,
    ApplicationDeploymentConfig,
    FileSyncReport,
    ProgressInfo,
    ProgressSink,
    SiteStatus,
    StepStatus,
    WebsiteConfiguration,
)
from sitedeploy.models.results import (
    CertificateResult,
    DatabaseDeploymentResult,
    HealthCheckSummary,
    utc_now,
)
from sitedeploy.services.audit import StructlogAuditService
from sitedeploy.services.cloud import MetadataCloudService
from sitedeploy.services.contracts import (
    AuditService,
    CertificateService,
    CloudService,
    DatabaseService,
    DeploymentLogger,
    DiscoveryService,
    HealthCheckService,
)
from sitedeploy.services.deployment_log import StructlogDeploymentLogger
from sitedeploy.services.discovery import MarkerFileDiscoveryService
from sitedeploy.services.health import HttpHealthCheckService
from sitedeploy.utils.logging import configure_logging, deployment_context, get_logger

E = DeploymentEvent


def find_config_file(application_path: str) -> str | None:
    """First top-level ``*.config`` file, else ``appsettings.json``."""
    root = Path(application_path)
    configs = sorted(p for p in root.glob("*.config") if p.is_file())
    if configs:
        return str(configs[0])
    appsettings = root / "appsettings.json"
    return str(appsettings) if appsettings.is_file() else None


class DeploymentOrchestrator:
    """Runs deployments and rollbacks against one hosting engine.

    Collaborators without a sensible local default (database, certificate
    issuance) are optional; a deployment that needs a missing one fails.
    """

    def __init__(
        self,
        driver: SiteLifecycleDriver,
        deployments: DeploymentRepository | None = None,
        profiles: ProfileRepository | None = None,
        discovery: DiscoveryService | None = None,
        database: DatabaseService | None = None,
        certificates: CertificateService | None = None,
        health: HealthCheckService | None = None,
        cloud: CloudService | None = None,
        audit: AuditService | None = None,
        deployment_logger: DeploymentLogger | None = None,
        events: EventBus | None = None,
        locks: TargetLocks | None = None,
        sites_root: str | None = None,
    ):
        self.driver = driver
        self.deployments = deployments or DeploymentRepository()
        self.profiles = profiles or ProfileRepository()
        self.discovery = discovery or MarkerFileDiscoveryService()
        self.database = database
        self.certificates = certificates
        self.health = health or HttpHealthCheckService(database=database)
        self.cloud = cloud or MetadataCloudService()
        self.audit = audit or StructlogAuditService()
        self.deployment_logger = deployment_logger or StructlogDeploymentLogger()
        self.events = events or get_event_bus()
        self.locks = locks or TargetLocks()
        self.sites_root = sites_root or settings.sites_root
        self.resolver = ConfigurationResolver(self.deployments, self.profiles)
        self.logger = get_logger("orchestrator")

    async def deploy(
        self,
        request: DeploymentRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> DeploymentResult:
        """Run one deployment attempt to a terminal status.

        Never raises: every failure is reported in the returned result.
        """
        started = time.monotonic()
        try:
            deployment = await self.resolver.resolve(request)
        except Exception as e:
            self.logger.error(
                "orchestrator.deployment.resolve_failed",
                application_path=request.application_path,
                error=str(e),
            )
            return DeploymentResult(
                success=False,
                status=DeploymentStatus.FAILED,
                error_message=str(e),
            )

        with deployment_context(deployment.id, deployment.site_name):
            async with self.locks.hold(deployment.site_name):
                return await self._run(deployment, request, cancel_event, started)

    async def _run(
        self,
        deployment: Deployment,
        request: DeploymentRequest,
        cancel_event: asyncio.Event | None,
        started: float,
    ) -> DeploymentResult:
        db_result: DatabaseDeploymentResult | None = None
        cert_result: CertificateResult | None = None
        summary: HealthCheckSummary | None = None
        progress = self._progress_sink(deployment.id)

        try:
            self._log(deployment.id, LogLevel.INFORMATION, "Deployment started")
            await self._audit(
                AuditEventType.DEPLOYMENT_STARTED,
                deployment,
                "deploy",
                {"domain": deployment.domain_name, "target": deployment.target.value},
            )
            deployment = await self._advance(deployment, E.START, started_at=utc_now())
            self.logger.info(
                "orchestrator.deployment.started",
                deployment_id=str(deployment.id),
                site=deployment.site_name,
            )

            if deployment.target.is_cloud_vm:
                self._checkpoint(cancel_event, "cloud detection")
                deployment = await self._detect_cloud(deployment)

            self._checkpoint(cancel_event, "discovery")
            self._log(deployment.id, LogLevel.INFORMATION, "Discovering application...")
            discovery = await self.discovery.discover(deployment.application_path)
            for warning in discovery.warnings:
                self._log(deployment.id, LogLevel.WARNING, warning)
            deployment = await self._advance(
                deployment, E.VALIDATE, application_type=discovery.detected_type
            )

            self._checkpoint(cancel_event, "engine validation")
            await self.driver.ensure_engine_ready(progress)

            if deployment.database is not None:
                self._checkpoint(cancel_event, "database deployment")
                deployment = await self._advance(deployment, E.DEPLOY_DATABASE)
                deployment, db_result = await self._deploy_database(deployment, progress)

            if deployment.ssl is not None:
                self._checkpoint(cancel_event, "certificate configuration")
                deployment = await self._advance(deployment, E.CONFIGURE_SSL)
                deployment, cert_result = await self._configure_ssl(deployment)

            self._checkpoint(cancel_event, "application deployment")
            deployment = await self._advance(deployment, E.DEPLOY_APP)
            sync = await self._deploy_application(deployment, progress)
            deployment = await self._revise(
                deployment,
                metadata={
                    **deployment.metadata,
                    "files_copied": sync.files_copied,
                    "file_backup_path": sync.backup_path,
                    "warnings": [f"{o.step}: {o.message}" for o in sync.warnings],
                },
            )

            if request.run_health_checks:
                self._checkpoint(cancel_event, "health checks")
                deployment = await self._advance(deployment, E.RUN_HEALTH_CHECKS)
                summary = await self.health.run_all_checks(deployment)
                deployment = await self._revise(deployment, health_checks=summary.results)

            duration = int(time.monotonic() - started)
            self._log(
                deployment.id,
                LogLevel.INFORMATION,
                f"Deployment completed successfully in {duration}s",
            )
            await self._audit(
                AuditEventType.DEPLOYMENT_COMPLETED,
                deployment,
                "deploy",
                {"url": deployment.target_url, "duration_seconds": duration},
            )
            deployment = await self._advance(
                deployment,
                E.SUCCEED,
                completed_at=utc_now(),
                duration_seconds=duration,
                rollback_command=settings.rollback_command_template.format(
                    deployment_id=deployment.id
                ),
            )
            await self.events.publish_deployment_complete(
                deployment.id, deployment.target_url, duration
            )
            self.logger.info(
                "orchestrator.deployment.completed",
                deployment_id=str(deployment.id),
                url=deployment.target_url,
                duration_seconds=duration,
            )

            return DeploymentResult(
                success=True,
                deployment_id=deployment.id,
                url=deployment.target_url,
                duration_seconds=duration,
                status=deployment.status,
                database_result=db_result,
                certificate_result=cert_result,
                health_check_summary=summary,
                rollback_command=deployment.rollback_command,
                metadata=deployment.metadata,
            )

        except Exception as e:
            return await self._fail(deployment.id, e, started, db_result, cert_result, summary)

    async def _fail(
        self,
        deployment_id: UUID,
        error: Exception,
        started: float,
        db_result: DatabaseDeploymentResult | None,
        cert_result: CertificateResult | None,
        summary: HealthCheckSummary | None,
    ) -> DeploymentResult:
        message = str(error)
        duration = int(time.monotonic() - started)
        # The repository holds every change made before the failure
        deployment = await self.deployments.get(deployment_id)
        stage = deployment.status.value

        self.logger.error(
            "orchestrator.deployment.failed",
            deployment_id=str(deployment_id),
            stage=stage,
            error=message,
            cancelled=isinstance(error, DeploymentCancelledError),
        )

        try:
            self._log(deployment_id, LogLevel.ERROR, f"Deployment failed: {message}", error)
            await self._audit(
                AuditEventType.DEPLOYMENT_FAILED,
                deployment,
                "deploy",
                {"error": message, "stage": stage},
            )
            deployment = await self._advance(
                deployment,
                E.FAIL,
                error_message=message,
                completed_at=utc_now(),
                duration_seconds=duration,
            )
            await self.events.publish_error(deployment_id, message, stage)

            if deployment.database is not None and deployment.database.auto_rollback_on_failure:
                self._log(deployment_id, LogLevel.WARNING, "Attempting automatic rollback...")
                await self._rollback_unlocked(deployment)
                deployment = await self.deployments.get(deployment_id)
        except Exception as e:
            self.logger.error(
                "orchestrator.deployment.failure_handling_failed",
                deployment_id=str(deployment_id),
                error=str(e),
            )

        return DeploymentResult(
            success=False,
            deployment_id=deployment_id,
            url=deployment.target_url,
            duration_seconds=duration,
            status=deployment.status,
            database_result=db_result,
            certificate_result=cert_result,
            health_check_summary=summary,
            error_message=message,
        )

    async def rollback(
        self,
        deployment_id: UUID,
        cancel_event: asyncio.Event | None = None,
    ) -> DeploymentResult:
        """Undo a failed deployment.

        Raises:
            DeploymentNotFoundError: If no record exists. Any other failure
                is reported in the returned result.
        """
        deployment = await self.deployments.get(deployment_id)
        if deployment is None:
            raise DeploymentNotFoundError(str(deployment_id))

        with deployment_context(deployment.id, deployment.site_name):
            async with self.locks.hold(deployment.site_name or str(deployment.id)):
                deployment = await self.deployments.get(deployment_id)
                return await self._rollback_unlocked(deployment, cancel_event)

    async def _rollback_unlocked(
        self,
        deployment: Deployment,
        cancel_event: asyncio.Event | None = None,
    ) -> DeploymentResult:
        """Roll back without taking the target lock.

        Used inline by a failing deployment that already holds the lock.
        """
        started = time.monotonic()
        try:
            # Reject before touching the target
            transition(deployment.status, E.ROLL_BACK, settings.allow_success_rollback)

            self._log(deployment.id, LogLevel.INFORMATION, "Starting rollback...")
            self.logger.info("orchestrator.rollback.started", deployment_id=str(deployment.id))

            database = deployment.database
            if database is not None and database.backup_path:
                self._checkpoint(cancel_event, "database restore")
                if self.database is None:
                    raise CollaboratorUnavailableError("database")
                await self.database.restore(database, database.backup_path)
                self._log(
                    deployment.id,
                    LogLevel.INFORMATION,
                    f"Database restored from {database.backup_path}",
                )
                await self._audit(
                    AuditEventType.BACKUP_RESTORED,
                    deployment,
                    "rollback",
                    {"backup_path": database.backup_path},
                )

            if deployment.site_name:
                self._checkpoint(cancel_event, "site removal")
                await self.driver.remove_site(deployment.site_name)
                self._log(deployment.id, LogLevel.INFORMATION, f"Removed site {deployment.site_name}")

            self._log(deployment.id, LogLevel.INFORMATION, "Rollback completed")
            await self._audit(AuditEventType.DEPLOYMENT_ROLLED_BACK, deployment, "rollback")
            deployment = await self._advance(
                deployment, E.ROLL_BACK, allow_success_rollback=settings.allow_success_rollback
            )
            await self.events.publish_rolled_back(deployment.id)
            self.logger.info("orchestrator.rollback.completed", deployment_id=str(deployment.id))

            return DeploymentResult(
                success=True,
                deployment_id=deployment.id,
                url=deployment.target_url,
                duration_seconds=int(time.monotonic() - started),
                status=deployment.status,
            )

        except Exception as e:
            self._log(deployment.id, LogLevel.ERROR, f"Rollback failed: {e}", e)
            self.logger.error(
                "orchestrator.rollback.failed",
                deployment_id=str(deployment.id),
                error=str(e),
            )
            return DeploymentResult(
                success=False,
                deployment_id=deployment.id,
                url=deployment.target_url,
                duration_seconds=int(time.monotonic() - started),
                status=deployment.status,
                error_message=str(e),
            )

    async def get_status(self, deployment_id: UUID) -> DeploymentStatus:
        """Raises DeploymentNotFoundError when the record does not exist."""
        return (await self._require(deployment_id)).status

    async def get_deployment(self, deployment_id: UUID) -> Deployment:
        return await self._require(deployment_id)

    async def get_active_deployments(self) -> list[Deployment]:
        """Deployments that are pending or in progress."""
        return await self.deployments.find(
            lambda d: d.status in (DeploymentStatus.PENDING, DeploymentStatus.IN_PROGRESS)
        )

    async def get_logs(self, deployment_id: UUID) -> list[DeploymentLogEntry]:
        await self._require(deployment_id)
        return self.deployment_logger.get_logs(deployment_id)

    async def list_sites(self) -> list[SiteStatus]:
        return await self.driver.list_sites()

    # Stages

    async def _detect_cloud(self, deployment: Deployment) -> Deployment:
        info = await self.cloud.detect_environment()
        current = deployment.cloud or CloudConfiguration()
        cloud = current.model_copy(
            update={
                "provider": info.provider,
                "public_ip_address": info.public_ip or current.public_ip_address,
                "region": info.region or current.region,
                "vm_name": info.vm_name or current.vm_name,
            }
        )
        self._log(
            deployment.id,
            LogLevel.INFORMATION,
            f"Detected cloud environment: {info.provider.value}",
        )
        return await self._revise(deployment, cloud=cloud)

    async def _deploy_database(
        self, deployment: Deployment, progress: ProgressSink
    ) -> tuple[Deployment, DatabaseDeploymentResult]:
        if self.database is None:
            raise CollaboratorUnavailableError("database")

        config = deployment.database
        self._log(deployment.id, LogLevel.INFORMATION, "Starting database deployment...")

        backup_path = None
        if config.backup_before_deployment and await self.database.exists(config):
            directory = config.backup_directory or tempfile.gettempdir()
            requested = os.path.join(
                directory,
                f"{config.database_name}_backup_{datetime.now():%Y%m%d%H%M%S}.bak",
            )
            backup = await self.database.backup(config, requested)
            if not backup.success:
                raise SiteDeployError(f"Database backup failed: {backup.error_message}")

            backup_path = backup.backup_path or requested
            config = config.model_copy(update={"backup_path": backup_path})
            deployment = await self._revise(deployment, database=config)
            self._log(deployment.id, LogLevel.INFORMATION, f"Database backed up to {backup_path}")
            await self._audit(
                AuditEventType.BACKUP_CREATED,
                deployment,
                "backup_database",
                {"backup_path": backup_path, "size_bytes": backup.size_bytes},
            )

        if not await self.database.exists(config):
            await self.database.create(config, progress)

        scripts_executed = 0
        if config.script_paths:
            await self.database.run_scripts(config, config.script_paths, progress)
            scripts_executed = len(config.script_paths)

        if config.migrations_folder:
            await self.database.run_migrations(config, config.migrations_folder)

        config_file = find_config_file(deployment.application_path)
        if config_file:
            await self.database.update_connection_string(
                config_file, build_connection_string(config)
            )

        return deployment, DatabaseDeploymentResult(
            success=True,
            database_name=config.database_name or "Unknown",
            server_name=config.server_name or "(localdb)",
            scripts_executed=scripts_executed,
            backup_path=backup_path,
        )

    async def _configure_ssl(
        self, deployment: Deployment
    ) -> tuple[Deployment, CertificateResult]:
        if self.certificates is None:
            raise CollaboratorUnavailableError("certificate")

        ssl = deployment.ssl
        self._log(
            deployment.id,
            LogLevel.INFORMATION,
            f"Configuring SSL certificate ({ssl.certificate_type.value})...",
        )
        result = await acquire_certificate(self.certificates, deployment.domain_name, ssl)
        if not result.success:
            raise SiteDeployError(f"Certificate acquisition failed: {result.error_message}")

        deployment = await self._revise(
            deployment,
            ssl=ssl.model_copy(
                update={"thumbprint": result.thumbprint, "expiry_date": result.expiry_date}
            ),
        )
        await self._audit(
            AuditEventType.CERTIFICATE_INSTALLED,
            deployment,
            "configure_ssl",
            {"thumbprint": result.thumbprint, "certificate_type": ssl.certificate_type.value},
        )
        return deployment, result

    async def _deploy_application(
        self, deployment: Deployment, progress: ProgressSink
    ) -> FileSyncReport:
        self._log(deployment.id, LogLevel.INFORMATION, f"Deploying to {self.driver.engine.name}...")
        physical_path = os.path.join(self.sites_root, deployment.site_name)

        pool = AppPoolConfiguration(
            name=deployment.app_pool_name,
            runtime_version=deployment.runtime_version,
            pipeline_mode=deployment.pipeline_mode,
            idle_timeout_minutes=deployment.idle_timeout_minutes,
            always_running=deployment.always_running,
        )
        site = WebsiteConfiguration(
            name=deployment.site_name,
            physical_path=physical_path,
            app_pool_name=deployment.app_pool_name,
            domain_name=deployment.domain_name,
            http_port=deployment.http_port,
            https_port=deployment.https_port,
            enable_https=deployment.ssl is not None,
            certificate_thumbprint=deployment.ssl.thumbprint if deployment.ssl else None,
        )
        files = ApplicationDeploymentConfig(
            source_path=deployment.application_path,
            destination_path=physical_path,
            site_name=deployment.site_name,
            stop_site_before_deployment=deployment.strategy != DeploymentStrategy.IN_PLACE,
            backup_existing=True,
            exclude_patterns=deployment.exclude_patterns,
        )

        await self.driver.create_or_replace_pool(pool)
        site_outcomes = await self.driver.create_or_replace_site(site)
        sync = await self.driver.deploy_files(files, progress)

        for outcome in site_outcomes:
            if outcome.status == StepStatus.WARNING:
                sync.outcomes.append(outcome)
        for outcome in sync.warnings:
            self._log(deployment.id, LogLevel.WARNING, f"{outcome.step}: {outcome.message}")
        return sync

    # Helpers

    async def _advance(
        self,
        deployment: Deployment,
        event: DeploymentEvent,
        allow_success_rollback: bool = False,
        **changes: Any,
    ) -> Deployment:
        deployment = await self._persist(
            advance(deployment, event, allow_success_rollback, **changes)
        )
        await self.events.publish_stage_changed(deployment.id, deployment.status.value)
        self.logger.info(
            "orchestrator.deployment.stage_changed",
            deployment_id=str(deployment.id),
            status=deployment.status.value,
        )
        return deployment

    async def _revise(self, deployment: Deployment, **changes: Any) -> Deployment:
        return await self._persist(revise(deployment, **changes))

    async def _persist(self, deployment: Deployment) -> Deployment:
        """Attach the current log and audit trail, then store."""
        deployment = deployment.model_copy(
            update={
                "logs": self.deployment_logger.get_logs(deployment.id),
                "audit_entries": await self.audit.get_audit_trail(str(deployment.id)),
            }
        )
        return await self.deployments.update(deployment)

    async def _audit(
        self,
        event_type: AuditEventType,
        deployment: Deployment,
        action: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        await self.audit.log_event(
            event_type,
            deployment.created_by,
            action,
            str(deployment.id),
            data,
        )

    async def _require(self, deployment_id: UUID) -> Deployment:
        deployment = await self.deployments.get(deployment_id)
        if deployment is None:
            raise DeploymentNotFoundError(str(deployment_id))
        return deployment

    def _log(
        self,
        deployment_id: UUID,
        level: LogLevel,
        message: str,
        error: BaseException | None = None,
    ) -> None:
        self.deployment_logger.log(deployment_id, level, message, error)

    def _progress_sink(self, deployment_id: UUID) -> ProgressSink:
        def sink(info: ProgressInfo) -> None:
            self.deployment_logger.log(deployment_id, info.level, info.message)
            self.events.publish_progress(deployment_id, info)

        return sink

    @staticmethod
    def _checkpoint(cancel_event: asyncio.Event | None, stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise DeploymentCancelledError(stage)


# Singleton instance
_orchestrator: DeploymentOrchestrator | None = None


def get_orchestrator() -> DeploymentOrchestrator:
    """Get the deployment orchestrator for the configured hosting engine."""
    global _orchestrator
    if _orchestrator is None:
        configure_logging()
        if settings.hosting_engine == "memory":
            engine = InMemoryHostingEngine()
        else:
            engine = AppCmdHostingEngine()
        driver = SiteLifecycleDriver(engine, hosts_file=HostsFileService())
        _orchestrator = DeploymentOrchestrator(driver)
    return _orchestrator

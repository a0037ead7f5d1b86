"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from sitedeploy.core.events import EventBus
from sitedeploy.core.orchestrator import DeploymentOrchestrator
from sitedeploy.core.repository import DeploymentRepository, ProfileRepository
from sitedeploy.hosting.engine import InMemoryHostingEngine
from sitedeploy.hosting.hosts_file import HostsFileService
from sitedeploy.hosting.lifecycle import EngineReadiness, SiteLifecycleDriver, get_engine_readiness
from sitedeploy.models.deployment import DatabaseConfiguration, Deployment
from sitedeploy.models.enums import CertificateType, CloudProvider, HealthCheckStatus
from sitedeploy.models.hosting import ProgressInfo, ProgressSink
from sitedeploy.models.results import (
    BackupResult,
    CertificateResult,
    CloudEnvironmentInfo,
    HealthCheckResult,
    HealthCheckSummary,
)

THUMBPRINT = "ab:cd:ef 01 23"


class FakeDatabaseService:
    """Records every call; the database exists once created."""

    def __init__(self, exists: bool = True, fail_scripts: bool = False):
        self.database_exists = exists
        self.fail_scripts = fail_scripts
        self.calls: list[tuple] = []

    async def exists(self, config: DatabaseConfiguration) -> bool:
        return self.database_exists

    async def create(self, config, progress: ProgressSink | None = None) -> None:
        self.calls.append(("create", config.database_name))
        self.database_exists = True
        if progress:
            progress(ProgressInfo(stage="Creating database", percent_complete=100, message="Created"))

    async def backup(self, config, backup_path: str) -> BackupResult:
        self.calls.append(("backup", backup_path))
        return BackupResult(success=True, backup_path=backup_path, size_bytes=1024)

    async def restore(self, config, backup_path: str) -> None:
        self.calls.append(("restore", backup_path))

    async def run_scripts(self, config, script_paths, progress=None) -> None:
        self.calls.append(("run_scripts", tuple(script_paths)))
        if self.fail_scripts:
            raise RuntimeError("script 001_init.sql failed: syntax error")

    async def run_migrations(self, config, migrations_folder: str) -> None:
        self.calls.append(("run_migrations", migrations_folder))

    async def test_connection(self, config) -> bool:
        return True

    async def update_connection_string(self, config_file: str, connection_string: str) -> None:
        self.calls.append(("update_connection_string", config_file, connection_string))


class FakeCertificateService:
    def __init__(self, success: bool = True):
        self.success = success
        self.calls: list[tuple] = []

    def _result(self, certificate_type: CertificateType) -> CertificateResult:
        if not self.success:
            return CertificateResult(
                success=False, certificate_type=certificate_type, error_message="issuer unavailable"
            )
        return CertificateResult(
            success=True,
            thumbprint=THUMBPRINT,
            certificate_type=certificate_type,
            expiry_date=datetime.now(timezone.utc) + timedelta(days=365),
        )

    async def generate_self_signed(self, domain_name: str, validity_days: int) -> CertificateResult:
        self.calls.append(("generate_self_signed", domain_name, validity_days))
        return self._result(CertificateType.SELF_SIGNED)

    async def request_lets_encrypt(self, domain_name: str, email: str) -> CertificateResult:
        self.calls.append(("request_lets_encrypt", domain_name, email))
        return self._result(CertificateType.LETS_ENCRYPT)

    async def install_certificate(self, certificate_path: str, password) -> CertificateResult:
        self.calls.append(("install_certificate", certificate_path, password))
        return self._result(CertificateType.CUSTOM_CERTIFICATE)

    async def get_from_key_vault(self, key_vault_url: str, certificate_name: str) -> CertificateResult:
        self.calls.append(("get_from_key_vault", key_vault_url, certificate_name))
        return self._result(CertificateType.AZURE_KEY_VAULT)


class FakeHealthService:
    def __init__(self):
        self.checked: list[Deployment] = []

    async def run_all_checks(self, deployment: Deployment) -> HealthCheckSummary:
        self.checked.append(deployment)
        return HealthCheckSummary.from_results(
            [
                HealthCheckResult(
                    check_name="HTTP Endpoint",
                    status=HealthCheckStatus.HEALTHY,
                    message="HTTP 200",
                )
            ]
        )


class FakeCloudService:
    async def detect_environment(self) -> CloudEnvironmentInfo:
        return CloudEnvironmentInfo(
            provider=CloudProvider.AZURE,
            is_cloud=True,
            region="westeurope",
            public_ip="20.1.2.3",
        )


@pytest.fixture(autouse=True)
def reset_engine_readiness():
    """Keep the process-wide readiness flag from leaking between tests."""
    get_engine_readiness().reset()
    yield
    get_engine_readiness().reset()


@pytest.fixture
def engine() -> InMemoryHostingEngine:
    return InMemoryHostingEngine()


@pytest.fixture
def hosts_file(tmp_path: Path) -> HostsFileService:
    path = tmp_path / "hosts"
    path.write_text("127.0.0.1\tlocalhost\n", encoding="utf-8")
    return HostsFileService(path=str(path), address="127.0.0.1")


@pytest.fixture
def driver(engine: InMemoryHostingEngine, hosts_file: HostsFileService) -> SiteLifecycleDriver:
    return SiteLifecycleDriver(
        engine,
        hosts_file=hosts_file,
        readiness=EngineReadiness(),
        settle_seconds=0,
        require_certificate_binding=False,
    )


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """A small published web application."""
    root = tmp_path / "publish"
    (root / "bin").mkdir(parents=True)
    (root / "logs").mkdir()
    (root / "index.html").write_text("<h1>demo</h1>", encoding="utf-8")
    (root / "appsettings.json").write_text("{}", encoding="utf-8")
    (root / "bin" / "Demo.dll").write_bytes(b"\x4d\x5a")
    (root / "logs" / "old.log").write_text("stale", encoding="utf-8")
    (root / "Demo.pdb").write_bytes(b"pdb")
    return root


@pytest.fixture
def sites_root(tmp_path: Path) -> Path:
    return tmp_path / "sites"


@pytest.fixture
def database() -> FakeDatabaseService:
    return FakeDatabaseService()


@pytest.fixture
def certificates() -> FakeCertificateService:
    return FakeCertificateService()


@pytest.fixture
def health() -> FakeHealthService:
    return FakeHealthService()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def profiles() -> ProfileRepository:
    return ProfileRepository()


@pytest.fixture
def orchestrator(
    driver: SiteLifecycleDriver,
    profiles: ProfileRepository,
    database: FakeDatabaseService,
    certificates: FakeCertificateService,
    health: FakeHealthService,
    events: EventBus,
    sites_root: Path,
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        driver,
        deployments=DeploymentRepository(),
        profiles=profiles,
        database=database,
        certificates=certificates,
        health=health,
        cloud=FakeCloudService(),
        events=events,
        sites_root=str(sites_root),
    )


@pytest.fixture
def build_orchestrator(
    driver: SiteLifecycleDriver,
    health: FakeHealthService,
    sites_root: Path,
):
    """Factory for orchestrators with a specific database service."""

    def build(database_exists: bool = True, fail_scripts: bool = False, with_database: bool = True):
        database = FakeDatabaseService(database_exists, fail_scripts) if with_database else None
        orchestrator = DeploymentOrchestrator(
            driver,
            database=database,
            health=health,
            events=EventBus(),
            sites_root=str(sites_root),
        )
        return orchestrator, database

    return build

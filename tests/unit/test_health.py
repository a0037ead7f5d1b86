"""Unit tests for the HTTP health check service."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from sitedeploy.models.deployment import DatabaseConfiguration, Deployment, SslConfiguration
from sitedeploy.models.enums import HealthCheckStatus
from sitedeploy.services.health import HttpHealthCheckService


def make_deployment(**overrides) -> Deployment:
    values = {
        "name": "Deployment_test",
        "application_path": "/apps/demo",
        "domain_name": "demo.local",
        "http_port": 8080,
        "https_port": 8443,
        "target_url": "https://demo.local:8443",
    }
    values.update(overrides)
    return Deployment(**values)


def transport(status_code: int = 200) -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(status_code, text="ok"))


class TestHttpHealthCheckService:
    @pytest.mark.asyncio
    async def test_http_only(self):
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200)

        service = HttpHealthCheckService(transport=httpx.MockTransport(handler))

        summary = await service.run_all_checks(make_deployment())

        assert requested == ["http://demo.local:8080/"]
        assert summary.all_healthy
        assert summary.total_checks == 1

    @pytest.mark.asyncio
    async def test_https_and_certificate(self):
        service = HttpHealthCheckService(transport=transport())
        ssl = SslConfiguration(
            thumbprint="ABCDEF",
            expiry_date=datetime.now(timezone.utc) + timedelta(days=200),
        )

        summary = await service.run_all_checks(make_deployment(ssl=ssl))

        assert [r.check_name for r in summary.results] == ["HTTP Endpoint", "HTTPS", "Certificate"]
        assert summary.all_healthy

    @pytest.mark.asyncio
    async def test_server_error_is_unhealthy(self):
        service = HttpHealthCheckService(transport=transport(503))

        summary = await service.run_all_checks(make_deployment())

        assert summary.results[0].status == HealthCheckStatus.UNHEALTHY
        assert summary.results[0].data["status_code"] == 503

    @pytest.mark.asyncio
    async def test_client_error_is_degraded(self):
        service = HttpHealthCheckService(transport=transport(404))

        summary = await service.run_all_checks(make_deployment())

        assert summary.degraded_count == 1

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = HttpHealthCheckService(transport=httpx.MockTransport(refuse))

        summary = await service.run_all_checks(make_deployment())

        assert summary.results[0].status == HealthCheckStatus.UNHEALTHY
        assert "Connection failed" in summary.results[0].message

    @pytest.mark.asyncio
    async def test_untrusted_certificate_is_degraded(self):
        def untrusted(request: httpx.Request) -> httpx.Response:
            if request.url.scheme == "https":
                raise httpx.ConnectError(
                    "[SSL: CERTIFICATE_VERIFY_FAILED] self-signed certificate", request=request
                )
            return httpx.Response(200)

        service = HttpHealthCheckService(transport=httpx.MockTransport(untrusted))
        ssl = SslConfiguration(
            thumbprint="ABCDEF",
            expiry_date=datetime.now(timezone.utc) + timedelta(days=200),
        )

        summary = await service.run_all_checks(make_deployment(ssl=ssl))

        https = summary.results[1]
        assert https.status == HealthCheckStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_database_check(self, database):
        service = HttpHealthCheckService(database=database, transport=transport())

        summary = await service.run_all_checks(
            make_deployment(database=DatabaseConfiguration(database_name="ShopDb"))
        )

        assert summary.results[-1].check_name == "Database"
        assert summary.results[-1].status == HealthCheckStatus.HEALTHY


class TestCertificateCheck:
    @pytest.fixture
    def service(self) -> HttpHealthCheckService:
        return HttpHealthCheckService()

    def test_expiring_soon(self, service):
        result = service.check_certificate(
            SslConfiguration(
                thumbprint="AB", expiry_date=datetime.now(timezone.utc) + timedelta(days=10)
            )
        )

        assert result.status == HealthCheckStatus.DEGRADED

    def test_expired(self, service):
        result = service.check_certificate(
            SslConfiguration(
                thumbprint="AB", expiry_date=datetime.now(timezone.utc) - timedelta(days=1)
            )
        )

        assert result.status == HealthCheckStatus.UNHEALTHY

    def test_no_certificate_recorded(self, service):
        result = service.check_certificate(SslConfiguration())

        assert result.status == HealthCheckStatus.UNKNOWN

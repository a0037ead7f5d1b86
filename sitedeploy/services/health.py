"""Post-deployment health checks over HTTP(S)."""

import time
from datetime import datetime, timedelta, timezone

import httpx

from sitedeploy.config import settings
from sitedeploy.models.deployment import DatabaseConfiguration, Deployment, SslConfiguration
from sitedeploy.models.enums import HealthCheckStatus
from sitedeploy.models.results import HealthCheckResult, HealthCheckSummary
from sitedeploy.services.contracts import DatabaseService
from sitedeploy.utils.logging import get_logger

# Responses slower than this are reported as degraded
SLOW_RESPONSE_MS = 2000
CERTIFICATE_WARNING_DAYS = 30


class HttpHealthCheckService:
    """Probes a freshly deployed site.

    Runs an HTTP reachability check always, HTTPS and certificate checks
    when the deployment has SSL configured, and a connectivity check when
    it has a database and a database service is available.
    """

    def __init__(
        self,
        database: DatabaseService | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.database = database
        self.timeout_seconds = timeout_seconds or settings.health_check_timeout_seconds
        self.transport = transport
        self.logger = get_logger("health")

    async def run_all_checks(self, deployment: Deployment) -> HealthCheckSummary:
        results: list[HealthCheckResult] = []

        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            transport=self.transport,
            follow_redirects=False,
        ) as client:
            http_url = f"http://{deployment.domain_name}:{deployment.http_port}/"
            results.append(await self.check_http_endpoint(client, http_url))

            if deployment.ssl is not None:
                results.append(await self.check_https(client, deployment.target_url))
                results.append(self.check_certificate(deployment.ssl))

        if deployment.database is not None and self.database is not None:
            results.append(await self.check_database(deployment.database))

        summary = HealthCheckSummary.from_results(results)
        self.logger.info(
            "health.checks_completed",
            deployment_id=str(deployment.id),
            healthy=summary.healthy_count,
            degraded=summary.degraded_count,
            unhealthy=summary.unhealthy_count,
        )
        return summary

    async def check_http_endpoint(
        self, client: httpx.AsyncClient, url: str
    ) -> HealthCheckResult:
        return await self._probe(client, "HTTP Endpoint", url)

    async def check_https(self, client: httpx.AsyncClient, url: str) -> HealthCheckResult:
        return await self._probe(client, "HTTPS", url)

    def check_certificate(self, ssl: SslConfiguration) -> HealthCheckResult:
        """Classify the issued certificate by its remaining lifetime."""
        if not ssl.thumbprint or ssl.expiry_date is None:
            return HealthCheckResult(
                check_name="Certificate",
                status=HealthCheckStatus.UNKNOWN,
                message="No certificate information recorded",
            )

        expiry = ssl.expiry_date
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        remaining = expiry - datetime.now(timezone.utc)

        if remaining <= timedelta(0):
            status = HealthCheckStatus.UNHEALTHY
            message = "Certificate has expired"
        elif remaining < timedelta(days=CERTIFICATE_WARNING_DAYS):
            status = HealthCheckStatus.DEGRADED
            message = f"Certificate expires in {remaining.days} days"
        else:
            status = HealthCheckStatus.HEALTHY
            message = f"Certificate valid for {remaining.days} days"

        return HealthCheckResult(
            check_name="Certificate",
            status=status,
            message=message,
            data={"thumbprint": ssl.thumbprint, "days_remaining": remaining.days},
        )

    async def check_database(self, config: DatabaseConfiguration) -> HealthCheckResult:
        start = time.perf_counter()
        try:
            connected = await self.database.test_connection(config)
            message = "Database connection successful" if connected else "Database unreachable"
        except Exception as e:
            connected = False
            message = f"Database check failed: {e}"

        return HealthCheckResult(
            check_name="Database",
            status=HealthCheckStatus.HEALTHY if connected else HealthCheckStatus.UNHEALTHY,
            message=message,
            response_time_ms=int((time.perf_counter() - start) * 1000),
            data={"database": config.database_name},
        )

    async def _probe(
        self, client: httpx.AsyncClient, check_name: str, url: str
    ) -> HealthCheckResult:
        start = time.perf_counter()
        try:
            response = await client.get(url)
        except httpx.ConnectError as e:
            # An untrusted certificate still means the site answers
            untrusted = "CERTIFICATE_VERIFY_FAILED" in str(e)
            return HealthCheckResult(
                check_name=check_name,
                status=HealthCheckStatus.DEGRADED if untrusted else HealthCheckStatus.UNHEALTHY,
                message=f"Certificate not trusted: {e}" if untrusted else f"Connection failed: {e}",
                response_time_ms=int((time.perf_counter() - start) * 1000),
                data={"url": url},
            )
        except httpx.HTTPError as e:
            return HealthCheckResult(
                check_name=check_name,
                status=HealthCheckStatus.UNHEALTHY,
                message=f"Request failed: {e}",
                response_time_ms=int((time.perf_counter() - start) * 1000),
                data={"url": url},
            )

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        if response.status_code >= 500:
            status = HealthCheckStatus.UNHEALTHY
        elif response.status_code >= 400 or elapsed_ms > SLOW_RESPONSE_MS:
            status = HealthCheckStatus.DEGRADED
        else:
            status = HealthCheckStatus.HEALTHY

        return HealthCheckResult(
            check_name=check_name,
            status=status,
            message=f"HTTP {response.status_code}",
            response_time_ms=elapsed_ms,
            data={"url": url, "status_code": response.status_code},
        )

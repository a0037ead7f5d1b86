"""Unit tests for data models."""

import pytest
from pydantic import ValidationError

from sitedeploy.models import (
    CertificateType,
    DeploymentRequest,
    HealthCheckResult,
    HealthCheckStatus,
    HealthCheckSummary,
    SiteBinding,
    SslConfiguration,
    build_target_url,
    derive_app_pool_name,
    derive_site_name,
)
from sitedeploy.models.enums import DeploymentStatus, DeploymentTarget
from sitedeploy.models.hosting import FileSyncReport, StepOutcome


class TestNaming:
    """Tests for names derived from the domain."""

    def test_site_name_replaces_non_alphanumerics(self):
        assert derive_site_name("my-app.local") == "my_app_local"

    def test_app_pool_name(self):
        assert derive_app_pool_name("my-app.local") == "AppPool_my_app_local"

    def test_every_character_is_replaced_individually(self):
        assert derive_site_name("a..b") == "a__b"

    def test_target_url(self):
        assert build_target_url("demo.local", 8443) == "https://demo.local:8443"


class TestSslConfiguration:
    def test_self_signed_needs_nothing(self):
        ssl = SslConfiguration()

        assert ssl.certificate_type == CertificateType.SELF_SIGNED
        assert ssl.validity_days == 365

    def test_lets_encrypt_requires_email(self):
        with pytest.raises(ValidationError, match="lets_encrypt_email"):
            SslConfiguration(certificate_type=CertificateType.LETS_ENCRYPT)

    def test_key_vault_requires_url_and_name(self):
        with pytest.raises(ValidationError, match="certificate_name"):
            SslConfiguration(
                certificate_type=CertificateType.AZURE_KEY_VAULT,
                key_vault_url="https://vault.example.net",
            )

    def test_custom_requires_path(self):
        with pytest.raises(ValidationError):
            SslConfiguration(certificate_type=CertificateType.CUSTOM_CERTIFICATE)

    def test_validity_must_be_positive(self):
        with pytest.raises(ValidationError):
            SslConfiguration(validity_days=0)


class TestDeploymentRequest:
    def test_port_range(self):
        with pytest.raises(ValidationError):
            DeploymentRequest(application_path="C:/apps/demo", https_port=70000)

    def test_application_path_required(self):
        with pytest.raises(ValidationError):
            DeploymentRequest(application_path="")

    def test_overrides_default_to_none(self):
        request = DeploymentRequest(application_path="C:/apps/demo")

        assert request.domain_name is None
        assert request.run_health_checks is True


class TestHostingModels:
    def test_binding_information(self):
        binding = SiteBinding(port=80, host="demo.local")

        assert binding.binding_information == "*:80:demo.local"

    def test_file_sync_report_folds_outcomes(self):
        report = FileSyncReport(
            site_name="demo_local",
            destination_path="/srv/demo_local",
            outcomes=[
                StepOutcome.ok("copy_files"),
                StepOutcome.warning("stop_site", "timeout"),
            ],
        )

        assert report.succeeded
        assert [o.step for o in report.warnings] == ["stop_site"]

        report.outcomes.append(StepOutcome.fatal("start_site", "boom"))
        assert not report.succeeded


class TestEnums:
    def test_terminal_statuses(self):
        terminal = {s for s in DeploymentStatus if s.is_terminal}

        assert terminal == {
            DeploymentStatus.SUCCESS,
            DeploymentStatus.FAILED,
            DeploymentStatus.ROLLED_BACK,
        }

    def test_cloud_vm_targets(self):
        assert DeploymentTarget.AWS_EC2.is_cloud_vm
        assert not DeploymentTarget.LOCAL_IIS.is_cloud_vm


def test_health_summary_counts():
    summary = HealthCheckSummary.from_results(
        [
            HealthCheckResult(check_name="HTTP", status=HealthCheckStatus.HEALTHY),
            HealthCheckResult(check_name="HTTPS", status=HealthCheckStatus.DEGRADED),
            HealthCheckResult(check_name="Database", status=HealthCheckStatus.UNHEALTHY),
        ]
    )

    assert summary.total_checks == 3
    assert summary.healthy_count == 1
    assert summary.degraded_count == 1
    assert summary.unhealthy_count == 1
    assert not summary.all_healthy

"""Unit tests for the configuration resolver."""

from uuid import uuid4

import pytest

from sitedeploy.core.exceptions import ProfileNotFoundError
from sitedeploy.core.repository import DeploymentRepository, ProfileRepository
from sitedeploy.core.resolver import ConfigurationResolver, expand_domain_pattern
from sitedeploy.models.deployment import DatabaseConfiguration, DeploymentRequest, SslConfiguration
from sitedeploy.models.enums import (
    DeploymentEnvironment,
    DeploymentStatus,
    DeploymentStrategy,
    DeploymentTarget,
    PipelineMode,
    RuntimeVersion,
)
from sitedeploy.models.profile import DeploymentProfile


class TestConfigurationResolver:
    @pytest.fixture
    def deployments(self) -> DeploymentRepository:
        return DeploymentRepository()

    @pytest.fixture
    def profiles(self) -> ProfileRepository:
        return ProfileRepository()

    @pytest.fixture
    def resolver(self, deployments, profiles) -> ConfigurationResolver:
        return ConfigurationResolver(deployments, profiles)

    @pytest.mark.asyncio
    async def test_defaults(self, resolver: ConfigurationResolver, deployments):
        deployment = await resolver.resolve(DeploymentRequest(application_path="/apps/shop"))

        assert deployment.domain_name == "myapp.local"
        assert deployment.http_port == 80
        assert deployment.https_port == 443
        assert deployment.target == DeploymentTarget.LOCAL_IIS
        assert deployment.environment == DeploymentEnvironment.DEVELOPMENT
        assert deployment.strategy == DeploymentStrategy.STOP_AND_DEPLOY
        assert deployment.runtime_version == RuntimeVersion.NO_MANAGED_CODE
        assert deployment.pipeline_mode == PipelineMode.INTEGRATED
        assert deployment.idle_timeout_minutes == 20
        assert deployment.always_running is False
        assert deployment.status == DeploymentStatus.PENDING
        assert deployment.name.startswith("Deployment_")
        assert await deployments.get(deployment.id) == deployment

    @pytest.mark.asyncio
    async def test_derived_names(self, resolver: ConfigurationResolver):
        deployment = await resolver.resolve(
            DeploymentRequest(application_path="/apps/shop", domain_name="my-app.local", https_port=8443)
        )

        assert deployment.site_name == "my_app_local"
        assert deployment.app_pool_name == "AppPool_my_app_local"
        assert deployment.target_url == "https://my-app.local:8443"

    @pytest.mark.asyncio
    async def test_production_is_always_running(self, resolver: ConfigurationResolver):
        deployment = await resolver.resolve(
            DeploymentRequest(
                application_path="/apps/shop", environment=DeploymentEnvironment.PRODUCTION
            )
        )

        assert deployment.always_running is True

    @pytest.mark.asyncio
    async def test_profile_fills_gaps(self, resolver: ConfigurationResolver, profiles):
        profile = await profiles.add(
            DeploymentProfile(
                name="Staging",
                environment=DeploymentEnvironment.STAGING,
                domain_pattern="{appname}.{env}.local",
                http_port=8080,
                https_port=8443,
                runtime_version=RuntimeVersion.V4_0,
                app_pool_idle_timeout_minutes=45,
                app_pool_always_running=True,
                database_template=DatabaseConfiguration(database_name="ShopDb"),
                environment_variables={"ASPNETCORE_ENVIRONMENT": "Staging", "FEATURE_X": "off"},
            )
        )

        deployment = await resolver.resolve(
            DeploymentRequest(
                application_path="/apps/Web Shop",
                profile_id=str(profile.id),
                http_port=9090,
                environment_variables={"FEATURE_X": "on"},
            )
        )

        assert deployment.domain_name == "web-shop.staging.local"
        assert deployment.http_port == 9090
        assert deployment.https_port == 8443
        assert deployment.runtime_version == RuntimeVersion.V4_0
        assert deployment.idle_timeout_minutes == 45
        assert deployment.always_running is True
        assert deployment.database.database_name == "ShopDb"
        assert deployment.environment_variables == {
            "ASPNETCORE_ENVIRONMENT": "Staging",
            "FEATURE_X": "on",
        }
        assert deployment.profile_id == profile.id

    @pytest.mark.asyncio
    async def test_request_templates_win(self, resolver: ConfigurationResolver, profiles):
        profile = await profiles.add(
            DeploymentProfile(name="p", ssl_template=SslConfiguration(validity_days=30))
        )

        deployment = await resolver.resolve(
            DeploymentRequest(
                application_path="/apps/shop",
                profile_id=str(profile.id),
                ssl=SslConfiguration(validity_days=90),
            )
        )

        assert deployment.ssl.validity_days == 90

    @pytest.mark.asyncio
    async def test_unknown_profile(self, resolver: ConfigurationResolver, deployments):
        with pytest.raises(ProfileNotFoundError, match="Profile not found"):
            await resolver.resolve(
                DeploymentRequest(application_path="/apps/shop", profile_id=str(uuid4()))
            )

        assert await deployments.count() == 0

    @pytest.mark.asyncio
    async def test_malformed_profile_id(self, resolver: ConfigurationResolver):
        with pytest.raises(ProfileNotFoundError):
            await resolver.resolve(
                DeploymentRequest(application_path="/apps/shop", profile_id="not-a-uuid")
            )

    @pytest.mark.asyncio
    async def test_exclusions_are_deduplicated(self, resolver: ConfigurationResolver, monkeypatch):
        from sitedeploy.config import settings

        monkeypatch.setattr(settings, "default_exclude_patterns", [".pdb", "logs"])
        deployment = await resolver.resolve(
            DeploymentRequest(application_path="/apps/shop", exclude_patterns=["logs", ".git"])
        )

        assert deployment.exclude_patterns == [".pdb", "logs", ".git"]


def test_expand_domain_pattern():
    assert (
        expand_domain_pattern("{appname}-{env}.test", "C:/publish/Api_v2", DeploymentEnvironment.TESTING)
        == "api-v2-testing.test"
    )

"""Turns a deployment request into a fully specified deployment record."""

import re
from datetime import datetime
from pathlib import Path
from uuid import UUID

from sitedeploy.config import settings
from sitedeploy.core.exceptions import ProfileNotFoundError
from sitedeploy.core.repository import DeploymentRepository, ProfileRepository
from sitedeploy.models.deployment import (
    Deployment,
    DeploymentRequest,
    build_target_url,
    derive_app_pool_name,
    derive_site_name,
)
from sitedeploy.models.enums import (
    DeploymentEnvironment,
    DeploymentStrategy,
    DeploymentTarget,
    PipelineMode,
    RuntimeVersion,
)
from sitedeploy.models.profile import DeploymentProfile
from sitedeploy.utils.logging import get_logger

DEFAULT_DOMAIN = "myapp.local"
DEFAULT_HTTP_PORT = 80
DEFAULT_HTTPS_PORT = 443
DEFAULT_IDLE_TIMEOUT_MINUTES = 20


def _first(*values):
    """First value that is not None."""
    return next((v for v in values if v is not None), None)


def expand_domain_pattern(pattern: str, application_path: str, environment: DeploymentEnvironment) -> str:
    """Fill ``{appname}`` and ``{env}`` in a profile's domain pattern."""
    app_name = re.sub(r"[^a-z0-9]+", "-", Path(application_path).name.lower()).strip("-") or "app"
    return pattern.replace("{appname}", app_name).replace("{env}", environment.value)


class ConfigurationResolver:
    """Merges request, profile and defaults, then persists the result."""

    def __init__(self, deployments: DeploymentRepository, profiles: ProfileRepository):
        self.deployments = deployments
        self.profiles = profiles
        self.logger = get_logger("resolver")

    async def load_profile(self, profile_id: str | None) -> DeploymentProfile | None:
        """Look up a profile.

        Raises:
            ProfileNotFoundError: If an id is given but does not resolve
        """
        if profile_id is None:
            return None
        try:
            key = UUID(str(profile_id))
        except ValueError:
            raise ProfileNotFoundError(str(profile_id)) from None

        profile = await self.profiles.get(key)
        if profile is None:
            raise ProfileNotFoundError(str(profile_id))
        return profile

    async def resolve(self, request: DeploymentRequest) -> Deployment:
        profile = await self.load_profile(request.profile_id)

        environment = _first(
            request.environment,
            profile.environment if profile else None,
            DeploymentEnvironment.DEVELOPMENT,
        )

        domain_name = request.domain_name
        if domain_name is None and profile and profile.domain_pattern:
            domain_name = expand_domain_pattern(
                profile.domain_pattern, request.application_path, environment
            )
        domain_name = domain_name or DEFAULT_DOMAIN

        https_port = _first(
            request.https_port, profile.https_port if profile else None, DEFAULT_HTTPS_PORT
        )

        exclude_patterns = list(
            dict.fromkeys([*settings.default_exclude_patterns, *request.exclude_patterns])
        )
        environment_variables = {
            **(profile.environment_variables if profile else {}),
            **request.environment_variables,
        }

        deployment = Deployment(
            name=f"Deployment_{datetime.now():%Y%m%d_%H%M%S}",
            application_path=request.application_path,
            target=_first(
                request.target, profile.target if profile else None, DeploymentTarget.LOCAL_IIS
            ),
            environment=environment,
            domain_name=domain_name,
            http_port=_first(
                request.http_port, profile.http_port if profile else None, DEFAULT_HTTP_PORT
            ),
            https_port=https_port,
            target_url=build_target_url(domain_name, https_port),
            site_name=derive_site_name(domain_name),
            app_pool_name=derive_app_pool_name(domain_name),
            runtime_version=_first(
                request.runtime_version,
                profile.runtime_version if profile else None,
                RuntimeVersion.NO_MANAGED_CODE,
            ),
            pipeline_mode=_first(
                request.pipeline_mode,
                profile.pipeline_mode if profile else None,
                PipelineMode.INTEGRATED,
            ),
            idle_timeout_minutes=(
                profile.app_pool_idle_timeout_minutes if profile else DEFAULT_IDLE_TIMEOUT_MINUTES
            ),
            always_running=(
                (profile.app_pool_always_running if profile else False)
                or environment == DeploymentEnvironment.PRODUCTION
            ),
            environment_variables=environment_variables,
            exclude_patterns=exclude_patterns,
            database=_first(request.database, profile.database_template if profile else None),
            ssl=_first(request.ssl, profile.ssl_template if profile else None),
            cloud=_first(request.cloud, profile.cloud_template if profile else None),
            strategy=_first(
                request.strategy,
                profile.strategy if profile else None,
                DeploymentStrategy.STOP_AND_DEPLOY,
            ),
            profile_id=profile.id if profile else None,
            created_by=request.requested_by or settings.default_requested_by,
        )

        await self.deployments.add(deployment)
        self.logger.info(
            "resolver.deployment_created",
            deployment_id=str(deployment.id),
            domain=deployment.domain_name,
            site=deployment.site_name,
            profile_id=str(profile.id) if profile else None,
        )
        return deployment

"""Unit tests for the in-memory repositories."""

from uuid import uuid4

import pytest

from sitedeploy.core.exceptions import DuplicateEntityError, EntityNotFoundError
from sitedeploy.core.repository import DeploymentRepository, ProfileRepository
from sitedeploy.models.deployment import Deployment
from sitedeploy.models.enums import DeploymentStatus
from sitedeploy.models.profile import DeploymentProfile


def make_deployment(**overrides) -> Deployment:
    values = {"name": "Deployment_test", "application_path": "/apps/demo", "domain_name": "demo.local"}
    values.update(overrides)
    return Deployment(**values)


class TestDeploymentRepository:
    @pytest.fixture
    def repo(self) -> DeploymentRepository:
        return DeploymentRepository()

    @pytest.mark.asyncio
    async def test_add_and_get(self, repo: DeploymentRepository):
        deployment = await repo.add(make_deployment())

        assert await repo.get(deployment.id) == deployment
        assert await repo.count() == 1

    @pytest.mark.asyncio
    async def test_get_missing(self, repo: DeploymentRepository):
        assert await repo.get(uuid4()) is None

    @pytest.mark.asyncio
    async def test_add_duplicate(self, repo: DeploymentRepository):
        deployment = await repo.add(make_deployment())

        with pytest.raises(DuplicateEntityError):
            await repo.add(deployment)

    @pytest.mark.asyncio
    async def test_update_replaces(self, repo: DeploymentRepository):
        deployment = await repo.add(make_deployment())
        updated = deployment.model_copy(update={"status": DeploymentStatus.IN_PROGRESS})

        await repo.update(updated)

        assert (await repo.get(deployment.id)).status == DeploymentStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_update_missing(self, repo: DeploymentRepository):
        with pytest.raises(EntityNotFoundError, match="Deployment"):
            await repo.update(make_deployment())

    @pytest.mark.asyncio
    async def test_find(self, repo: DeploymentRepository):
        await repo.add(make_deployment(domain_name="a.local"))
        await repo.add(make_deployment(domain_name="b.local"))

        found = await repo.find(lambda d: d.domain_name == "b.local")

        assert [d.domain_name for d in found] == ["b.local"]
        assert len(await repo.list_all()) == 2

    @pytest.mark.asyncio
    async def test_delete(self, repo: DeploymentRepository):
        deployment = await repo.add(make_deployment())

        assert await repo.delete(deployment.id) is True
        assert await repo.delete(deployment.id) is False


@pytest.mark.asyncio
async def test_profile_repository():
    repo = ProfileRepository()
    profile = await repo.add(DeploymentProfile(name="Staging"))

    assert (await repo.get(profile.id)).name == "Staging"

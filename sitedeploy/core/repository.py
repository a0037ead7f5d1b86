"""In-memory persistence for deployments and profiles."""

from typing import Callable, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel

from sitedeploy.core.exceptions import DuplicateEntityError, EntityNotFoundError
from sitedeploy.models.deployment import Deployment
from sitedeploy.models.profile import DeploymentProfile

EntityT = TypeVar("EntityT", bound=BaseModel)


class InMemoryRepository(Generic[EntityT]):
    """Stores entities keyed by their ``id`` attribute.

    Note: For production, this should be backed by a database.
    """

    def __init__(self, entity_name: str = "Entity"):
        self._entity_name = entity_name
        self._items: dict[UUID, EntityT] = {}

    async def get(self, entity_id: UUID) -> EntityT | None:
        """Get an entity by ID."""
        return self._items.get(entity_id)

    async def find(self, predicate: Callable[[EntityT], bool]) -> list[EntityT]:
        """Return all entities matching ``predicate``."""
        return [item for item in self._items.values() if predicate(item)]

    async def list_all(self) -> list[EntityT]:
        return list(self._items.values())

    async def add(self, entity: EntityT) -> EntityT:
        """Store a new entity.

        Raises:
            DuplicateEntityError: If the ID is already stored
        """
        entity_id = entity.id  # type: ignore[attr-defined]
        if entity_id in self._items:
            raise DuplicateEntityError(self._entity_name, str(entity_id))
        self._items[entity_id] = entity
        return entity

    async def update(self, entity: EntityT) -> EntityT:
        """Replace a stored entity.

        Raises:
            EntityNotFoundError: If the ID was never added
        """
        entity_id = entity.id  # type: ignore[attr-defined]
        if entity_id not in self._items:
            raise EntityNotFoundError(self._entity_name, str(entity_id))
        self._items[entity_id] = entity
        return entity

    async def delete(self, entity_id: UUID) -> bool:
        """Delete an entity. Returns False if it did not exist."""
        if entity_id in self._items:
            del self._items[entity_id]
            return True
        return False

    async def count(self) -> int:
        return len(self._items)


class DeploymentRepository(InMemoryRepository[Deployment]):
    def __init__(self) -> None:
        super().__init__("Deployment")


class ProfileRepository(InMemoryRepository[DeploymentProfile]):
    def __init__(self) -> None:
        super().__init__("Profile")

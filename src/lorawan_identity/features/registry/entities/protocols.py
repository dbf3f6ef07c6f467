"""Protocol interfaces for registry storage."""

from abc import abstractmethod
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from .entity import Entity


@runtime_checkable
class EntityStore(Protocol):
    """Protocol for registry entity persistence."""

    @abstractmethod
    async def create_entity(self, entity: Entity) -> Entity:
        """Persist a new entity.

        Raises:
            EntityAlreadyExistsError: The ID is taken, also by a deleted entity
        """
        ...

    @abstractmethod
    async def get_entity(
        self, ids: EntityIdentifiers, include_deleted: bool = False
    ) -> Optional[Entity]:
        """Find an entity by identifiers."""
        ...

    @abstractmethod
    async def list_entities(
        self,
        kind: EntityKind,
        entity_ids: Optional[Sequence[str]] = None,
        include_deleted: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
        order: Optional[str] = None,
    ) -> Tuple[List[Entity], int]:
        """List entities of a kind, optionally restricted to IDs, with the total count."""
        ...

    @abstractmethod
    async def update_entity(self, entity: Entity) -> Entity:
        """Replace the stored entity."""
        ...

    @abstractmethod
    async def delete_entity(self, ids: EntityIdentifiers) -> None:
        """Soft delete an entity."""
        ...

    @abstractmethod
    async def restore_entity(self, ids: EntityIdentifiers) -> None:
        """Undo a soft delete."""
        ...

    @abstractmethod
    async def purge_entity(self, ids: EntityIdentifiers) -> None:
        """Remove an entity permanently."""
        ...

"""Protocol interfaces for event publication."""

from abc import abstractmethod
from typing import Any, Dict, Optional, Protocol, Sequence, runtime_checkable

from ....core.value_objects.identifiers import EntityIdentifiers


@runtime_checkable
class EventSink(Protocol):
    """Protocol for publishing domain events.

    Publishing never fails the operation that triggered the event.
    """

    @abstractmethod
    async def publish(
        self,
        name: str,
        identifiers: Sequence[EntityIdentifiers] = (),
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Publish an event."""
        ...

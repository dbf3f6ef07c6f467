"""In-memory event sink."""

from typing import Any, Dict, List, Optional, Sequence

from ....core.value_objects.identifiers import EntityIdentifiers
from ..entities.domain_event import DomainEvent
from ..entities.protocols import EventSink


class MemoryEventSink(EventSink):
    """Keeps published events in a list."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    async def publish(
        self,
        name: str,
        identifiers: Sequence[EntityIdentifiers] = (),
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.events.append(DomainEvent(name=name, identifiers=tuple(identifiers), data=dict(data or {})))

    def names(self) -> List[str]:
        return [event.name for event in self.events]

    def clear(self) -> None:
        self.events.clear()

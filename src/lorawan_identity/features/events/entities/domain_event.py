"""Domain event entity.

Services publish an event after every successful mutation. Events carry the
identifiers of the entities involved and a small data payload; they never
carry secrets.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from ....core.value_objects.identifiers import EntityIdentifiers


@dataclass(frozen=True)
class DomainEvent:
    """An event that occurred in the identity server."""

    name: str  # Dotted event name, e.g. ``application.collaborator.update``
    identifiers: Tuple[EntityIdentifiers, ...] = ()
    data: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "identifiers": [ids.unique_id for ids in self.identifiers],
            "data": self.data,
            "occurred_at": self.occurred_at.isoformat(),
        }

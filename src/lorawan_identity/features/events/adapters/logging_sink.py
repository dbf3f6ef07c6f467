"""Event sink that writes events to the log."""

import json
import logging
from typing import Any, Dict, Optional, Sequence

from ....core.value_objects.identifiers import EntityIdentifiers
from ..entities.domain_event import DomainEvent
from ..entities.protocols import EventSink

logger = logging.getLogger(__name__)


class LoggingEventSink(EventSink):
    """Logs every event at info level."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    async def publish(
        self,
        name: str,
        identifiers: Sequence[EntityIdentifiers] = (),
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        event = DomainEvent(name=name, identifiers=tuple(identifiers), data=dict(data or {}))
        try:
            payload = json.dumps(event.to_dict(), default=str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize event {name}: {e}")
            return
        logger.log(self.level, f"Event {payload}")

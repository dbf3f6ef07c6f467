"""Events feature for lorawan-identity.

- entities/: the DomainEvent entity and the EventSink protocol
- adapters/: in-memory and logging sinks
"""

from .adapters import LoggingEventSink, MemoryEventSink
from .entities import DomainEvent, EventSink

__all__ = [
    "DomainEvent",
    "EventSink",
    "LoggingEventSink",
    "MemoryEventSink",
]

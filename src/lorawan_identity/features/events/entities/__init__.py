"""Event entities."""

from .domain_event import DomainEvent
from .protocols import EventSink

__all__ = ["DomainEvent", "EventSink"]

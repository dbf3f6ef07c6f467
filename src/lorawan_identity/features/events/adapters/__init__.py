"""Event sink adapters."""

from .logging_sink import LoggingEventSink
from .memory_sink import MemoryEventSink

__all__ = ["LoggingEventSink", "MemoryEventSink"]

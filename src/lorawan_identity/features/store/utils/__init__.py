"""Store utilities."""

from . import queries

__all__ = ["queries"]

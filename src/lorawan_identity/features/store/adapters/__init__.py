"""Identity store implementations."""

from .asyncpg_store import AsyncPGIdentityStore
from .memory_store import MemoryStore

__all__ = ["AsyncPGIdentityStore", "MemoryStore"]

"""Store feature for lorawan-identity.

- entities/: the combined store protocol
- adapters/: in-memory and PostgreSQL implementations
- utils/: SQL of the PostgreSQL implementation
"""

from .adapters import AsyncPGIdentityStore, MemoryStore
from .entities import IdentityStore

__all__ = ["AsyncPGIdentityStore", "IdentityStore", "MemoryStore"]

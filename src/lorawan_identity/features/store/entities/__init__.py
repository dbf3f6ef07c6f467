"""Store entities."""

from .protocols import IdentityStore

__all__ = ["IdentityStore"]

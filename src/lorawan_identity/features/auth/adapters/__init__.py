"""Auth adapters."""

from .memory_membership_cache import MemoryMembershipCache
from .redis_membership_cache import RedisMembershipCache

__all__ = [
    "MemoryMembershipCache",
    "RedisMembershipCache",
]

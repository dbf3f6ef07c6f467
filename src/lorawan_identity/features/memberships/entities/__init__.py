"""Membership entities."""

from .membership import Membership, MembershipChain, validate_membership
from .protocols import MembershipStore, TransactionManager

__all__ = [
    "Membership",
    "MembershipChain",
    "validate_membership",
    "MembershipStore",
    "TransactionManager",
]

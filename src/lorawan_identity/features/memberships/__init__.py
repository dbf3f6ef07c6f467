"""Memberships feature for lorawan-identity.

- entities/: memberships, membership chains and the membership store protocol
- services/: the rights resolver, the rights-delta guard and the access service
"""

from .entities import Membership, MembershipChain, MembershipStore, TransactionManager, validate_membership

__all__ = [
    "Membership",
    "MembershipChain",
    "MembershipStore",
    "TransactionManager",
    "validate_membership",
]

"""Invitations feature for lorawan-identity.

- entities/: the Invitation entity and its store protocol
- services/: sending and redeeming invitations
"""

from .entities import Invitation, InvitationStore

__all__ = [
    "Invitation",
    "InvitationStore",
]

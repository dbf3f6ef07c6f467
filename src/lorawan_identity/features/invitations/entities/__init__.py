"""Invitation entities."""

from .invitation import Invitation
from .protocols import InvitationStore

__all__ = ["Invitation", "InvitationStore"]

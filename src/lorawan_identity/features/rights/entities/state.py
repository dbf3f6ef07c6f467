"""Lifecycle states of users and OAuth clients."""

from enum import Enum


class State(str, Enum):
    """Entity state set by admins."""
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"
    SUSPENDED = "suspended"

    @property
    def grants_full_scope(self) -> bool:
        """Approved and flagged entities keep their full credential scope."""
        return self in (State.APPROVED, State.FLAGGED)

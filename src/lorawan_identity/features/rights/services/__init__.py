"""Rights services."""

from .state_guard import (
    StateRestriction,
    apply_user_state,
    ensure_client_usable,
    USER_STATE_RIGHTS,
    UNVALIDATED_EMAIL_RIGHTS,
)

__all__ = [
    "StateRestriction",
    "apply_user_state",
    "ensure_client_usable",
    "USER_STATE_RIGHTS",
    "UNVALIDATED_EMAIL_RIGHTS",
]

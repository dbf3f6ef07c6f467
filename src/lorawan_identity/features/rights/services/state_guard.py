"""State and lifecycle guards.

User states restrict the rights a credential grants before any membership
resolution happens. OAuth client states decide whether tokens issued to
the client authenticate at all.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from ....core.exceptions.auth import ClientStateDeniedError
from ..entities.right import Right
from ..entities.rights import Rights
from ..entities.state import State

logger = logging.getLogger(__name__)


USER_STATE_RIGHTS: Dict[State, Optional[Rights]] = {
    State.REQUESTED: Rights.of(
        Right.RIGHT_USER_INFO,
        Right.RIGHT_USER_SETTINGS_BASIC,
        Right.RIGHT_USER_DELETE,
    ),
    State.APPROVED: None,
    State.FLAGGED: None,
    State.REJECTED: Rights.of(Right.RIGHT_USER_INFO, Right.RIGHT_USER_DELETE),
    State.SUSPENDED: Rights.of(Right.RIGHT_USER_INFO),
}

UNVALIDATED_EMAIL_RIGHTS = Rights.of(
    Right.RIGHT_USER_INFO,
    Right.RIGHT_USER_SETTINGS_BASIC,
    Right.RIGHT_USER_DELETE,
)

# States that put a warning on the response
WARNING_STATES = frozenset({State.REJECTED, State.SUSPENDED})


@dataclass(frozen=True)
class StateRestriction:
    """Outcome of applying the user state to credential rights."""
    rights: Rights
    universal_rights: Rights
    restricted: bool = False
    warnings: List[str] = field(default_factory=list)


def apply_user_state(
    state: State,
    rights: Rights,
    universal_rights: Rights,
    state_description: Optional[str] = None,
    primary_email_validated_at: Optional[datetime] = None,
    require_validated_email: bool = False,
) -> StateRestriction:
    """Restrict credential rights according to the user state.

    Args:
        state: Current state of the user
        rights: Implied credential rights
        universal_rights: Implied universal rights
        state_description: Admin provided description of the state
        primary_email_validated_at: When the primary email was validated
        require_validated_email: Whether an unvalidated email restricts rights

    Returns:
        Restricted rights with the warnings to attach to the response
    """
    allowed = USER_STATE_RIGHTS[state]
    restricted = False
    warnings: List[str] = []

    if allowed is not None:
        rights = rights.intersect(allowed)
        universal_rights = universal_rights.intersect(allowed)
        restricted = True
    if state in WARNING_STATES:
        message = f"User is {state.value}"
        if state_description:
            message = f"{message}: {state_description}"
        warnings.append(message)

    if require_validated_email and primary_email_validated_at is None:
        rights = rights.intersect(UNVALIDATED_EMAIL_RIGHTS)
        universal_rights = universal_rights.intersect(UNVALIDATED_EMAIL_RIGHTS)
        restricted = True
        warnings.append("Primary email address is not validated")

    return StateRestriction(
        rights=rights,
        universal_rights=universal_rights,
        restricted=restricted,
        warnings=warnings,
    )


def ensure_client_usable(client_id: str, state: State, state_description: Optional[str] = None) -> None:
    """Reject rejected and suspended OAuth clients."""
    if state in (State.REJECTED, State.SUSPENDED):
        logger.warning(f"Denied access through {state.value} client {client_id}")
        raise ClientStateDeniedError(
            f"Client `{client_id}` is {state.value}",
            state=state.value,
            description=state_description,
        )

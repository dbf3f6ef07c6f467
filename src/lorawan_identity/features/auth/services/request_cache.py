"""Per-request authentication state.

The state of one request lives in a context variable so that every
coroutine serving the request sees the same memoized AuthInfo and rights,
and concurrent requests never share it. ``request_scope`` opens a fresh
state and restores the previous one on exit.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from ....core.value_objects.identifiers import EntityIdentifiers
from ...rights.entities.rights import Rights
from ..entities.auth_info import AuthInfo

logger = logging.getLogger(__name__)


@dataclass
class RequestAuthState:
    """Authentication inputs and memoized results of one request."""
    authorization: Optional[str] = None
    cluster_verified: bool = False
    auth_info: Optional[AuthInfo] = None
    entity_rights: Dict[EntityIdentifiers, Rights] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, warning: str) -> None:
        if warning not in self.warnings:
            self.warnings.append(warning)


_request_state: ContextVar[Optional[RequestAuthState]] = ContextVar(
    "lorawan_identity_request_state", default=None
)


@contextmanager
def request_scope(authorization: Optional[str] = None, cluster_verified: bool = False) -> Iterator[RequestAuthState]:
    """Open the authentication scope of a request."""
    state = RequestAuthState(authorization=authorization, cluster_verified=cluster_verified)
    token = _request_state.set(state)
    try:
        yield state
    finally:
        _request_state.reset(token)


def current_request_state() -> Optional[RequestAuthState]:
    """The state of the request being served, None outside a request scope."""
    return _request_state.get()


def forget_entity_rights(*entities: EntityIdentifiers) -> None:
    """Drop memoized rights after a mutation in the current request."""
    state = _request_state.get()
    if state is None:
        return
    if not entities:
        state.entity_rights.clear()
        return
    for entity in entities:
        state.entity_rights.pop(entity, None)

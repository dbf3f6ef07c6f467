"""Bearer token helpers.

Tokens have the form ``<kind>.<id>.<secret>``. IDs and secrets never
contain dots, so splitting on the first two dots is unambiguous.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ....config.constants import (
    AUTH_TYPE_BEARER,
    AUTH_TYPE_CLUSTER,
    TOKEN_KIND_ACCESS_TOKEN,
    TOKEN_KIND_API_KEY,
    TOKEN_KIND_SESSION,
)
from ....core.exceptions.auth import InvalidAuthorizationError, UnsupportedAuthorizationError

TOKEN_KINDS = frozenset({TOKEN_KIND_API_KEY, TOKEN_KIND_ACCESS_TOKEN, TOKEN_KIND_SESSION})


@dataclass(frozen=True)
class BearerToken:
    kind: str
    id: str
    secret: str

    def __str__(self) -> str:
        return format_token(self.kind, self.id, self.secret)


def format_token(kind: str, token_id: str, secret: str) -> str:
    return f"{kind}.{token_id}.{secret}"


def split_authorization(value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split an authorization header into its lowercased type and its value."""
    if value is None or not value.strip():
        return None
    auth_type, _, auth_value = value.strip().partition(" ")
    auth_type = auth_type.lower()
    if auth_type not in (AUTH_TYPE_BEARER, AUTH_TYPE_CLUSTER):
        raise UnsupportedAuthorizationError(
            f"Unsupported authorization type `{auth_type}`",
            details={"type": auth_type},
        )
    auth_value = auth_value.strip()
    if not auth_value:
        raise InvalidAuthorizationError("Missing authorization value")
    return auth_type, auth_value


def parse_token(value: str) -> BearerToken:
    """Parse a bearer token.

    Raises:
        UnsupportedAuthorizationError: Unknown token kind
        InvalidAuthorizationError: Malformed token
    """
    parts = value.split(".", 2)
    if len(parts) != 3:
        raise InvalidAuthorizationError("Malformed bearer token")
    kind, token_id, secret = parts
    if kind not in TOKEN_KINDS:
        raise UnsupportedAuthorizationError(
            f"Unsupported token kind `{kind}`",
            details={"kind": kind},
        )
    if not token_id or not secret:
        raise InvalidAuthorizationError("Malformed bearer token")
    return BearerToken(kind=kind, id=token_id, secret=secret)

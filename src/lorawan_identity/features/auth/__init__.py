"""Auth feature for lorawan-identity.

- entities/: credentials, AuthInfo and the credential store protocols
- services/: credential resolution and the per-request auth state
- adapters/: membership caches backed by Redis and process memory
- utils/: bearer token parsing

Services are imported from their subpackages; the package level only
exposes entities so that store protocols can import them without cycles.
"""

from .entities import (
    AccessMethod,
    APIKey,
    AuthInfo,
    MembershipCache,
    OAuthAccessToken,
    OAuthAuthorization,
    UserSession,
)

__all__ = [
    "AccessMethod",
    "APIKey",
    "AuthInfo",
    "MembershipCache",
    "OAuthAccessToken",
    "OAuthAuthorization",
    "UserSession",
]

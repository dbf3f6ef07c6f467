"""Auth entities."""

from .auth_info import AccessMethod, AuthInfo
from .credentials import APIKey, OAuthAccessToken, OAuthAuthorization, UserSession
from .protocols import APIKeyStore, MembershipCache, OAuthStore, UserSessionStore

__all__ = [
    # Auth info
    "AccessMethod",
    "AuthInfo",

    # Credentials
    "APIKey",
    "OAuthAccessToken",
    "OAuthAuthorization",
    "UserSession",

    # Protocols
    "APIKeyStore",
    "MembershipCache",
    "OAuthStore",
    "UserSessionStore",
]

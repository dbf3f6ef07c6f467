"""OAuth services."""

from .authorization_registry import OAuthAuthorizationRegistry

__all__ = ["OAuthAuthorizationRegistry"]

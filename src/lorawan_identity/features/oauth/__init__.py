"""OAuth feature for lorawan-identity.

Authorizations users granted to OAuth clients and the access tokens
issued under them.
"""

from .services import OAuthAuthorizationRegistry

__all__ = ["OAuthAuthorizationRegistry"]

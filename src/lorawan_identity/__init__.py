"""lorawan-identity - authorization core of a LoRaWAN identity server.

Resolves the rights a request's credentials hold on applications,
clients, gateways, organizations and users, guards changes to those
rights, and runs the entity registry, email validation and invitation
flows on top of them.
"""

from .__version__ import __version__

from .config import IdentityServerSettings, SettingsHolder, get_settings, setup_logging

from .core.exceptions import (
    IdentityServerError,
    AuthenticationError,
    AuthorizationError,
    PermissionDeniedError,
    NotFoundError,
    get_http_status_code,
    create_error_response,
)

from .core.value_objects import EntityIdentifiers, EntityKind

from .features.rights import Right, Rights, State

from .container import ServiceContainer, build_container

__all__ = [
    "__version__",
    # Configuration
    "IdentityServerSettings",
    "SettingsHolder",
    "get_settings",
    "setup_logging",
    # Exceptions
    "IdentityServerError",
    "AuthenticationError",
    "AuthorizationError",
    "PermissionDeniedError",
    "NotFoundError",
    "get_http_status_code",
    "create_error_response",
    # Identifiers
    "EntityIdentifiers",
    "EntityKind",
    # Rights
    "Right",
    "Rights",
    "State",
    # Services
    "ServiceContainer",
    "build_container",
]

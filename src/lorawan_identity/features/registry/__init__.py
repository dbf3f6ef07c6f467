"""Registry feature for lorawan-identity.

- entities/: applications, clients, gateways, organizations and users
- services/: the entity registry
"""

from .entities import (
    Application,
    Client,
    ContactInfo,
    Entity,
    EntityStore,
    Gateway,
    Organization,
    User,
    entity_type,
)

__all__ = [
    "Application",
    "Client",
    "ContactInfo",
    "Entity",
    "EntityStore",
    "Gateway",
    "Organization",
    "User",
    "entity_type",
]

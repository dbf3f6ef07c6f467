"""Registry entities."""

from .entity import (
    Application,
    Client,
    ContactInfo,
    ContactMethod,
    ContactType,
    Entity,
    ENTITY_TYPES,
    Gateway,
    Organization,
    User,
    entity_type,
)
from .protocols import EntityStore

__all__ = [
    "Application",
    "Client",
    "ContactInfo",
    "ContactMethod",
    "ContactType",
    "Entity",
    "ENTITY_TYPES",
    "Gateway",
    "Organization",
    "User",
    "entity_type",
    "EntityStore",
]

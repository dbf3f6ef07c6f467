"""Registry services."""

from .registry_service import (
    CREATE_RIGHT,
    DELETE_RIGHT,
    INFO_RIGHT,
    LIST_RIGHT,
    SETTINGS_BASIC_RIGHT,
    EntityRegistry,
    apply_update,
    new_entity,
    project,
)

__all__ = [
    "CREATE_RIGHT",
    "DELETE_RIGHT",
    "INFO_RIGHT",
    "LIST_RIGHT",
    "SETTINGS_BASIC_RIGHT",
    "EntityRegistry",
    "apply_update",
    "new_entity",
    "project",
]

"""Right enumeration.

Rights are grouped into families, one per entity kind, plus universal
rights that do not belong to a kind. Each family has an ``*_ALL`` right
that implies every right of the family.
"""

from enum import Enum
from typing import Optional

from ....core.value_objects.identifiers import EntityKind


class Right(str, Enum):
    """Fine-grained rights known to the identity server."""

    # User rights
    RIGHT_USER_INFO = "RIGHT_USER_INFO"
    RIGHT_USER_SETTINGS_BASIC = "RIGHT_USER_SETTINGS_BASIC"
    RIGHT_USER_SETTINGS_API_KEYS = "RIGHT_USER_SETTINGS_API_KEYS"
    RIGHT_USER_DELETE = "RIGHT_USER_DELETE"
    RIGHT_USER_PURGE = "RIGHT_USER_PURGE"
    RIGHT_USER_AUTHORIZED_CLIENTS = "RIGHT_USER_AUTHORIZED_CLIENTS"
    RIGHT_USER_APPLICATIONS_LIST = "RIGHT_USER_APPLICATIONS_LIST"
    RIGHT_USER_APPLICATIONS_CREATE = "RIGHT_USER_APPLICATIONS_CREATE"
    RIGHT_USER_GATEWAYS_LIST = "RIGHT_USER_GATEWAYS_LIST"
    RIGHT_USER_GATEWAYS_CREATE = "RIGHT_USER_GATEWAYS_CREATE"
    RIGHT_USER_CLIENTS_LIST = "RIGHT_USER_CLIENTS_LIST"
    RIGHT_USER_CLIENTS_CREATE = "RIGHT_USER_CLIENTS_CREATE"
    RIGHT_USER_ORGANIZATIONS_LIST = "RIGHT_USER_ORGANIZATIONS_LIST"
    RIGHT_USER_ORGANIZATIONS_CREATE = "RIGHT_USER_ORGANIZATIONS_CREATE"
    RIGHT_USER_NOTIFICATIONS_READ = "RIGHT_USER_NOTIFICATIONS_READ"
    RIGHT_USER_ALL = "RIGHT_USER_ALL"

    # Application rights
    RIGHT_APPLICATION_INFO = "RIGHT_APPLICATION_INFO"
    RIGHT_APPLICATION_SETTINGS_BASIC = "RIGHT_APPLICATION_SETTINGS_BASIC"
    RIGHT_APPLICATION_SETTINGS_API_KEYS = "RIGHT_APPLICATION_SETTINGS_API_KEYS"
    RIGHT_APPLICATION_SETTINGS_COLLABORATORS = "RIGHT_APPLICATION_SETTINGS_COLLABORATORS"
    RIGHT_APPLICATION_SETTINGS_PACKAGES = "RIGHT_APPLICATION_SETTINGS_PACKAGES"
    RIGHT_APPLICATION_DELETE = "RIGHT_APPLICATION_DELETE"
    RIGHT_APPLICATION_PURGE = "RIGHT_APPLICATION_PURGE"
    RIGHT_APPLICATION_DEVICES_READ = "RIGHT_APPLICATION_DEVICES_READ"
    RIGHT_APPLICATION_DEVICES_WRITE = "RIGHT_APPLICATION_DEVICES_WRITE"
    RIGHT_APPLICATION_DEVICES_READ_KEYS = "RIGHT_APPLICATION_DEVICES_READ_KEYS"
    RIGHT_APPLICATION_DEVICES_WRITE_KEYS = "RIGHT_APPLICATION_DEVICES_WRITE_KEYS"
    RIGHT_APPLICATION_TRAFFIC_READ = "RIGHT_APPLICATION_TRAFFIC_READ"
    RIGHT_APPLICATION_TRAFFIC_UP_WRITE = "RIGHT_APPLICATION_TRAFFIC_UP_WRITE"
    RIGHT_APPLICATION_TRAFFIC_DOWN_WRITE = "RIGHT_APPLICATION_TRAFFIC_DOWN_WRITE"
    RIGHT_APPLICATION_LINK = "RIGHT_APPLICATION_LINK"
    RIGHT_APPLICATION_ALL = "RIGHT_APPLICATION_ALL"

    # Client rights
    RIGHT_CLIENT_INFO = "RIGHT_CLIENT_INFO"
    RIGHT_CLIENT_SETTINGS_BASIC = "RIGHT_CLIENT_SETTINGS_BASIC"
    RIGHT_CLIENT_SETTINGS_COLLABORATORS = "RIGHT_CLIENT_SETTINGS_COLLABORATORS"
    RIGHT_CLIENT_DELETE = "RIGHT_CLIENT_DELETE"
    RIGHT_CLIENT_PURGE = "RIGHT_CLIENT_PURGE"
    RIGHT_CLIENT_ALL = "RIGHT_CLIENT_ALL"

    # Gateway rights
    RIGHT_GATEWAY_INFO = "RIGHT_GATEWAY_INFO"
    RIGHT_GATEWAY_SETTINGS_BASIC = "RIGHT_GATEWAY_SETTINGS_BASIC"
    RIGHT_GATEWAY_SETTINGS_API_KEYS = "RIGHT_GATEWAY_SETTINGS_API_KEYS"
    RIGHT_GATEWAY_SETTINGS_COLLABORATORS = "RIGHT_GATEWAY_SETTINGS_COLLABORATORS"
    RIGHT_GATEWAY_DELETE = "RIGHT_GATEWAY_DELETE"
    RIGHT_GATEWAY_PURGE = "RIGHT_GATEWAY_PURGE"
    RIGHT_GATEWAY_TRAFFIC_READ = "RIGHT_GATEWAY_TRAFFIC_READ"
    RIGHT_GATEWAY_TRAFFIC_DOWN_WRITE = "RIGHT_GATEWAY_TRAFFIC_DOWN_WRITE"
    RIGHT_GATEWAY_LINK = "RIGHT_GATEWAY_LINK"
    RIGHT_GATEWAY_STATUS_READ = "RIGHT_GATEWAY_STATUS_READ"
    RIGHT_GATEWAY_LOCATION_READ = "RIGHT_GATEWAY_LOCATION_READ"
    RIGHT_GATEWAY_WRITE_SECRETS = "RIGHT_GATEWAY_WRITE_SECRETS"
    RIGHT_GATEWAY_READ_SECRETS = "RIGHT_GATEWAY_READ_SECRETS"
    RIGHT_GATEWAY_ALL = "RIGHT_GATEWAY_ALL"

    # Organization rights
    RIGHT_ORGANIZATION_INFO = "RIGHT_ORGANIZATION_INFO"
    RIGHT_ORGANIZATION_SETTINGS_BASIC = "RIGHT_ORGANIZATION_SETTINGS_BASIC"
    RIGHT_ORGANIZATION_SETTINGS_API_KEYS = "RIGHT_ORGANIZATION_SETTINGS_API_KEYS"
    RIGHT_ORGANIZATION_SETTINGS_MEMBERS = "RIGHT_ORGANIZATION_SETTINGS_MEMBERS"
    RIGHT_ORGANIZATION_DELETE = "RIGHT_ORGANIZATION_DELETE"
    RIGHT_ORGANIZATION_PURGE = "RIGHT_ORGANIZATION_PURGE"
    RIGHT_ORGANIZATION_APPLICATIONS_LIST = "RIGHT_ORGANIZATION_APPLICATIONS_LIST"
    RIGHT_ORGANIZATION_APPLICATIONS_CREATE = "RIGHT_ORGANIZATION_APPLICATIONS_CREATE"
    RIGHT_ORGANIZATION_GATEWAYS_LIST = "RIGHT_ORGANIZATION_GATEWAYS_LIST"
    RIGHT_ORGANIZATION_GATEWAYS_CREATE = "RIGHT_ORGANIZATION_GATEWAYS_CREATE"
    RIGHT_ORGANIZATION_CLIENTS_LIST = "RIGHT_ORGANIZATION_CLIENTS_LIST"
    RIGHT_ORGANIZATION_CLIENTS_CREATE = "RIGHT_ORGANIZATION_CLIENTS_CREATE"
    RIGHT_ORGANIZATION_ADD_AS_COLLABORATOR = "RIGHT_ORGANIZATION_ADD_AS_COLLABORATOR"
    RIGHT_ORGANIZATION_ALL = "RIGHT_ORGANIZATION_ALL"

    # Universal rights
    RIGHT_SEND_INVITES = "RIGHT_SEND_INVITES"
    RIGHT_ALL = "RIGHT_ALL"

    @property
    def family(self) -> Optional[EntityKind]:
        """Entity kind this right belongs to, None for universal rights."""
        return _FAMILY_PREFIXES.get(self.value.split("_")[1])

    @property
    def is_all(self) -> bool:
        return self.value.endswith("_ALL")

    def __str__(self) -> str:
        return self.value


_FAMILY_PREFIXES = {
    "USER": EntityKind.USER,
    "APPLICATION": EntityKind.APPLICATION,
    "CLIENT": EntityKind.CLIENT,
    "GATEWAY": EntityKind.GATEWAY,
    "ORGANIZATION": EntityKind.ORGANIZATION,
}

# Declaration order, used to sort rights deterministically
RIGHT_ORDER = {right: index for index, right in enumerate(Right)}

ALL_RIGHT_BY_KIND = {
    EntityKind.USER: Right.RIGHT_USER_ALL,
    EntityKind.APPLICATION: Right.RIGHT_APPLICATION_ALL,
    EntityKind.CLIENT: Right.RIGHT_CLIENT_ALL,
    EntityKind.GATEWAY: Right.RIGHT_GATEWAY_ALL,
    EntityKind.ORGANIZATION: Right.RIGHT_ORGANIZATION_ALL,
    EntityKind.END_DEVICE: Right.RIGHT_APPLICATION_ALL,
}


def all_right_for(kind: EntityKind) -> Right:
    """The ``*_ALL`` right of an entity kind."""
    return ALL_RIGHT_BY_KIND[kind]

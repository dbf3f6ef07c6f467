"""Value objects for entity identifiers.

Entities are addressed by their kind and a human readable ID that is
unique within the kind. Identifiers are immutable and validated on
construction.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from ..exceptions.domain import InvalidEmailError, InvalidIdentifierError


ID_PATTERN = re.compile(r"^[a-z0-9](?:[-]?[a-z0-9]){2,}$")
ID_MAX_LENGTH = 36
_EMAIL_ADAPTER = TypeAdapter(EmailStr)


class EntityKind(str, Enum):
    """Kinds of entities known to the identity server."""
    APPLICATION = "application"
    CLIENT = "client"
    GATEWAY = "gateway"
    ORGANIZATION = "organization"
    USER = "user"
    END_DEVICE = "end_device"

    @property
    def is_account(self) -> bool:
        """Accounts are the kinds that can hold rights on other entities."""
        return self in (EntityKind.USER, EntityKind.ORGANIZATION)

    @property
    def can_have_members(self) -> bool:
        return self in (
            EntityKind.APPLICATION,
            EntityKind.CLIENT,
            EntityKind.GATEWAY,
            EntityKind.ORGANIZATION,
        )


def is_valid_id(value: str) -> bool:
    """Check an entity ID against the ID syntax."""
    return (
        isinstance(value, str)
        and len(value) <= ID_MAX_LENGTH
        and ID_PATTERN.match(value) is not None
    )


@dataclass(frozen=True)
class EntityIdentifiers:
    """Identifiers of an entity: its kind and its ID within the kind."""
    kind: EntityKind
    id: str

    def __post_init__(self):
        if not isinstance(self.kind, EntityKind):
            try:
                object.__setattr__(self, "kind", EntityKind(self.kind))
            except ValueError:
                raise InvalidIdentifierError(
                    f"Unknown entity kind: {self.kind}",
                    details={"kind": str(self.kind)},
                )
        if not is_valid_id(self.id):
            raise InvalidIdentifierError(
                f"Invalid {self.kind.value} ID: {self.id!r}",
                details={"kind": self.kind.value, "id": str(self.id)},
            )

    @classmethod
    def parse(cls, value: str) -> "EntityIdentifiers":
        """Parse the ``kind:id`` form produced by ``unique_id``."""
        kind, sep, entity_id = value.partition(":")
        if not sep:
            raise InvalidIdentifierError(f"Invalid entity reference: {value!r}")
        return cls(kind, entity_id)

    @property
    def is_account(self) -> bool:
        return self.kind.is_account

    @property
    def unique_id(self) -> str:
        """Globally unique string form of the identifiers."""
        return f"{self.kind.value}:{self.id}"

    def __str__(self) -> str:
        return self.unique_id

    def __repr__(self) -> str:
        return f"EntityIdentifiers(kind={self.kind.value!r}, id={self.id!r})"


def user_ids(user_id: str) -> EntityIdentifiers:
    return EntityIdentifiers(EntityKind.USER, user_id)


def organization_ids(organization_id: str) -> EntityIdentifiers:
    return EntityIdentifiers(EntityKind.ORGANIZATION, organization_id)


def application_ids(application_id: str) -> EntityIdentifiers:
    return EntityIdentifiers(EntityKind.APPLICATION, application_id)


def client_ids(client_id: str) -> EntityIdentifiers:
    return EntityIdentifiers(EntityKind.CLIENT, client_id)


def gateway_ids(gateway_id: str) -> EntityIdentifiers:
    return EntityIdentifiers(EntityKind.GATEWAY, gateway_id)


def validate_email(address: Optional[str]) -> str:
    """Validate and normalize an email address as pydantic's ``EmailStr`` does."""
    try:
        return _EMAIL_ADAPTER.validate_python((address or "").strip())
    except ValidationError as e:
        raise InvalidEmailError(
            f"Invalid email address: {address!r}",
            details={"email": address or ""},
        ) from e

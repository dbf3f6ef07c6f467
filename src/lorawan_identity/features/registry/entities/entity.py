"""Registry entities.

Applications, clients, gateways, organizations and users share the
identification, description and contact info fields of ``Entity``; each
kind adds its own fields. ``to_dict`` produces the user-observable
representation and never includes password or secret material.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Type, TypeVar

from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...rights.entities.rights import Rights
from ...rights.entities.state import State


E = TypeVar("E", bound="Entity")


class ContactType:
    OTHER = "other"
    ABUSE = "abuse"
    BILLING = "billing"
    TECHNICAL = "technical"


class ContactMethod:
    OTHER = "other"
    EMAIL = "email"
    PHONE = "phone"


@dataclass
class ContactInfo:
    """A contact record of an entity."""
    contact_type: str = ContactType.OTHER
    contact_method: str = ContactMethod.EMAIL
    value: str = ""
    public: bool = False
    validated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contact_type": self.contact_type,
            "contact_method": self.contact_method,
            "value": self.value,
            "public": self.public,
            "validated_at": self.validated_at.isoformat() if self.validated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContactInfo":
        return cls(
            contact_type=data.get("contact_type", ContactType.OTHER),
            contact_method=data.get("contact_method", ContactMethod.EMAIL),
            value=data.get("value", ""),
            public=bool(data.get("public", False)),
            validated_at=_parse_datetime(data.get("validated_at")),
        )


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _dump(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Rights):
        return value.to_list()
    if isinstance(value, EntityIdentifiers):
        return value.unique_id
    if isinstance(value, State):
        return value.value
    if isinstance(value, ContactInfo):
        return value.to_dict()
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump(item) for key, item in value.items()}
    return value


@dataclass
class Entity:
    """Fields shared by every registry entity."""

    KIND: ClassVar[EntityKind]
    # Paths callers may set through Update
    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"name", "description", "attributes", "contact_info"}
    )
    # Paths only admins may set through Create or Update
    ADMIN_FIELDS: ClassVar[FrozenSet[str]] = frozenset()
    # Fields never exposed; stored but not returned
    SECRET_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    ids: EntityIdentifiers
    name: str = ""
    description: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    contact_info: List[ContactInfo] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def field_paths(cls) -> FrozenSet[str]:
        """Every user-observable top level field."""
        return frozenset(
            f.name for f in fields(cls) if f.name not in cls.SECRET_FIELDS
        )

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        """Dictionary representation; ``ids`` is rendered as the entity ID."""
        data: Dict[str, Any] = {}
        for f in fields(self):
            if f.name in self.SECRET_FIELDS and not include_secrets:
                continue
            value = getattr(self, f.name)
            if f.name == "ids":
                data["ids"] = {"kind": value.kind.value, "id": value.id}
                continue
            data[f.name] = _dump(value)
        return data

    @classmethod
    def from_dict(cls: Type[E], data: Dict[str, Any]) -> E:
        """Build an entity from ``to_dict(include_secrets=True)`` output."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for name, value in data.items():
            if name not in known:
                continue
            if name == "ids":
                value = EntityIdentifiers(value["kind"], value["id"]) if isinstance(value, dict) else EntityIdentifiers.parse(value)
            elif name == "contact_info":
                value = [ContactInfo.from_dict(item) for item in value or []]
            elif name.endswith("_at"):
                value = _parse_datetime(value)
            elif name == "state" and value is not None:
                value = State(value)
            elif name == "rights":
                value = Rights(value or [])
            kwargs[name] = value
        return cls(**kwargs)


@dataclass
class Application(Entity):
    """A LoRaWAN application that groups end devices."""
    KIND: ClassVar[EntityKind] = EntityKind.APPLICATION


@dataclass
class Organization(Entity):
    """An organization; an account whose members share its rights."""
    KIND: ClassVar[EntityKind] = EntityKind.ORGANIZATION


@dataclass
class Gateway(Entity):
    """A LoRaWAN gateway."""
    KIND: ClassVar[EntityKind] = EntityKind.GATEWAY
    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = Entity.UPDATABLE_FIELDS | frozenset(
        {"gateway_eui", "frequency_plan_id", "status_public", "location_public"}
    )

    gateway_eui: Optional[str] = None
    frequency_plan_id: str = ""
    status_public: bool = False
    location_public: bool = False

    def __post_init__(self):
        if self.gateway_eui:
            self.gateway_eui = self.gateway_eui.upper()


@dataclass
class Client(Entity):
    """An OAuth client."""
    KIND: ClassVar[EntityKind] = EntityKind.CLIENT
    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = Entity.UPDATABLE_FIELDS | frozenset(
        {"redirect_uris", "logout_redirect_uris", "grants", "rights",
         "state", "state_description", "skip_authorization", "endorsed"}
    )
    ADMIN_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"state", "state_description", "skip_authorization", "endorsed"}
    )
    SECRET_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"secret"})

    secret: Optional[str] = None
    redirect_uris: List[str] = field(default_factory=list)
    logout_redirect_uris: List[str] = field(default_factory=list)
    state: State = State.REQUESTED
    state_description: str = ""
    skip_authorization: bool = False
    endorsed: bool = False
    grants: List[str] = field(default_factory=list)
    rights: Rights = field(default_factory=Rights)


@dataclass
class User(Entity):
    """A user account."""
    KIND: ClassVar[EntityKind] = EntityKind.USER
    UPDATABLE_FIELDS: ClassVar[FrozenSet[str]] = Entity.UPDATABLE_FIELDS | frozenset(
        {"primary_email_address", "primary_email_address_validated_at",
         "state", "state_description", "admin", "require_password_update",
         "temporary_password_created_at", "temporary_password_expires_at"}
    )
    ADMIN_FIELDS: ClassVar[FrozenSet[str]] = frozenset(
        {"primary_email_address_validated_at", "state", "state_description",
         "admin", "require_password_update",
         "temporary_password_created_at", "temporary_password_expires_at"}
    )
    SECRET_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"password", "temporary_password"})

    primary_email_address: str = ""
    primary_email_address_validated_at: Optional[datetime] = None
    state: State = State.REQUESTED
    state_description: str = ""
    admin: bool = False
    password: Optional[str] = None
    password_updated_at: Optional[datetime] = None
    require_password_update: bool = False
    temporary_password: Optional[str] = None
    temporary_password_created_at: Optional[datetime] = None
    temporary_password_expires_at: Optional[datetime] = None


ENTITY_TYPES: Dict[EntityKind, Type[Entity]] = {
    EntityKind.APPLICATION: Application,
    EntityKind.CLIENT: Client,
    EntityKind.GATEWAY: Gateway,
    EntityKind.ORGANIZATION: Organization,
    EntityKind.USER: User,
}


def entity_type(kind: EntityKind) -> Type[Entity]:
    """Entity class of a kind."""
    return ENTITY_TYPES[kind]

"""Membership entities.

A membership states that an account (a user or an organization) holds
rights on an entity. Users also reach entities through the organizations
they are member of; such a path is a two-hop ``MembershipChain``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ....core.exceptions.domain import InvalidMembershipError
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...rights.entities.rights import Rights


def validate_membership(account: EntityIdentifiers, entity: EntityIdentifiers) -> None:
    """Reject illegal account and entity kind combinations.

    Accounts are users and organizations; organizations cannot be members
    of organizations, and users and end devices have no members.
    """
    if not account.is_account:
        raise InvalidMembershipError(
            f"{account.kind.value} cannot be a member",
            details={"account": account.unique_id, "entity": entity.unique_id},
        )
    if not entity.kind.can_have_members:
        raise InvalidMembershipError(
            f"{entity.kind.value} cannot have members",
            details={"account": account.unique_id, "entity": entity.unique_id},
        )
    if account.kind == EntityKind.ORGANIZATION and entity.kind == EntityKind.ORGANIZATION:
        raise InvalidMembershipError(
            "organization cannot be a member of an organization",
            details={"account": account.unique_id, "entity": entity.unique_id},
        )


@dataclass(frozen=True)
class Membership:
    """Rights an account holds on an entity."""
    account: EntityIdentifiers
    entity: EntityIdentifiers
    rights: Rights = field(default_factory=Rights)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": {"kind": self.account.kind.value, "id": self.account.id},
            "entity": {"kind": self.entity.kind.value, "id": self.entity.id},
            "rights": self.rights.to_list(),
        }


@dataclass(frozen=True)
class MembershipChain:
    """Path through which an account holds rights on an entity.

    Direct chains carry the rights on the entity only; indirect chains also
    carry the organization in between and the rights on it.
    """
    account: EntityIdentifiers
    entity: EntityIdentifiers
    rights_on_entity: Rights
    organization: Optional[EntityIdentifiers] = None
    rights_on_organization: Optional[Rights] = None

    @property
    def is_direct(self) -> bool:
        return self.organization is None

    def effective_rights(self) -> Rights:
        """Intersection of the implied rights at each hop."""
        rights = self.rights_on_entity.implied()
        if self.organization is not None:
            rights = rights.intersect((self.rights_on_organization or Rights()).implied())
        return rights

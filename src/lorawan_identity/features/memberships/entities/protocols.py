"""Protocol interfaces for membership storage.

The membership store is the narrow capability the rights resolver and the
access services consume. All multi-step mutations run inside a store
transaction.
"""

from abc import abstractmethod
from typing import AsyncContextManager, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ...rights.entities.rights import Rights
from .membership import MembershipChain


@runtime_checkable
class TransactionManager(Protocol):
    """Protocol for store transactions."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """Open a transaction; nested calls join the open transaction."""
        ...

    @abstractmethod
    async def lock_entity(self, entity: EntityIdentifiers) -> None:
        """Lock the row of an entity until the transaction ends."""
        ...


@runtime_checkable
class MembershipStore(Protocol):
    """Protocol for direct and indirect memberships."""

    @abstractmethod
    async def get_member(self, account: EntityIdentifiers, entity: EntityIdentifiers) -> Rights:
        """Get the implied rights of a direct member.

        Raises:
            MemberNotFoundError: The account is not a member of the entity
        """
        ...

    @abstractmethod
    async def find_members(
        self, entity: EntityIdentifiers, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[Dict[EntityIdentifiers, Rights], int]:
        """Get the direct members of an entity with the total count."""
        ...

    @abstractmethod
    async def find_memberships(
        self, account: EntityIdentifiers, entity_kind: EntityKind, include_indirect: bool = False
    ) -> List[EntityIdentifiers]:
        """Get the entities of a kind the account is member of."""
        ...

    @abstractmethod
    async def find_account_membership_chains(
        self, account: EntityIdentifiers, entity_kind: EntityKind, *entity_ids: str
    ) -> List[MembershipChain]:
        """Get the chains through which an account holds rights on entities.

        Without entity IDs every entity of the kind is considered.
        """
        ...

    @abstractmethod
    async def set_member(
        self, account: EntityIdentifiers, entity: EntityIdentifiers, rights: Rights
    ) -> None:
        """Create or update a membership; empty rights delete it.

        Raises:
            InvalidMembershipError: Illegal account and entity kinds
        """
        ...

    @abstractmethod
    async def find_member_rights(
        self, account: EntityIdentifiers, entity_kind: EntityKind
    ) -> Dict[EntityIdentifiers, Rights]:
        """Get the direct rights of an account on entities of a kind."""
        ...

    @abstractmethod
    async def delete_member(self, account: EntityIdentifiers, entity: EntityIdentifiers) -> None:
        """Delete a membership.

        Raises:
            MemberNotFoundError: The account is not a member of the entity
        """
        ...

    @abstractmethod
    async def delete_entity_members(self, entity: EntityIdentifiers) -> None:
        """Delete every membership on an entity."""
        ...

    @abstractmethod
    async def delete_account_members(self, account: EntityIdentifiers) -> None:
        """Delete every membership of an account."""
        ...

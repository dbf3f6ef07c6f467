"""Protocol interfaces for invitation storage."""

from abc import abstractmethod
from datetime import datetime
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from ....core.value_objects.identifiers import EntityIdentifiers
from .invitation import Invitation


@runtime_checkable
class InvitationStore(Protocol):
    """Protocol for invitation persistence."""

    @abstractmethod
    async def create_invitation(self, invitation: Invitation) -> Invitation:
        """Persist an invitation.

        Raises:
            InvitationAlreadySentError: A pending invitation exists for the email
        """
        ...

    @abstractmethod
    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        ...

    @abstractmethod
    async def list_invitations(
        self, limit: Optional[int] = None, offset: int = 0
    ) -> Tuple[List[Invitation], int]:
        ...

    @abstractmethod
    async def accept_invitation(
        self, invitation_id: str, user_ids: EntityIdentifiers, accepted_at: datetime
    ) -> None:
        ...

    @abstractmethod
    async def delete_invitation(self, invitation_id: str) -> None:
        ...

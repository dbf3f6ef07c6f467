"""Invitation router."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Path, Response, status

from ....api.dependencies import get_container, page_request, set_total_count
from ....container import ServiceContainer
from ....utils.pagination import PageRequest
from ..models.requests import SendInvitationRequest


router = APIRouter(
    prefix="/api/v3/invitations",
    tags=["Invitations"],
    responses={
        401: {"description": "Unauthenticated"},
        403: {"description": "Permission denied"},
    },
)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Send invitation")
async def send_invitation(
    request: SendInvitationRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    invitation = await container.invitations.send_invitation(request.email)
    return invitation.to_dict()


@router.get("", summary="List invitations")
async def list_invitations(
    response: Response,
    page: PageRequest = Depends(page_request),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    invitations, total = await container.invitations.list_invitations(page)
    set_total_count(response, total)
    return {"invitations": [invitation.to_dict() for invitation in invitations]}


@router.delete("/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete invitation")
async def delete_invitation(
    invitation_id: str = Path(..., description="Invitation ID"),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.invitations.delete_invitation(invitation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

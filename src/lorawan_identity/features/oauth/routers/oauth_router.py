"""OAuth authorization router.

Users review and revoke the clients they authorized and the access
tokens issued to those clients.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Path, Response, status

from ....api.dependencies import get_container, page_request, set_total_count
from ....container import ServiceContainer
from ....core.value_objects.identifiers import client_ids, user_ids
from ....utils.pagination import PageRequest


router = APIRouter(
    prefix="/api/v3/users/{user_id}/authorizations",
    tags=["OAuth authorizations"],
    responses={
        401: {"description": "Unauthenticated"},
        403: {"description": "Permission denied"},
        404: {"description": "Authorization not found"},
    },
)


@router.get("", summary="List authorized clients")
async def list_authorizations(
    response: Response,
    user_id: str = Path(...),
    page: PageRequest = Depends(page_request),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    authorizations, total = await container.oauth.list_authorizations(user_ids(user_id), page)
    set_total_count(response, total)
    return {"authorizations": [authorization.to_dict() for authorization in authorizations]}


@router.get("/{client_id}/tokens", summary="List access tokens of an authorized client")
async def list_tokens(
    response: Response,
    user_id: str = Path(...),
    client_id: str = Path(...),
    page: PageRequest = Depends(page_request),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    tokens, total = await container.oauth.list_tokens(user_ids(user_id), client_ids(client_id), page)
    set_total_count(response, total)
    return {"tokens": [token.to_dict() for token in tokens]}


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Revoke authorization")
async def delete_authorization(
    user_id: str = Path(...),
    client_id: str = Path(...),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.oauth.delete_authorization(user_ids(user_id), client_ids(client_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{client_id}/tokens/{token_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Revoke access token")
async def delete_token(
    user_id: str = Path(...),
    client_id: str = Path(...),
    token_id: str = Path(...),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.oauth.delete_token(user_ids(user_id), client_ids(client_id), token_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

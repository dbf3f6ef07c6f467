"""Entity access routers.

Serve the rights of the caller, API keys and collaborators of an entity
kind under ``/api/v3/<kind>s/{id}``. Kinds without API keys or without
collaborators get no such routes.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Path, Response, status

from ....api.dependencies import get_container, page_request, path_segment, set_total_count
from ....container import ServiceContainer
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ....utils.datetime import ensure_utc
from ....utils.pagination import PageRequest
from ...rights.entities.rights import Rights
from ..models.requests import CreateAPIKeyRequest, SetCollaboratorRequest, UpdateAPIKeyRequest
from ..services.access_service import API_KEYS_RIGHT


def build_access_router(kind: EntityKind) -> APIRouter:
    """Access router of an entity kind."""
    segment = path_segment(kind)
    router = APIRouter(
        prefix=f"/api/v3/{segment}",
        tags=[f"{segment.capitalize()} access"],
        responses={
            401: {"description": "Unauthenticated"},
            403: {"description": "Permission denied"},
        },
    )

    def ids_of(entity_id: str) -> EntityIdentifiers:
        return EntityIdentifiers(kind, entity_id)

    @router.get("/{entity_id}/rights", summary=f"Rights of the caller on a {kind.value}")
    async def list_rights(
        entity_id: str = Path(...),
        container: ServiceContainer = Depends(get_container),
    ) -> Dict[str, Any]:
        rights = await container.access.list_rights(ids_of(entity_id))
        return {"rights": rights.to_list()}

    if kind in API_KEYS_RIGHT:

        @router.post("/{entity_id}/api-keys", status_code=status.HTTP_201_CREATED, summary="Create API key")
        async def create_api_key(
            request: CreateAPIKeyRequest,
            entity_id: str = Path(...),
            container: ServiceContainer = Depends(get_container),
        ) -> Dict[str, Any]:
            api_key = await container.access.create_api_key(
                ids_of(entity_id),
                Rights(request.rights),
                name=request.name,
                expires_at=ensure_utc(request.expires_at),
            )
            return api_key.to_dict()

        @router.get("/{entity_id}/api-keys", summary="List API keys")
        async def list_api_keys(
            response: Response,
            entity_id: str = Path(...),
            page: PageRequest = Depends(page_request),
            container: ServiceContainer = Depends(get_container),
        ) -> Dict[str, Any]:
            keys, total = await container.access.list_api_keys(ids_of(entity_id), page)
            set_total_count(response, total)
            return {"api_keys": [key.to_dict() for key in keys]}

        @router.get("/{entity_id}/api-keys/{key_id}", summary="Get API key")
        async def get_api_key(
            entity_id: str = Path(...),
            key_id: str = Path(...),
            container: ServiceContainer = Depends(get_container),
        ) -> Dict[str, Any]:
            api_key = await container.access.get_api_key(ids_of(entity_id), key_id)
            return api_key.to_dict()

        @router.put("/{entity_id}/api-keys/{key_id}", summary="Update API key")
        async def update_api_key(
            request: UpdateAPIKeyRequest,
            entity_id: str = Path(...),
            key_id: str = Path(...),
            container: ServiceContainer = Depends(get_container),
        ) -> Any:
            updated = await container.access.update_api_key(
                ids_of(entity_id),
                key_id,
                Rights(request.rights),
                name=request.name,
                expires_at=ensure_utc(request.expires_at),
                update_expiry="expires_at" in request.field_mask,
            )
            if updated is None:
                return Response(status_code=status.HTTP_204_NO_CONTENT)
            return updated.to_dict()

        @router.delete("/{entity_id}/api-keys/{key_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete API key")
        async def delete_api_key(
            entity_id: str = Path(...),
            key_id: str = Path(...),
            container: ServiceContainer = Depends(get_container),
        ) -> Response:
            await container.access.delete_api_key(ids_of(entity_id), key_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)

    if kind.can_have_members:

        @router.get("/{entity_id}/collaborators", summary="List collaborators")
        async def list_collaborators(
            response: Response,
            entity_id: str = Path(...),
            page: PageRequest = Depends(page_request),
            container: ServiceContainer = Depends(get_container),
        ) -> Dict[str, Any]:
            members, total = await container.access.list_collaborators(ids_of(entity_id), page)
            set_total_count(response, total)
            return {"collaborators": [member.to_dict() for member in members]}

        @router.get("/{entity_id}/collaborators/{account_kind}/{account_id}", summary="Get collaborator")
        async def get_collaborator(
            entity_id: str = Path(...),
            account_kind: str = Path(..., description="`user` or `organization`"),
            account_id: str = Path(...),
            container: ServiceContainer = Depends(get_container),
        ) -> Dict[str, Any]:
            membership = await container.access.get_collaborator(
                ids_of(entity_id), EntityIdentifiers(account_kind, account_id)
            )
            return membership.to_dict()

        @router.put("/{entity_id}/collaborators", summary="Set collaborator")
        async def set_collaborator(
            request: SetCollaboratorRequest,
            entity_id: str = Path(...),
            container: ServiceContainer = Depends(get_container),
        ) -> Dict[str, Any]:
            membership = await container.access.set_collaborator(
                ids_of(entity_id),
                EntityIdentifiers.parse(request.collaborator),
                Rights(request.rights),
            )
            return membership.to_dict()

        @router.delete(
            "/{entity_id}/collaborators/{account_kind}/{account_id}",
            status_code=status.HTTP_204_NO_CONTENT,
            summary="Delete collaborator",
        )
        async def delete_collaborator(
            entity_id: str = Path(...),
            account_kind: str = Path(..., description="`user` or `organization`"),
            account_id: str = Path(...),
            container: ServiceContainer = Depends(get_container),
        ) -> Response:
            await container.access.delete_collaborator(
                ids_of(entity_id), EntityIdentifiers(account_kind, account_id)
            )
            return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router

"""Entity registry routers.

One router per entity kind serves Create, Get, List, Update, Delete,
Restore and Purge under ``/api/v3/<kind>s``.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from ....api.dependencies import (
    field_mask,
    get_container,
    page_request,
    parse_entity,
    path_segment,
    set_total_count,
)
from ....container import ServiceContainer
from ....core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ....utils.pagination import PageRequest
from ..models.requests import CreateEntityRequest, UpdateEntityRequest
from ..services.registry_service import project


def build_registry_router(kind: EntityKind) -> APIRouter:
    """Registry router of an application, client, gateway or organization kind."""
    segment = path_segment(kind)
    router = APIRouter(
        prefix=f"/api/v3/{segment}",
        tags=[segment.capitalize()],
        responses={
            401: {"description": "Unauthenticated"},
            403: {"description": "Permission denied"},
            404: {"description": f"{kind.value.capitalize()} not found"},
        },
    )

    @router.post("", status_code=status.HTTP_201_CREATED, summary=f"Create {kind.value}")
    async def create_entity(
        request: CreateEntityRequest,
        container: ServiceContainer = Depends(get_container),
    ) -> Dict[str, Any]:
        entity = parse_entity(kind, request.id, request.entity)
        created = await container.registry.create(entity, EntityIdentifiers.parse(request.owner))
        return project(created)

    @router.get("", summary=f"List {segment}")
    async def list_entities(
        response: Response,
        collaborator: Optional[str] = Query(None, description="Account as `user:<id>` or `organization:<id>`"),
        deleted: bool = Query(False, description="List deleted entities instead"),
        paths: List[str] = Depends(field_mask),
        page: PageRequest = Depends(page_request),
        container: ServiceContainer = Depends(get_container),
    ) -> Dict[str, Any]:
        entities, total = await container.registry.list(
            kind,
            collaborator=EntityIdentifiers.parse(collaborator) if collaborator else None,
            page=page,
            deleted=deleted,
        )
        set_total_count(response, total)
        return {segment: [project(entity, paths) for entity in entities]}

    @router.get("/{entity_id}", summary=f"Get {kind.value}")
    async def get_entity(
        entity_id: str = Path(..., description=f"{kind.value.capitalize()} ID"),
        paths: List[str] = Depends(field_mask),
        container: ServiceContainer = Depends(get_container),
    ) -> Dict[str, Any]:
        entity = await container.registry.get(EntityIdentifiers(kind, entity_id))
        return project(entity, paths)

    @router.put("/{entity_id}", summary=f"Update {kind.value}")
    async def update_entity(
        request: UpdateEntityRequest,
        entity_id: str = Path(..., description=f"{kind.value.capitalize()} ID"),
        container: ServiceContainer = Depends(get_container),
    ) -> Dict[str, Any]:
        entity = parse_entity(kind, entity_id, request.entity)
        updated = await container.registry.update(entity, request.field_mask)
        return project(updated)

    @router.delete("/{entity_id}", status_code=status.HTTP_204_NO_CONTENT, summary=f"Delete {kind.value}")
    async def delete_entity(
        entity_id: str = Path(..., description=f"{kind.value.capitalize()} ID"),
        container: ServiceContainer = Depends(get_container),
    ) -> Response:
        await container.registry.delete(EntityIdentifiers(kind, entity_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post("/{entity_id}/restore", status_code=status.HTTP_204_NO_CONTENT, summary=f"Restore {kind.value}")
    async def restore_entity(
        entity_id: str = Path(..., description=f"{kind.value.capitalize()} ID"),
        container: ServiceContainer = Depends(get_container),
    ) -> Response:
        await container.registry.restore(EntityIdentifiers(kind, entity_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.delete("/{entity_id}/purge", status_code=status.HTTP_204_NO_CONTENT, summary=f"Purge {kind.value}")
    async def purge_entity(
        entity_id: str = Path(..., description=f"{kind.value.capitalize()} ID"),
        container: ServiceContainer = Depends(get_container),
    ) -> Response:
        await container.registry.purge(EntityIdentifiers(kind, entity_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router

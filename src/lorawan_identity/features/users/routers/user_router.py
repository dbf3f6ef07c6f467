"""User registry router."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Path, Query, Response, status

from ....api.dependencies import field_mask, get_container, page_request, parse_entity, set_total_count
from ....container import ServiceContainer
from ....core.value_objects.identifiers import EntityKind, user_ids
from ....utils.pagination import PageRequest
from ...registry.models.requests import UpdateEntityRequest
from ...registry.services.registry_service import project
from ..models.requests import CreateUserRequest, UpdatePasswordRequest


router = APIRouter(
    prefix="/api/v3/users",
    tags=["Users"],
    responses={
        401: {"description": "Unauthenticated"},
        403: {"description": "Permission denied"},
        404: {"description": "User not found"},
    },
)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Register user")
async def create_user(
    request: CreateUserRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    user = parse_entity(EntityKind.USER, request.id, request.user)
    created = await container.users.create(user, request.password, request.invitation_token)
    return project(created)


@router.get("", summary="List users")
async def list_users(
    response: Response,
    deleted: bool = Query(False, description="List deleted users instead"),
    paths: List[str] = Depends(field_mask),
    page: PageRequest = Depends(page_request),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    users, total = await container.users.list(page=page, deleted=deleted)
    set_total_count(response, total)
    return {"users": [project(user, paths) for user in users]}


@router.get("/{user_id}", summary="Get user")
async def get_user(
    user_id: str = Path(..., description="User ID"),
    paths: List[str] = Depends(field_mask),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    return project(await container.users.get(user_ids(user_id)), paths)


@router.put("/{user_id}", summary="Update user")
async def update_user(
    request: UpdateEntityRequest,
    user_id: str = Path(..., description="User ID"),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    user = parse_entity(EntityKind.USER, user_id, request.entity)
    updated = await container.users.update(user, request.field_mask)
    return project(updated)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete user")
async def delete_user(
    user_id: str = Path(..., description="User ID"),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.users.delete(user_ids(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{user_id}/restore", status_code=status.HTTP_204_NO_CONTENT, summary="Restore user")
async def restore_user(
    user_id: str = Path(..., description="User ID"),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.users.restore(user_ids(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}/purge", status_code=status.HTTP_204_NO_CONTENT, summary="Purge user")
async def purge_user(
    user_id: str = Path(..., description="User ID"),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.users.purge(user_ids(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{user_id}/password", status_code=status.HTTP_204_NO_CONTENT, summary="Update password")
async def update_password(
    request: UpdatePasswordRequest,
    user_id: str = Path(..., description="User ID"),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.users.update_password(
        user_ids(user_id),
        request.old_password,
        request.new_password,
        revoke_all_sessions=request.revoke_all_access,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{user_id}/temporary_password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mail a temporary password",
)
async def create_temporary_password(
    user_id: str = Path(..., description="User ID"),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.users.create_temporary_password(user_ids(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)

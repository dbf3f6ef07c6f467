"""Entity access router for the caller's own authentication info."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....api.dependencies import get_container
from ....container import ServiceContainer


router = APIRouter(prefix="/api/v3", tags=["Entity access"])


@router.get("/auth_info", summary="Authentication info of the caller")
async def auth_info(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    info = await container.access.auth_info()
    return info.to_dict()

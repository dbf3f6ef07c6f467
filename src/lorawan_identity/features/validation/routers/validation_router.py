"""Contact info validation router."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Response, status

from ....api.dependencies import get_container
from ....container import ServiceContainer
from ....core.value_objects.identifiers import EntityIdentifiers
from ..models.requests import RequestValidationRequest, ValidateRequest


router = APIRouter(
    prefix="/api/v3/contact_info/validation",
    tags=["Contact info validation"],
    responses={
        403: {"description": "Permission denied"},
        404: {"description": "Validation not found"},
        412: {"description": "Validation expired, used or not allowed yet"},
    },
)


@router.post("", summary="Request an email validation")
async def request_validation(
    request: RequestValidationRequest,
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    validation = await container.validations.request_validation(EntityIdentifiers.parse(request.entity))
    return validation.to_dict()


@router.patch("", status_code=status.HTTP_204_NO_CONTENT, summary="Validate an email address")
async def validate(
    request: ValidateRequest,
    container: ServiceContainer = Depends(get_container),
) -> Response:
    await container.validations.validate(request.id, request.token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

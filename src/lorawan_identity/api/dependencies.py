"""FastAPI dependencies shared by the routers.

Services come from the container on ``app.state``; the request scope
opened by the middleware carries the caller credentials, so the handlers
only translate between JSON and the service calls.
"""

from typing import Any, Dict, List, Optional

from fastapi import Query, Request, Response

from ..config.constants import HEADER_TOTAL_COUNT, RESERVED_FIELDS
from ..container import ServiceContainer
from ..core.exceptions.domain import InvalidArgumentError
from ..core.value_objects.identifiers import EntityIdentifiers, EntityKind
from ..features.registry.entities.entity import Entity, entity_type
from ..utils.pagination import PageRequest


def get_container(request: Request) -> ServiceContainer:
    """Service container of the application."""
    return request.app.state.container


def page_request(
    limit: Optional[int] = Query(None, description="Page size"),
    page: int = Query(1, description="1-based page number"),
    order: Optional[str] = Query(None, description="Field to order by, prefixed with - for descending"),
) -> PageRequest:
    return PageRequest(limit=limit, page=page, order=order)


def field_mask(
    field_mask: Optional[str] = Query(None, description="Comma separated field paths"),
) -> List[str]:
    if not field_mask:
        return []
    return [path.strip() for path in field_mask.split(",") if path.strip()]


def set_total_count(response: Response, total: int) -> None:
    response.headers[HEADER_TOTAL_COUNT] = str(total)


def path_segment(kind: EntityKind) -> str:
    """URL collection name of a kind."""
    return f"{kind.value}s"


def parse_entity(kind: EntityKind, entity_id: str, data: Dict[str, Any]) -> Entity:
    """Build an entity of a kind from a request body.

    Secret fields and the identifiers in the body are ignored; the
    identifiers come from the path.

    Raises:
        InvalidIdentifierError: Malformed entity ID
        InvalidArgumentError: Field values of the wrong type
    """
    ids = EntityIdentifiers(kind, entity_id)
    cls = entity_type(kind)
    fields = {
        name: value for name, value in data.items()
        if name not in RESERVED_FIELDS and name not in cls.SECRET_FIELDS and name != "ids"
    }
    fields["ids"] = {"kind": ids.kind.value, "id": ids.id}
    try:
        return cls.from_dict(fields)
    except (TypeError, ValueError, KeyError) as e:
        raise InvalidArgumentError(
            f"Invalid {kind.value}: {e}",
            details={"kind": kind.value, "id": entity_id},
        ) from e

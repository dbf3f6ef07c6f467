"""Entity registry request models."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class CreateEntityRequest(BaseModel):
    """Request model for creating an application, client, gateway or organization."""

    id: str = Field(..., description="ID of the new entity")
    owner: str = Field(..., description="Owning account as `user:<id>` or `organization:<id>`")
    entity: Dict[str, Any] = Field(default_factory=dict, description="Entity fields")


class UpdateEntityRequest(BaseModel):
    """Request model for updating the fields of an entity named by a field mask."""

    entity: Dict[str, Any] = Field(default_factory=dict, description="New field values")
    field_mask: List[str] = Field(default_factory=list, description="Field paths to update")

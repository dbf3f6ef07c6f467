"""Entity access request models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CreateAPIKeyRequest(BaseModel):
    name: str = Field("", description="API key name")
    rights: List[str] = Field(..., description="Rights of the API key")
    expires_at: Optional[datetime] = Field(None, description="Expiry; the key never expires when omitted")


class UpdateAPIKeyRequest(BaseModel):
    """Request model for updating an API key.

    Empty rights delete the key; this path is deprecated in favour of
    the delete operation.
    """

    name: Optional[str] = Field(None, description="New name, unchanged when omitted")
    rights: List[str] = Field(default_factory=list, description="New rights of the API key")
    expires_at: Optional[datetime] = Field(None, description="New expiry")
    field_mask: List[str] = Field(default_factory=list, description="Include `expires_at` to change the expiry")


class SetCollaboratorRequest(BaseModel):
    collaborator: str = Field(..., description="Account as `user:<id>` or `organization:<id>`")
    rights: List[str] = Field(default_factory=list, description="Rights of the collaborator; empty removes it")

"""User registry request models."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CreateUserRequest(BaseModel):
    """Request model for registering a user."""

    id: str = Field(..., description="User ID")
    user: Dict[str, Any] = Field(default_factory=dict, description="User fields")
    password: str = Field(..., description="Initial password")
    invitation_token: Optional[str] = Field(None, description="Invitation token when registration requires one")


class UpdatePasswordRequest(BaseModel):
    old_password: str = Field(..., description="Current or temporary password")
    new_password: str = Field(..., description="New password")
    revoke_all_access: bool = Field(False, description="Revoke every session of the user")

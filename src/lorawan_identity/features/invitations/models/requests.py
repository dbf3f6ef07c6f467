"""Invitation request models."""

from pydantic import BaseModel, EmailStr, Field


class SendInvitationRequest(BaseModel):
    email: EmailStr = Field(..., description="Address to invite")

"""Contact info validation request models."""

from pydantic import BaseModel, Field


class RequestValidationRequest(BaseModel):
    entity: str = Field(..., description="Entity as `<kind>:<id>`")


class ValidateRequest(BaseModel):
    id: str = Field(..., description="Validation ID")
    token: str = Field(..., description="Validation token from the mail")

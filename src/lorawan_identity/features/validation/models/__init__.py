"""Request models of the contact info validation API."""

from .requests import RequestValidationRequest, ValidateRequest

__all__ = ["RequestValidationRequest", "ValidateRequest"]

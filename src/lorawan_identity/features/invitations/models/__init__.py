"""Request models of the invitation API."""

from .requests import SendInvitationRequest

__all__ = ["SendInvitationRequest"]

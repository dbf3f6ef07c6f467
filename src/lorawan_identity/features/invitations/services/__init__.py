"""Invitation services."""

from .invitation_service import InvitationService, format_invitation_token

__all__ = ["InvitationService", "format_invitation_token"]

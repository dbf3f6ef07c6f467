"""Membership services."""

from .access_service import AccessService, api_keys_right, collaborators_right
from .rights_guard import RightsDelta, RightsGuard, check_api_key_rights, check_delta
from .rights_resolver import RightsResolver, chain_rights

__all__ = [
    "AccessService",
    "api_keys_right",
    "collaborators_right",
    "RightsDelta",
    "RightsGuard",
    "check_api_key_rights",
    "check_delta",
    "RightsResolver",
    "chain_rights",
]

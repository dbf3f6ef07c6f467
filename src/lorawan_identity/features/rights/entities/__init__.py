"""Rights entities."""

from .right import Right, all_right_for
from .rights import (
    Rights,
    all_rights,
    all_user_rights,
    all_application_rights,
    all_client_rights,
    all_gateway_rights,
    all_organization_rights,
    all_entity_rights,
    all_potential_rights,
    all_admin_rights,
    all_cluster_rights,
)
from .state import State

__all__ = [
    "Right",
    "all_right_for",
    "Rights",
    "all_rights",
    "all_user_rights",
    "all_application_rights",
    "all_client_rights",
    "all_gateway_rights",
    "all_organization_rights",
    "all_entity_rights",
    "all_potential_rights",
    "all_admin_rights",
    "all_cluster_rights",
    "State",
]

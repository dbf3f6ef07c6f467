"""Rights feature for lorawan-identity.

- entities/: the Right enumeration, the Rights algebra and entity states
- services/: state guards applied to credential rights
"""

# Rights algebra
from .entities import (
    Right, Rights, State, all_right_for,
    all_rights, all_user_rights, all_application_rights, all_client_rights,
    all_gateway_rights, all_organization_rights, all_entity_rights,
    all_potential_rights, all_admin_rights, all_cluster_rights,
)

# State guards
from .services import StateRestriction, apply_user_state, ensure_client_usable

__all__ = [
    # Entities
    "Right",
    "Rights",
    "State",
    "all_right_for",
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

    # Services
    "StateRestriction",
    "apply_user_state",
    "ensure_client_usable",
]

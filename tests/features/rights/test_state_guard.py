"""Tests for user and client state guards."""

import pytest

from lorawan_identity.core.exceptions.auth import ClientStateDeniedError
from lorawan_identity.core.exceptions.base import ErrorCategory
from lorawan_identity.features.rights.entities.right import Right
from lorawan_identity.features.rights.entities.rights import Rights, all_rights, all_user_rights
from lorawan_identity.features.rights.entities.state import State
from lorawan_identity.features.rights.services.state_guard import apply_user_state, ensure_client_usable
from lorawan_identity.utils.datetime import utc_now


FULL = all_rights().implied()


class TestUserState:
    """Test restriction of credential rights by user state."""

    @pytest.mark.parametrize("state", [State.APPROVED, State.FLAGGED])
    def test_full_scope_states(self, state):
        restriction = apply_user_state(state, FULL, FULL)

        assert restriction.rights == FULL
        assert restriction.universal_rights == FULL
        assert not restriction.restricted
        assert restriction.warnings == []

    def test_requested_user(self):
        restriction = apply_user_state(State.REQUESTED, FULL, FULL)

        assert restriction.rights == Rights.of(
            Right.RIGHT_USER_INFO, Right.RIGHT_USER_SETTINGS_BASIC, Right.RIGHT_USER_DELETE
        )
        assert restriction.restricted
        assert restriction.warnings == []

    def test_rejected_user_gets_warning(self):
        restriction = apply_user_state(State.REJECTED, FULL, FULL, state_description="spam account")

        assert restriction.rights == Rights.of(Right.RIGHT_USER_INFO, Right.RIGHT_USER_DELETE)
        assert restriction.warnings == ["User is rejected: spam account"]

    def test_suspended_user_gets_warning(self):
        restriction = apply_user_state(State.SUSPENDED, FULL, FULL)

        assert restriction.rights == Rights.of(Right.RIGHT_USER_INFO)
        assert restriction.universal_rights == Rights.of(Right.RIGHT_USER_INFO)
        assert restriction.warnings == ["User is suspended"]

    def test_restriction_is_intersected_with_scope(self):
        """States never add rights the credential does not carry."""
        scope = Rights.of(Right.RIGHT_USER_INFO, Right.RIGHT_APPLICATION_INFO)

        restriction = apply_user_state(State.REQUESTED, scope, Rights())

        assert restriction.rights == Rights.of(Right.RIGHT_USER_INFO)
        assert restriction.universal_rights.is_empty()

    def test_unvalidated_email_when_required(self):
        restriction = apply_user_state(
            State.APPROVED,
            all_user_rights(),
            Rights(),
            primary_email_validated_at=None,
            require_validated_email=True,
        )

        assert restriction.rights == Rights.of(
            Right.RIGHT_USER_INFO, Right.RIGHT_USER_SETTINGS_BASIC, Right.RIGHT_USER_DELETE
        )
        assert restriction.restricted
        assert restriction.warnings == ["Primary email address is not validated"]

    def test_unvalidated_email_when_not_required(self):
        restriction = apply_user_state(State.APPROVED, FULL, Rights(), primary_email_validated_at=None)

        assert restriction.rights == FULL
        assert not restriction.restricted

    def test_validated_email_when_required(self):
        restriction = apply_user_state(
            State.APPROVED, FULL, Rights(),
            primary_email_validated_at=utc_now(),
            require_validated_email=True,
        )

        assert restriction.rights == FULL


class TestClientState:
    """Test the usability of OAuth clients by state."""

    @pytest.mark.parametrize("state", [State.APPROVED, State.FLAGGED, State.REQUESTED])
    def test_usable_states(self, state):
        ensure_client_usable("my-client", state)

    @pytest.mark.parametrize("state", [State.REJECTED, State.SUSPENDED])
    def test_denied_states(self, state):
        with pytest.raises(ClientStateDeniedError) as exc_info:
            ensure_client_usable("my-client", state, "abuse")

        assert exc_info.value.category == ErrorCategory.PERMISSION_DENIED
        assert exc_info.value.details["description"] == "abuse"

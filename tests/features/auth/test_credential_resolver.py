"""Tests for credential resolution."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from lorawan_identity.config.settings import AdminRightsSettings
from lorawan_identity.core.exceptions.auth import (
    AccessTokenExpiredError,
    APIKeyExpiredError,
    APIKeyNotFoundError,
    AuthenticationError,
    ClientStateDeniedError,
    InvalidAuthorizationError,
    InvalidClusterKeyError,
    SessionNotFoundError,
    UnsupportedAuthorizationError,
)
from lorawan_identity.core.exceptions.base import ErrorCategory
from lorawan_identity.core.value_objects.identifiers import EntityKind, application_ids, client_ids, user_ids
from lorawan_identity.features.auth.entities.auth_info import AccessMethod, AuthInfo
from lorawan_identity.features.auth.services.request_cache import current_request_state, request_scope
from lorawan_identity.features.auth.utils.tokens import parse_token, split_authorization
from lorawan_identity.features.rights.entities.right import Right
from lorawan_identity.features.rights.entities.rights import (
    Rights,
    all_admin_rights,
    all_cluster_rights,
    all_rights,
)
from lorawan_identity.features.rights.entities.state import State
from lorawan_identity.utils.datetime import utc_now

from ...conftest import CLUSTER_KEY, bearer


class TestTokens:
    """Test authorization header and bearer token parsing."""

    def test_split_authorization(self):
        assert split_authorization(None) is None
        assert split_authorization("  ") is None
        assert split_authorization("Bearer AK.id.secret") == ("bearer", "AK.id.secret")
        assert split_authorization("ClusterKey abc") == ("clusterkey", "abc")

    def test_unsupported_authorization_type(self):
        with pytest.raises(UnsupportedAuthorizationError):
            split_authorization("Basic dXNlcjpwYXNz")

    def test_missing_authorization_value(self):
        with pytest.raises(InvalidAuthorizationError):
            split_authorization("Bearer ")

    def test_parse_token(self):
        token = parse_token("AK.KEYID.SECRET")

        assert (token.kind, token.id, token.secret) == ("AK", "KEYID", "SECRET")
        assert str(token) == "AK.KEYID.SECRET"

    def test_unknown_token_kind(self):
        with pytest.raises(UnsupportedAuthorizationError) as exc_info:
            parse_token("XX.id.secret")

        assert exc_info.value.error_code == "unsupported_authorization"

    @pytest.mark.parametrize("value", ["AK", "AK.id", "AK..secret", "AK.id."])
    def test_malformed_token(self, value):
        with pytest.raises(InvalidAuthorizationError):
            parse_token(value)


class TestCredentialResolver:
    """Test mapping of credentials to AuthInfo."""

    @pytest.mark.asyncio
    async def test_anonymous_without_authorization(self, container):
        auth_info = await container.credentials.resolve(None)

        assert auth_info.is_anonymous
        assert auth_info.principal is None
        assert auth_info.rights.is_empty()
        assert auth_info.universal_rights.is_empty()

    @pytest.mark.asyncio
    async def test_anonymous_outside_request_scope(self, container):
        assert current_request_state() is None
        assert await container.credentials.auth_info() == AuthInfo()

    @pytest.mark.asyncio
    async def test_cluster_key(self, container):
        auth_info = await container.credentials.resolve(f"ClusterKey {CLUSTER_KEY}")

        assert auth_info.access_method == AccessMethod.CLUSTER
        assert auth_info.principal is None
        assert auth_info.universal_rights == all_cluster_rights().implied()
        assert auth_info.rights.is_empty()

    @pytest.mark.asyncio
    async def test_unknown_cluster_key(self, container):
        with pytest.raises(InvalidClusterKeyError):
            await container.credentials.resolve("ClusterKey wrong-key")

    @pytest.mark.asyncio
    async def test_cluster_verified_by_transport(self, container):
        auth_info = await container.credentials.resolve("ClusterKey anything", cluster_verified=True)

        assert auth_info.access_method == AccessMethod.CLUSTER

    def test_verify_cluster_key(self, container):
        assert container.credentials.verify_cluster_key(CLUSTER_KEY)
        assert not container.credentials.verify_cluster_key("other")

    @pytest.mark.asyncio
    async def test_api_key_of_user(self, container, factory):
        await factory.user("alice")
        token = await factory.api_key(user_ids("alice"), Right.RIGHT_USER_INFO, Right.RIGHT_APPLICATION_ALL)

        auth_info = await container.credentials.resolve(bearer(token))

        assert auth_info.principal == user_ids("alice")
        assert auth_info.access_method == AccessMethod.API_KEY
        assert auth_info.rights == Rights.of(Right.RIGHT_USER_INFO, Right.RIGHT_APPLICATION_ALL).implied()
        assert auth_info.universal_rights.is_empty()
        assert not auth_info.is_admin
        assert auth_info.user_state == "approved"
        assert auth_info.credential_id == parse_token(token).id

    @pytest.mark.asyncio
    async def test_api_key_of_application(self, container, factory):
        await factory.entity(EntityKind.APPLICATION, "my-app")
        token = await factory.api_key(application_ids("my-app"), Right.RIGHT_APPLICATION_LINK)

        auth_info = await container.credentials.resolve(bearer(token))

        assert auth_info.principal == application_ids("my-app")
        assert auth_info.rights == Rights.of(Right.RIGHT_APPLICATION_LINK, Right.RIGHT_APPLICATION_INFO)
        assert auth_info.user_state is None

    @pytest.mark.asyncio
    async def test_api_key_not_found(self, container):
        with pytest.raises(APIKeyNotFoundError) as exc_info:
            await container.credentials.resolve("Bearer AK.UNKNOWN.SECRET")

        assert exc_info.value.category == ErrorCategory.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_api_key_wrong_secret(self, container, factory):
        await factory.user("alice")
        token = await factory.api_key(user_ids("alice"), Right.RIGHT_USER_INFO)
        kind, key_id, _ = token.split(".")

        with pytest.raises(InvalidAuthorizationError):
            await container.credentials.resolve(bearer(f"{kind}.{key_id}.WRONGSECRET"))

    @pytest.mark.asyncio
    async def test_api_key_expired(self, container, factory, store):
        """An expired key fails without changing the stored key."""
        await factory.user("alice")
        token = await factory.api_key(
            user_ids("alice"), Right.RIGHT_USER_INFO, expires_at=utc_now() - timedelta(seconds=1)
        )

        with pytest.raises(APIKeyExpiredError) as exc_info:
            await container.credentials.resolve(bearer(token))

        assert exc_info.value.error_code == "api_key_expired"
        stored = await store.get_api_key(parse_token(token).id)
        assert stored.rights == Rights.of(Right.RIGHT_USER_INFO)

    @pytest.mark.asyncio
    async def test_api_key_of_deleted_user(self, container, factory, store):
        await factory.user("alice")
        token = await factory.api_key(user_ids("alice"), Right.RIGHT_USER_INFO)
        await store.delete_entity(user_ids("alice"))

        with pytest.raises(InvalidAuthorizationError):
            await container.credentials.resolve(bearer(token))

    @pytest.mark.asyncio
    async def test_session_grants_all_rights(self, container, factory):
        await factory.user("alice")
        token = await factory.session(user_ids("alice"))

        auth_info = await container.credentials.resolve(bearer(token))

        assert auth_info.access_method == AccessMethod.SESSION_TOKEN
        assert auth_info.rights == all_rights().implied()
        assert auth_info.universal_rights.is_empty()

    @pytest.mark.asyncio
    async def test_session_not_found(self, container):
        with pytest.raises(SessionNotFoundError):
            await container.credentials.resolve("Bearer SK.UNKNOWN.SECRET")

    @pytest.mark.asyncio
    async def test_admin_session(self, container, factory):
        """Approved admins get admin rights within their credential scope."""
        await factory.user("admin-user", admin=True)
        token = await factory.session(user_ids("admin-user"))

        auth_info = await container.credentials.resolve(bearer(token))

        assert auth_info.is_admin
        assert auth_info.universal_rights == all_admin_rights().implied()

    @pytest.mark.asyncio
    async def test_admin_api_key_scope_caps_universal_rights(self, container, factory):
        await factory.user("admin-user", admin=True)
        token = await factory.api_key(user_ids("admin-user"), Right.RIGHT_APPLICATION_INFO)

        auth_info = await container.credentials.resolve(bearer(token))

        assert auth_info.is_admin
        assert auth_info.universal_rights == Rights.of(Right.RIGHT_APPLICATION_INFO)

    @pytest.mark.asyncio
    async def test_admin_rights_all_setting(self, container, factory, settings, identity_settings):
        settings.replace(identity_settings.model_copy(update={"admin_rights": AdminRightsSettings(all=True)}))
        await factory.user("admin-user", admin=True)
        token = await factory.session(user_ids("admin-user"))

        auth_info = await container.credentials.resolve(bearer(token))

        assert auth_info.universal_rights == all_rights().implied()

    @pytest.mark.asyncio
    async def test_unapproved_admin_is_no_admin(self, container, factory):
        await factory.user("admin-user", admin=True, state=State.REQUESTED)
        token = await factory.session(user_ids("admin-user"))

        auth_info = await container.credentials.resolve(bearer(token))

        assert not auth_info.is_admin
        assert auth_info.universal_rights.is_empty()
        assert auth_info.rights == Rights.of(
            Right.RIGHT_USER_INFO, Right.RIGHT_USER_SETTINGS_BASIC, Right.RIGHT_USER_DELETE
        )
        assert auth_info.state_restricted

    @pytest.mark.asyncio
    async def test_suspended_user_warning(self, container, factory):
        await factory.user("alice", state=State.SUSPENDED, state_description="too many requests")
        token = await factory.session(user_ids("alice"))

        with request_scope(bearer(token)) as state:
            auth_info = await container.credentials.auth_info()

        assert auth_info.rights == Rights.of(Right.RIGHT_USER_INFO)
        assert auth_info.warnings == ("User is suspended: too many requests",)
        assert state.warnings == ["User is suspended: too many requests"]

    @pytest.mark.asyncio
    async def test_unvalidated_email_restricts_when_required(self, container, factory, settings, identity_settings):
        registration = identity_settings.user_registration.model_copy(
            update={
                "contact_info_validation": identity_settings.user_registration.contact_info_validation.model_copy(
                    update={"required": True}
                )
            }
        )
        settings.replace(identity_settings.model_copy(update={"user_registration": registration}))
        await factory.user("alice", validated=False)
        token = await factory.session(user_ids("alice"))

        auth_info = await container.credentials.resolve(bearer(token))

        assert not auth_info.rights.includes(Right.RIGHT_USER_APPLICATIONS_CREATE)
        assert auth_info.rights.includes(Right.RIGHT_USER_SETTINGS_BASIC)

    @pytest.mark.asyncio
    async def test_access_token(self, container, factory):
        await factory.user("alice")
        await factory.entity(EntityKind.CLIENT, "my-client", state=State.APPROVED)
        token = await factory.access_token(user_ids("alice"), client_ids("my-client"), Right.RIGHT_USER_INFO)

        auth_info = await container.credentials.resolve(bearer(token))

        assert auth_info.access_method == AccessMethod.ACCESS_TOKEN
        assert auth_info.principal == user_ids("alice")
        assert auth_info.rights == Rights.of(Right.RIGHT_USER_INFO)

    @pytest.mark.asyncio
    async def test_access_token_of_requested_client(self, container, factory):
        await factory.user("alice")
        await factory.entity(EntityKind.CLIENT, "my-client", state=State.REQUESTED)
        token = await factory.access_token(user_ids("alice"), client_ids("my-client"), Right.RIGHT_USER_INFO)

        auth_info = await container.credentials.resolve(bearer(token))

        assert auth_info.rights == Rights.of(Right.RIGHT_USER_INFO)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [State.REJECTED, State.SUSPENDED])
    async def test_access_token_of_denied_client(self, container, factory, state):
        await factory.user("alice")
        await factory.entity(EntityKind.CLIENT, "my-client", state=state, state_description="revoked")
        token = await factory.access_token(user_ids("alice"), client_ids("my-client"), Right.RIGHT_USER_INFO)

        with pytest.raises(ClientStateDeniedError) as exc_info:
            await container.credentials.resolve(bearer(token))

        assert exc_info.value.category == ErrorCategory.PERMISSION_DENIED
        assert exc_info.value.description == "revoked"

    @pytest.mark.asyncio
    async def test_access_token_expired(self, container, factory):
        await factory.user("alice")
        await factory.entity(EntityKind.CLIENT, "my-client", state=State.APPROVED)
        token = await factory.access_token(
            user_ids("alice"), client_ids("my-client"), Right.RIGHT_USER_INFO,
            expires_at=utc_now() - timedelta(minutes=1),
        )

        with pytest.raises(AccessTokenExpiredError):
            await container.credentials.resolve(bearer(token))

    @pytest.mark.asyncio
    async def test_auth_info_is_memoized_per_request(self, container, factory, store):
        await factory.user("alice")
        token = await factory.api_key(user_ids("alice"), Right.RIGHT_USER_INFO)

        with patch.object(store, "get_api_key", wraps=store.get_api_key) as get_api_key:
            with request_scope(bearer(token)):
                first = await container.credentials.auth_info()
                second = await container.credentials.auth_info()
            with request_scope(bearer(token)):
                await container.credentials.auth_info()

        assert first is second
        assert get_api_key.await_count == 2

    @pytest.mark.asyncio
    async def test_authentication_errors_share_category(self, container):
        """Every credential failure surfaces as unauthenticated."""
        for authorization in ("Bearer AK.X.Y", "Bearer AT.X.Y", "Bearer SK.X.Y", "Bearer XX.X.Y", "Bearer nodots"):
            with pytest.raises(AuthenticationError) as exc_info:
                await container.credentials.resolve(authorization)
            assert exc_info.value.category == ErrorCategory.UNAUTHENTICATED

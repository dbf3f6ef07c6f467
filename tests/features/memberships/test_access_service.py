"""Tests for entity access: rights, API keys and collaborators."""

from datetime import timedelta

import pytest
import pytest_asyncio

from lorawan_identity.core.exceptions.auth import PermissionDeniedError
from lorawan_identity.core.exceptions.domain import (
    APIKeyMissingError,
    EntityNotFoundError,
    InvalidArgumentError,
    InvalidRightsError,
    MemberNotFoundError,
    NeedsCollaboratorError,
)
from lorawan_identity.core.value_objects.identifiers import (
    EntityKind,
    application_ids,
    client_ids,
    organization_ids,
    user_ids,
)
from lorawan_identity.features.auth.entities.auth_info import AccessMethod
from lorawan_identity.features.auth.services.request_cache import request_scope
from lorawan_identity.features.rights.entities.right import Right
from lorawan_identity.features.rights.entities.rights import Rights, all_application_rights
from lorawan_identity.utils.datetime import utc_now
from lorawan_identity.utils.pagination import PageRequest

from ...conftest import bearer


ALICE = user_ids("alice")
BOB = user_ids("bob")
CAROL = user_ids("carol")
FOO = application_ids("foo")


@pytest_asyncio.fixture
async def owned_app(factory):
    """Application foo owned by alice, with bob as a limited collaborator."""
    await factory.user("alice")
    await factory.user("bob")
    await factory.user("carol")
    await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
    await factory.member(
        BOB, FOO,
        Right.RIGHT_APPLICATION_INFO,
        Right.RIGHT_APPLICATION_SETTINGS_API_KEYS,
        Right.RIGHT_APPLICATION_SETTINGS_COLLABORATORS,
    )
    return {
        "alice": await factory.session(ALICE),
        "bob": await factory.session(BOB),
        "carol": await factory.session(CAROL),
    }


class TestListRights:
    """Test the rights of the caller on an entity."""

    @pytest.mark.asyncio
    async def test_owner_rights(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            rights = await container.access.list_rights(FOO)

        assert rights == all_application_rights()

    @pytest.mark.asyncio
    async def test_collaborator_rights(self, container, owned_app):
        with request_scope(bearer(owned_app["bob"])):
            rights = await container.access.list_rights(FOO)

        assert rights == Rights.of(
            Right.RIGHT_APPLICATION_INFO,
            Right.RIGHT_APPLICATION_SETTINGS_API_KEYS,
            Right.RIGHT_APPLICATION_SETTINGS_COLLABORATORS,
        )

    @pytest.mark.asyncio
    async def test_stranger_has_no_rights(self, container, owned_app):
        with request_scope(bearer(owned_app["carol"])):
            assert (await container.access.list_rights(FOO)).is_empty()


class TestAPIKeys:
    """Test API key management."""

    @pytest.mark.asyncio
    async def test_create_api_key(self, container, owned_app, store, events):
        with request_scope(bearer(owned_app["alice"])):
            api_key = await container.access.create_api_key(
                FOO, Rights.of(Right.RIGHT_APPLICATION_LINK), name="link key"
            )

        assert api_key.key.startswith(f"AK.{api_key.id}.")
        assert api_key.key_hash is None
        assert api_key.rights == Rights.of(Right.RIGHT_APPLICATION_LINK)
        stored = await store.get_api_key(api_key.id)
        assert stored.key_hash.startswith("PBKDF2$sha256$")
        assert stored.key is None
        assert events.names()[-1] == "application.api-key.create"

    @pytest.mark.asyncio
    async def test_created_key_authenticates(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            api_key = await container.access.create_api_key(FOO, Rights.of(Right.RIGHT_APPLICATION_LINK))

        with request_scope(bearer(api_key.key)):
            auth_info = await container.access.auth_info()
            rights = await container.access.list_rights(FOO)

        assert auth_info.principal == FOO
        assert auth_info.access_method == AccessMethod.API_KEY
        assert rights == Rights.of(Right.RIGHT_APPLICATION_LINK, Right.RIGHT_APPLICATION_INFO)

    @pytest.mark.asyncio
    async def test_create_requires_settings_right(self, container, owned_app):
        with request_scope(bearer(owned_app["carol"])):
            with pytest.raises(PermissionDeniedError) as exc_info:
                await container.access.create_api_key(FOO, Rights.of(Right.RIGHT_APPLICATION_INFO))

        assert exc_info.value.details["missing"] == ["RIGHT_APPLICATION_SETTINGS_API_KEYS"]

    @pytest.mark.asyncio
    async def test_create_cannot_exceed_caller_rights(self, container, owned_app):
        with request_scope(bearer(owned_app["bob"])):
            with pytest.raises(PermissionDeniedError) as exc_info:
                await container.access.create_api_key(FOO, Rights.of(Right.RIGHT_APPLICATION_DELETE))

        assert exc_info.value.error_code == "insufficient_rights_to_add"

    @pytest.mark.asyncio
    async def test_create_with_rights_of_other_kind(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            with pytest.raises(InvalidRightsError):
                await container.access.create_api_key(FOO, Rights.of(Right.RIGHT_GATEWAY_INFO))

    @pytest.mark.asyncio
    async def test_create_with_expiry_in_the_past(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            with pytest.raises(InvalidArgumentError):
                await container.access.create_api_key(
                    FOO, Rights.of(Right.RIGHT_APPLICATION_INFO), expires_at=utc_now() - timedelta(minutes=1)
                )

    @pytest.mark.asyncio
    async def test_clients_have_no_api_keys(self, container, owned_app, factory):
        await factory.entity(EntityKind.CLIENT, "my-client", owner=ALICE)

        with request_scope(bearer(owned_app["alice"])):
            with pytest.raises(InvalidArgumentError):
                await container.access.create_api_key(client_ids("my-client"), Rights.of(Right.RIGHT_CLIENT_INFO))

    @pytest.mark.asyncio
    async def test_user_creates_own_key(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            api_key = await container.access.create_api_key(ALICE, Rights.of(Right.RIGHT_USER_INFO))

        assert api_key.entity_ids == ALICE

    @pytest.mark.asyncio
    async def test_list_get_update_delete(self, container, owned_app, events):
        with request_scope(bearer(owned_app["alice"])):
            first = await container.access.create_api_key(FOO, Rights.of(Right.RIGHT_APPLICATION_INFO), name="one")
            await container.access.create_api_key(FOO, Rights.of(Right.RIGHT_APPLICATION_LINK), name="two")

            keys, total = await container.access.list_api_keys(FOO)
            assert total == 2
            assert all(key.key_hash is None and key.key is None for key in keys)

            page, total = await container.access.list_api_keys(FOO, PageRequest(limit=1, page=2))
            assert total == 2
            assert len(page) == 1

            fetched = await container.access.get_api_key(FOO, first.id)
            assert fetched.name == "one"

            updated = await container.access.update_api_key(
                FOO, first.id, Rights.of(Right.RIGHT_APPLICATION_DEVICES_READ), name="devices"
            )
            assert updated.rights == Rights.of(Right.RIGHT_APPLICATION_DEVICES_READ)

            await container.access.delete_api_key(FOO, first.id)
            with pytest.raises(APIKeyMissingError):
                await container.access.get_api_key(FOO, first.id)

        assert "application.api-key.update" in events.names()
        assert events.names()[-1] == "application.api-key.delete"

    @pytest.mark.asyncio
    async def test_get_missing_key(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            with pytest.raises(APIKeyMissingError):
                await container.access.get_api_key(FOO, "does-not-exist")


class TestCollaborators:
    """Test collaborator management."""

    @pytest.mark.asyncio
    async def test_set_and_get_collaborator(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            membership = await container.access.set_collaborator(
                FOO, CAROL, Rights.of(Right.RIGHT_APPLICATION_TRAFFIC_READ)
            )
            fetched = await container.access.get_collaborator(FOO, CAROL)

        assert membership.rights == Rights.of(Right.RIGHT_APPLICATION_TRAFFIC_READ)
        assert fetched.rights == membership.rights

    @pytest.mark.asyncio
    async def test_set_collaborator_requires_settings_right(self, container, owned_app):
        with request_scope(bearer(owned_app["carol"])):
            with pytest.raises(PermissionDeniedError):
                await container.access.set_collaborator(FOO, CAROL, Rights.of(Right.RIGHT_APPLICATION_INFO))

    @pytest.mark.asyncio
    async def test_set_collaborator_for_missing_account(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            with pytest.raises(EntityNotFoundError) as exc_info:
                await container.access.set_collaborator(
                    FOO, user_ids("nobody"), Rights.of(Right.RIGHT_APPLICATION_INFO)
                )

        assert exc_info.value.error_code == "user_not_found"

    @pytest.mark.asyncio
    async def test_list_collaborators(self, container, owned_app):
        with request_scope(bearer(owned_app["bob"])):
            members, total = await container.access.list_collaborators(FOO)

        assert total == 2
        assert [member.account for member in members] == [ALICE, BOB]

    @pytest.mark.asyncio
    async def test_get_unknown_collaborator(self, container, owned_app):
        with request_scope(bearer(owned_app["alice"])):
            with pytest.raises(MemberNotFoundError):
                await container.access.get_collaborator(FOO, CAROL)

    @pytest.mark.asyncio
    async def test_delete_last_owner(self, container, owned_app, store):
        with request_scope(bearer(owned_app["bob"])):
            with pytest.raises(NeedsCollaboratorError):
                await container.access.delete_collaborator(FOO, ALICE)

        assert (await store.get_member(ALICE, FOO)).includes(Right.RIGHT_APPLICATION_ALL)

    @pytest.mark.asyncio
    async def test_delete_collaborator(self, container, owned_app, store, events):
        with request_scope(bearer(owned_app["alice"])):
            await container.access.delete_collaborator(FOO, BOB)

        with pytest.raises(MemberNotFoundError):
            await store.get_member(BOB, FOO)
        assert events.names()[-1] == "application.collaborator.delete"

    @pytest.mark.asyncio
    async def test_organization_members(self, container, owned_app, factory):
        acme = organization_ids("acme")
        await factory.entity(EntityKind.ORGANIZATION, "acme", owner=ALICE)

        with request_scope(bearer(owned_app["alice"])):
            await container.access.set_collaborator(acme, BOB, Rights.of(Right.RIGHT_ORGANIZATION_INFO))
            members, total = await container.access.list_collaborators(acme)

        assert total == 2
        assert members[1].account == BOB

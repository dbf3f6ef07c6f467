"""Tests for the entity registry."""

from datetime import timedelta

import pytest
import pytest_asyncio

from lorawan_identity.config.settings import UserRightsSettings
from lorawan_identity.core.exceptions.auth import AdminRequiredError, PermissionDeniedError
from lorawan_identity.core.exceptions.domain import (
    BlacklistedIDError,
    EntityAlreadyExistsError,
    EntityNotDeletedError,
    EntityNotFoundError,
    GatewayEUITakenError,
    InvalidArgumentError,
    InvalidUpdateError,
    MemberNotFoundError,
    RestoreWindowExpiredError,
)
from lorawan_identity.core.value_objects.identifiers import (
    EntityKind,
    application_ids,
    client_ids,
    gateway_ids,
    organization_ids,
    user_ids,
)
from lorawan_identity.features.auth.services.request_cache import request_scope
from lorawan_identity.features.registry.entities.entity import Application, Client, Gateway
from lorawan_identity.features.registry.services.registry_service import new_entity, project
from lorawan_identity.features.rights.entities.right import Right
from lorawan_identity.features.rights.entities.rights import Rights, all_application_rights
from lorawan_identity.features.rights.entities.state import State
from lorawan_identity.utils.datetime import utc_now
from lorawan_identity.utils.pagination import PageRequest

from ...conftest import bearer


ALICE = user_ids("alice")
BOB = user_ids("bob")
ADMIN = user_ids("admin-user")
FOO = application_ids("foo")


@pytest_asyncio.fixture
async def sessions(factory):
    """Sessions of alice, bob and an admin."""
    await factory.user("alice")
    await factory.user("bob")
    await factory.user("admin-user", admin=True)
    return {
        "alice": await factory.session(ALICE),
        "bob": await factory.session(BOB),
        "admin": await factory.session(ADMIN),
    }


class TestCreate:
    """Test entity creation."""

    @pytest.mark.asyncio
    async def test_creator_becomes_owner(self, container, sessions, store, events):
        with request_scope(bearer(sessions["alice"])):
            created = await container.registry.create(Application(ids=FOO, name="Foo"), ALICE)

        assert created.name == "Foo"
        assert created.created_at is not None
        assert (await store.get_member(ALICE, FOO)).includes(Right.RIGHT_APPLICATION_ALL)
        assert events.events[-1].name == "application.create"
        assert events.events[-1].identifiers == (FOO, ALICE)

    @pytest.mark.asyncio
    async def test_create_for_other_user(self, container, sessions):
        with request_scope(bearer(sessions["bob"])):
            with pytest.raises(PermissionDeniedError):
                await container.registry.create(Application(ids=FOO), ALICE)

    @pytest.mark.asyncio
    async def test_create_in_organization(self, container, sessions, factory, store):
        acme = organization_ids("acme")
        await factory.entity(EntityKind.ORGANIZATION, "acme", owner=ALICE)

        with request_scope(bearer(sessions["alice"])):
            await container.registry.create(Application(ids=FOO), acme)
            rights = await container.access.list_rights(FOO)

        assert (await store.get_member(acme, FOO)).includes(Right.RIGHT_APPLICATION_ALL)
        assert rights == all_application_rights()

    @pytest.mark.asyncio
    async def test_blacklisted_id(self, container, sessions):
        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(BlacklistedIDError) as exc_info:
                await container.registry.create(Application(ids=application_ids("admin")), ALICE)

        assert exc_info.value.error_code == "id_blacklisted"

    @pytest.mark.asyncio
    async def test_id_taken(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo")

        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(EntityAlreadyExistsError) as exc_info:
                await container.registry.create(Application(ids=FOO), ALICE)

        assert exc_info.value.error_code == "application_id_taken"

    @pytest.mark.asyncio
    async def test_gateway_eui_taken(self, container, sessions):
        with request_scope(bearer(sessions["alice"])):
            await container.registry.create(Gateway(ids=gateway_ids("gtw-1"), gateway_eui="0102030405060708"), ALICE)
            with pytest.raises(GatewayEUITakenError):
                await container.registry.create(
                    Gateway(ids=gateway_ids("gtw-2"), gateway_eui="0102030405060708"), ALICE
                )

    @pytest.mark.asyncio
    async def test_failed_create_leaves_no_membership(self, container, sessions, factory, store):
        await factory.entity(EntityKind.APPLICATION, "foo")

        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(EntityAlreadyExistsError):
                await container.registry.create(Application(ids=FOO), ALICE)

        with pytest.raises(MemberNotFoundError):
            await store.get_member(ALICE, FOO)

    @pytest.mark.asyncio
    async def test_creation_restricted_to_admins(self, container, sessions, settings, identity_settings):
        settings.replace(
            identity_settings.model_copy(update={"user_rights": UserRightsSettings(create_gateways=False)})
        )

        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(PermissionDeniedError):
                await container.registry.create(Gateway(ids=gateway_ids("gtw-1")), ALICE)

        with request_scope(bearer(sessions["admin"])):
            await container.registry.create(Gateway(ids=gateway_ids("gtw-1")), ADMIN)

    @pytest.mark.asyncio
    async def test_client_state_is_not_set_by_users(self, container, sessions):
        client = Client(ids=client_ids("my-client"), state=State.APPROVED, endorsed=True)

        with request_scope(bearer(sessions["alice"])):
            created = await container.registry.create(client, ALICE)

        assert created.state == State.APPROVED
        assert not created.endorsed

    @pytest.mark.asyncio
    async def test_users_are_not_registry_entities(self, container, sessions):
        with request_scope(bearer(sessions["admin"])):
            with pytest.raises(InvalidArgumentError):
                await container.registry.get(ALICE)


class TestGetAndList:
    """Test reading entities."""

    @pytest.mark.asyncio
    async def test_get(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE, description="demo")

        with request_scope(bearer(sessions["alice"])):
            entity = await container.registry.get(FOO)

        assert entity.description == "demo"

    @pytest.mark.asyncio
    async def test_get_without_rights(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)

        with request_scope(bearer(sessions["bob"])):
            with pytest.raises(PermissionDeniedError):
                await container.registry.get(FOO)

    @pytest.mark.asyncio
    async def test_admin_gets_not_found(self, container, sessions):
        with request_scope(bearer(sessions["admin"])):
            with pytest.raises(EntityNotFoundError):
                await container.registry.get(application_ids("missing"))

    @pytest.mark.asyncio
    async def test_list_own_entities(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.entity(EntityKind.APPLICATION, "bar", owner=ALICE)
        await factory.entity(EntityKind.APPLICATION, "baz", owner=BOB)

        with request_scope(bearer(sessions["alice"])):
            entities, total = await container.registry.list(EntityKind.APPLICATION)
            page, _ = await container.registry.list(EntityKind.APPLICATION, page=PageRequest(limit=1))

        assert total == 2
        assert [entity.ids.id for entity in entities] == ["bar", "foo"]
        assert [entity.ids.id for entity in page] == ["bar"]

    @pytest.mark.asyncio
    async def test_list_includes_organization_entities(self, container, sessions, factory):
        acme = organization_ids("acme")
        await factory.entity(EntityKind.ORGANIZATION, "acme", owner=ALICE)
        await factory.entity(EntityKind.APPLICATION, "foo", owner=acme)

        with request_scope(bearer(sessions["alice"])):
            entities, total = await container.registry.list(EntityKind.APPLICATION)

        assert total == 1
        assert entities[0].ids == FOO

    @pytest.mark.asyncio
    async def test_admin_lists_everything(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.entity(EntityKind.APPLICATION, "baz", owner=BOB)

        with request_scope(bearer(sessions["admin"])):
            _, total = await container.registry.list(EntityKind.APPLICATION)

        assert total == 2

    @pytest.mark.asyncio
    async def test_deleted_entities_require_admin(self, container, sessions):
        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(AdminRequiredError):
                await container.registry.list(EntityKind.APPLICATION, deleted=True)

    @pytest.mark.asyncio
    async def test_project_applies_field_mask(self, factory):
        entity = await factory.entity(EntityKind.APPLICATION, "foo", name="Foo", description="demo")

        data = project(entity, ["name"])

        assert data == {"ids": {"kind": "application", "id": "foo"}, "name": "Foo"}


class TestUpdate:
    """Test entity updates."""

    @pytest.mark.asyncio
    async def test_update_fields(self, container, sessions, factory, events):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE, name="Old", description="keep")

        with request_scope(bearer(sessions["alice"])):
            updated = await container.registry.update(
                Application(ids=FOO, name="New", description="ignored"), ["name"]
            )

        assert updated.name == "New"
        assert updated.description == "keep"
        assert events.events[-1].name == "application.update"
        assert events.events[-1].data == {"field_mask": ["name"]}

    @pytest.mark.asyncio
    async def test_update_attribute_key(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE, attributes={"a": "1", "b": "2"})

        with request_scope(bearer(sessions["alice"])):
            updated = await container.registry.update(
                Application(ids=FOO, attributes={"a": "3"}), ["attributes.a", "attributes.b"]
            )

        assert updated.attributes == {"a": "3"}

    @pytest.mark.asyncio
    async def test_update_without_updatable_paths(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)

        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(InvalidUpdateError):
                await container.registry.update(Application(ids=FOO), ["created_at"])

    @pytest.mark.asyncio
    async def test_admin_fields(self, container, sessions, factory):
        await factory.entity(EntityKind.CLIENT, "my-client", owner=ALICE)
        update = Client(ids=client_ids("my-client"), state=State.APPROVED)

        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(AdminRequiredError):
                await container.registry.update(update, ["state"])

        with request_scope(bearer(sessions["admin"])):
            updated = await container.registry.update(update, ["state"])

        assert updated.state == State.APPROVED

    @pytest.mark.asyncio
    async def test_update_requires_settings_right(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(BOB, FOO, Right.RIGHT_APPLICATION_INFO)

        with request_scope(bearer(sessions["bob"])):
            with pytest.raises(PermissionDeniedError):
                await container.registry.update(Application(ids=FOO, name="New"), ["name"])


class TestDeleteRestorePurge:
    """Test the entity lifecycle."""

    @pytest.mark.asyncio
    async def test_delete_and_restore(self, container, sessions, factory, events):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)

        with request_scope(bearer(sessions["alice"])):
            await container.registry.delete(FOO)
            with pytest.raises(PermissionDeniedError):
                await container.registry.get(FOO)
            assert (await container.access.list_rights(FOO)).is_empty()

        with request_scope(bearer(sessions["alice"])):
            await container.registry.restore(FOO)
            assert (await container.registry.get(FOO)).ids == FOO

        assert events.names()[-2:] == ["application.delete", "application.restore"]

    @pytest.mark.asyncio
    async def test_restore_entity_that_is_not_deleted(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)

        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(EntityNotDeletedError):
                await container.registry.restore(FOO)

    @pytest.mark.asyncio
    async def test_restore_window(self, container, sessions, factory, store):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await store.delete_entity(FOO)
        deleted = await store.get_entity(FOO, include_deleted=True)
        deleted.deleted_at = utc_now() - timedelta(days=2)
        await store.update_entity(deleted)

        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(RestoreWindowExpiredError):
                await container.registry.restore(FOO)

        with request_scope(bearer(sessions["admin"])):
            await container.registry.restore(FOO)

        assert await store.get_entity(FOO) is not None

    @pytest.mark.asyncio
    async def test_purge_requires_admin(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)

        with request_scope(bearer(sessions["alice"])):
            with pytest.raises(AdminRequiredError):
                await container.registry.purge(FOO)

    @pytest.mark.asyncio
    async def test_purge(self, container, sessions, factory, store, events):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.api_key(FOO, Right.RIGHT_APPLICATION_INFO)

        with request_scope(bearer(sessions["admin"])):
            await container.registry.purge(FOO)

        assert await store.get_entity(FOO, include_deleted=True) is None
        with pytest.raises(MemberNotFoundError):
            await store.get_member(ALICE, FOO)
        assert (await store.find_api_keys(FOO))[1] == 0
        assert events.names()[-1] == "application.purge"

    @pytest.mark.asyncio
    async def test_purged_id_can_be_reused(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)

        with request_scope(bearer(sessions["admin"])):
            await container.registry.purge(FOO)

        with request_scope(bearer(sessions["bob"])):
            created = await container.registry.create(new_entity(EntityKind.APPLICATION, "foo"), BOB)

        assert created.ids == FOO


class TestRightsAfterRegistryChanges:
    """Membership changes made by the registry are visible to the creator."""

    @pytest.mark.asyncio
    async def test_rights_after_create(self, container, sessions):
        with request_scope(bearer(sessions["alice"])):
            assert (await container.access.list_rights(FOO)).is_empty()
            await container.registry.create(Application(ids=FOO), ALICE)
            assert await container.access.list_rights(FOO) == all_application_rights()

    @pytest.mark.asyncio
    async def test_rights_of_collaborator(self, container, sessions, factory):
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(BOB, FOO, Right.RIGHT_APPLICATION_INFO)

        with request_scope(bearer(sessions["bob"])):
            assert await container.access.list_rights(FOO) == Rights.of(Right.RIGHT_APPLICATION_INFO)

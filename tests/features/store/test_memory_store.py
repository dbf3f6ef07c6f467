"""Tests for membership rows in the in-memory store."""

import pytest

from lorawan_identity.core.exceptions.domain import MemberNotFoundError
from lorawan_identity.core.value_objects.identifiers import (
    EntityKind,
    application_ids,
    gateway_ids,
    user_ids,
)
from lorawan_identity.features.rights.entities.right import Right
from lorawan_identity.features.rights.entities.rights import Rights


ALICE = user_ids("alice")
BOB = user_ids("bob")
FOO = application_ids("foo")
BAR = application_ids("bar")


class TestMemberRights:
    """Test listing an account's direct rights per entity kind."""

    @pytest.mark.asyncio
    async def test_find_member_rights(self, factory, store):
        await factory.user("alice")
        await factory.entity(EntityKind.APPLICATION, "foo")
        await factory.entity(EntityKind.APPLICATION, "bar")
        await factory.entity(EntityKind.GATEWAY, "gtw")
        await factory.member(ALICE, FOO, Right.RIGHT_APPLICATION_INFO)
        await factory.member(ALICE, BAR, Right.RIGHT_APPLICATION_SETTINGS_BASIC)
        await factory.member(ALICE, gateway_ids("gtw"), Right.RIGHT_GATEWAY_INFO)

        rights = await store.find_member_rights(ALICE, EntityKind.APPLICATION)

        assert rights == {
            FOO: Rights.of(Right.RIGHT_APPLICATION_INFO),
            BAR: Rights.of(Right.RIGHT_APPLICATION_SETTINGS_BASIC),
        }

    @pytest.mark.asyncio
    async def test_find_member_rights_without_memberships(self, factory, store):
        await factory.user("alice")

        assert await store.find_member_rights(ALICE, EntityKind.APPLICATION) == {}


class TestDeleteMember:
    """Test removing a single membership."""

    @pytest.mark.asyncio
    async def test_delete_member(self, factory, store):
        await factory.user("alice")
        await factory.user("bob")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(BOB, FOO, Right.RIGHT_APPLICATION_INFO)

        await store.delete_member(BOB, FOO)

        with pytest.raises(MemberNotFoundError):
            await store.get_member(BOB, FOO)
        assert await store.get_member(ALICE, FOO)

    @pytest.mark.asyncio
    async def test_delete_missing_member(self, factory, store):
        await factory.user("alice")
        await factory.entity(EntityKind.APPLICATION, "foo")

        with pytest.raises(MemberNotFoundError) as exc_info:
            await store.delete_member(ALICE, FOO)

        assert exc_info.value.details == {"account": "user:alice", "entity": "application:foo"}

    @pytest.mark.asyncio
    async def test_delete_rolled_back_with_transaction(self, factory, store):
        await factory.user("alice")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)

        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.delete_member(ALICE, FOO)
                raise RuntimeError("boom")

        assert await store.get_member(ALICE, FOO)

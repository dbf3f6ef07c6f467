"""Tests for the rights-delta guard and the last-owner rule."""

import asyncio
from unittest.mock import patch

import pytest

from lorawan_identity.core.exceptions.auth import PermissionDeniedError
from lorawan_identity.core.exceptions.domain import (
    APIKeyMissingError,
    InvalidMembershipError,
    InvalidRightsError,
    MemberNotFoundError,
    NeedsCollaboratorError,
)
from lorawan_identity.core.value_objects.identifiers import (
    EntityKind,
    application_ids,
    gateway_ids,
    organization_ids,
    user_ids,
)
from lorawan_identity.features.auth.services.request_cache import request_scope
from lorawan_identity.features.auth.utils.tokens import parse_token
from lorawan_identity.features.memberships.services.rights_guard import (
    RightsDelta,
    check_api_key_rights,
    check_delta,
)
from lorawan_identity.features.rights.entities.right import Right
from lorawan_identity.features.rights.entities.rights import Rights, all_application_rights

from ...conftest import bearer


ALICE = user_ids("alice")
BOB = user_ids("bob")
CAROL = user_ids("carol")
FOO = application_ids("foo")


class TestRightsDelta:
    """Test computation of added and removed rights."""

    def test_delta_is_computed_on_implied_rights(self):
        delta = RightsDelta.between(
            Rights.of(Right.RIGHT_APPLICATION_INFO),
            Rights.of(Right.RIGHT_APPLICATION_LINK),
        )

        assert delta.added == Rights.of(Right.RIGHT_APPLICATION_LINK)
        assert delta.removed.is_empty()
        assert delta.new == Rights.of(Right.RIGHT_APPLICATION_LINK, Right.RIGHT_APPLICATION_INFO)

    def test_removing_everything(self):
        delta = RightsDelta.between(Rights.of(Right.RIGHT_APPLICATION_ALL), Rights())

        assert delta.removed == all_application_rights()
        assert delta.new.is_empty()


class TestCheckDelta:
    """Test the caller-rights check of a change."""

    def test_caller_may_grant_rights_it_holds(self):
        caller = Rights.of(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_LINK)

        check_delta(caller, RightsDelta.between(Rights(), Rights.of(Right.RIGHT_APPLICATION_LINK)))

    def test_caller_may_not_grant_rights_it_lacks(self):
        caller = Rights.of(Right.RIGHT_APPLICATION_INFO)

        with pytest.raises(PermissionDeniedError) as exc_info:
            check_delta(caller, RightsDelta.between(Rights(), Rights.of(Right.RIGHT_APPLICATION_DELETE)))

        assert exc_info.value.error_code == "insufficient_rights_to_add"
        assert exc_info.value.details["missing"] == ["RIGHT_APPLICATION_DELETE"]

    def test_caller_may_not_reduce_rights_it_lacks(self):
        caller = Rights.of(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_LINK)
        delta = RightsDelta.between(
            Rights.of(Right.RIGHT_APPLICATION_ALL), Rights.of(Right.RIGHT_APPLICATION_INFO)
        )

        with pytest.raises(PermissionDeniedError) as exc_info:
            check_delta(caller, delta)

        assert exc_info.value.error_code == "insufficient_rights_to_remove"

    def test_removing_everything_is_not_checked(self):
        """Dropping a membership altogether only answers to the last-owner rule."""
        caller = Rights.of(Right.RIGHT_APPLICATION_INFO)

        check_delta(caller, RightsDelta.between(Rights.of(Right.RIGHT_APPLICATION_ALL), Rights()))

    def test_api_key_rights_must_match_kind(self):
        check_api_key_rights(EntityKind.APPLICATION, Rights.of(Right.RIGHT_APPLICATION_LINK))

        with pytest.raises(InvalidRightsError) as exc_info:
            check_api_key_rights(EntityKind.APPLICATION, Rights.of(Right.RIGHT_GATEWAY_INFO))

        assert exc_info.value.details["invalid"] == ["RIGHT_GATEWAY_INFO"]


class TestGuardedMembership:
    """Test guarded collaborator writes."""

    @pytest.mark.asyncio
    async def test_owner_adds_collaborator(self, container, factory, store, events):
        await factory.user("alice")
        await factory.user("bob")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            membership = await container.guard.set_member(FOO, BOB, Rights.of(Right.RIGHT_APPLICATION_LINK))

        assert membership.rights == Rights.of(Right.RIGHT_APPLICATION_LINK, Right.RIGHT_APPLICATION_INFO)
        assert await store.get_member(BOB, FOO) == membership.rights
        assert events.events[-1].name == "application.collaborator.update"
        assert events.events[-1].identifiers == (FOO, BOB)

    @pytest.mark.asyncio
    async def test_collaborator_cannot_grant_more_than_it_holds(self, container, factory, store):
        await factory.user("alice")
        await factory.user("bob")
        await factory.user("carol")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(BOB, FOO, Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_SETTINGS_COLLABORATORS)
        token = await factory.session(BOB)

        with request_scope(bearer(token)):
            with pytest.raises(PermissionDeniedError) as exc_info:
                await container.guard.set_member(FOO, CAROL, Rights.of(Right.RIGHT_APPLICATION_DELETE))

        assert exc_info.value.error_code == "insufficient_rights_to_add"
        with pytest.raises(MemberNotFoundError):
            await store.get_member(CAROL, FOO)

    @pytest.mark.asyncio
    async def test_collaborator_cannot_demote_owner(self, container, factory, store):
        await factory.user("alice")
        await factory.user("bob")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(BOB, FOO, Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_SETTINGS_COLLABORATORS)
        token = await factory.session(BOB)

        with request_scope(bearer(token)):
            with pytest.raises(PermissionDeniedError) as exc_info:
                await container.guard.set_member(FOO, ALICE, Rights.of(Right.RIGHT_APPLICATION_INFO))

        assert exc_info.value.error_code == "insufficient_rights_to_remove"
        assert (await store.get_member(ALICE, FOO)).includes(Right.RIGHT_APPLICATION_ALL)

    @pytest.mark.asyncio
    async def test_last_owner_cannot_demote_itself(self, container, factory, store, events):
        await factory.user("alice")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            with pytest.raises(NeedsCollaboratorError) as exc_info:
                await container.guard.set_member(FOO, ALICE, Rights.of(Right.RIGHT_APPLICATION_INFO))

        assert exc_info.value.error_code == "application_needs_collaborator"
        assert (await store.get_member(ALICE, FOO)).includes(Right.RIGHT_APPLICATION_ALL)
        assert events.events == []

    @pytest.mark.asyncio
    async def test_last_owner_of_gateway_cannot_leave(self, container, factory):
        gtw = gateway_ids("gtw-1")
        await factory.user("alice")
        await factory.entity(EntityKind.GATEWAY, "gtw-1", owner=ALICE)
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            with pytest.raises(NeedsCollaboratorError) as exc_info:
                await container.guard.set_member(gtw, ALICE, Rights(), must_exist=True)

        assert exc_info.value.error_code == "gateway_needs_collaborator"

    @pytest.mark.asyncio
    async def test_owner_leaves_when_another_owner_remains(self, container, factory, store, events):
        await factory.user("alice")
        await factory.user("carol")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(CAROL, FOO, Right.RIGHT_APPLICATION_ALL)
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            membership = await container.guard.set_member(FOO, ALICE, Rights(), must_exist=True)

        assert membership.rights.is_empty()
        with pytest.raises(MemberNotFoundError):
            await store.get_member(ALICE, FOO)
        assert events.events[-1].name == "application.collaborator.delete"

    @pytest.mark.asyncio
    async def test_collaborator_without_rights_removes_other_owner(self, container, factory, store):
        """Removal is allowed when another owner remains, whatever the caller holds."""
        await factory.user("alice")
        await factory.user("bob")
        await factory.user("carol")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(CAROL, FOO, Right.RIGHT_APPLICATION_ALL)
        await factory.member(BOB, FOO, Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_SETTINGS_COLLABORATORS)
        token = await factory.session(BOB)

        with request_scope(bearer(token)):
            await container.guard.set_member(FOO, ALICE, Rights(), must_exist=True)

        with pytest.raises(MemberNotFoundError):
            await store.get_member(ALICE, FOO)

    @pytest.mark.asyncio
    async def test_organization_api_key_counts_as_owner(self, container, factory, store):
        acme = organization_ids("acme")
        await factory.user("alice")
        await factory.entity(EntityKind.ORGANIZATION, "acme", owner=ALICE)
        await factory.api_key(acme, Right.RIGHT_ORGANIZATION_ALL)
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            await container.guard.set_member(acme, ALICE, Rights(), must_exist=True)

        members, total = await store.find_members(acme)
        assert total == 0

    @pytest.mark.asyncio
    async def test_must_exist(self, container, factory):
        await factory.user("alice")
        await factory.user("bob")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            with pytest.raises(MemberNotFoundError) as exc_info:
                await container.guard.set_member(FOO, BOB, Rights(), must_exist=True)

        assert exc_info.value.error_code == "membership_not_found"

    @pytest.mark.asyncio
    async def test_illegal_membership(self, container, factory):
        acme = organization_ids("acme")
        await factory.user("alice")
        await factory.entity(EntityKind.ORGANIZATION, "acme", owner=ALICE)
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            with pytest.raises(InvalidMembershipError):
                await container.guard.set_member(acme, organization_ids("other-org"), Rights.of(Right.RIGHT_ORGANIZATION_INFO))
            with pytest.raises(InvalidMembershipError):
                await container.guard.set_member(FOO, application_ids("bar"), Rights.of(Right.RIGHT_APPLICATION_INFO))

    @pytest.mark.asyncio
    async def test_membership_change_refreshes_request_rights(self, container, factory):
        await factory.user("alice")
        await factory.user("carol")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(CAROL, FOO, Right.RIGHT_APPLICATION_ALL)
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            assert await container.resolver.entity_rights(FOO) == all_application_rights()
            await container.guard.set_member(FOO, ALICE, Rights.of(Right.RIGHT_APPLICATION_INFO))
            assert await container.resolver.entity_rights(FOO) == Rights.of(Right.RIGHT_APPLICATION_INFO)


class TestGuardedAPIKeys:
    """Test guarded API key updates."""

    @pytest.mark.asyncio
    async def test_update_rights(self, container, factory, store, events):
        await factory.user("alice")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        key_id = parse_token(await factory.api_key(FOO, Right.RIGHT_APPLICATION_INFO)).id
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            updated = await container.guard.update_api_key(
                FOO, key_id, Rights.of(Right.RIGHT_APPLICATION_LINK), name="linker"
            )

        assert updated.rights == Rights.of(Right.RIGHT_APPLICATION_LINK)
        assert updated.name == "linker"
        assert updated.key_hash is None
        assert (await store.get_api_key(key_id)).name == "linker"
        assert events.events[-1].name == "application.api-key.update"

    @pytest.mark.asyncio
    async def test_empty_rights_delete_key(self, container, factory, store, events):
        await factory.user("alice")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        key_id = parse_token(await factory.api_key(FOO, Right.RIGHT_APPLICATION_INFO)).id
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            assert await container.guard.update_api_key(FOO, key_id, Rights()) is None

        assert await store.get_api_key(key_id) is None
        assert events.events[-1].name == "application.api-key.delete"

    @pytest.mark.asyncio
    async def test_collaborator_cannot_widen_key(self, container, factory, store):
        await factory.user("alice")
        await factory.user("bob")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(BOB, FOO, Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_SETTINGS_API_KEYS)
        key_id = parse_token(await factory.api_key(FOO, Right.RIGHT_APPLICATION_INFO)).id
        token = await factory.session(BOB)

        with request_scope(bearer(token)):
            with pytest.raises(PermissionDeniedError) as exc_info:
                await container.guard.update_api_key(FOO, key_id, Rights.of(Right.RIGHT_APPLICATION_DELETE))

        assert exc_info.value.error_code == "insufficient_rights_to_add"
        assert (await store.get_api_key(key_id)).rights == Rights.of(Right.RIGHT_APPLICATION_INFO)

    @pytest.mark.asyncio
    async def test_key_of_other_entity(self, container, factory):
        await factory.user("alice")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.entity(EntityKind.APPLICATION, "bar", owner=ALICE)
        key_id = parse_token(await factory.api_key(application_ids("bar"), Right.RIGHT_APPLICATION_INFO)).id
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            with pytest.raises(APIKeyMissingError) as exc_info:
                await container.guard.update_api_key(FOO, key_id, Rights.of(Right.RIGHT_APPLICATION_INFO))

        assert exc_info.value.error_code == "api_key_not_found"

    @pytest.mark.asyncio
    async def test_last_organization_owner_key(self, container, factory, store):
        """The only owning API key of an organization without owning members stays."""
        acme = organization_ids("acme")
        await factory.user("alice")
        await factory.entity(EntityKind.ORGANIZATION, "acme")
        await factory.member(ALICE, acme, Right.RIGHT_ORGANIZATION_SETTINGS_API_KEYS, Right.RIGHT_ORGANIZATION_INFO)
        key_id = parse_token(await factory.api_key(acme, Right.RIGHT_ORGANIZATION_ALL)).id
        token = await factory.session(ALICE)

        with request_scope(bearer(token)):
            with pytest.raises(NeedsCollaboratorError) as exc_info:
                await container.guard.update_api_key(acme, key_id, Rights())

        assert exc_info.value.error_code == "organization_needs_collaborator"
        assert await store.get_api_key(key_id) is not None


class TestConcurrentChanges:
    """Test that concurrent changes see the caller's rights at commit time."""

    @pytest.mark.asyncio
    async def test_grant_after_concurrent_demotion(self, container, factory, store):
        """A collaborator demoted while granting cannot pass on the lost right."""
        await factory.user("alice")
        await factory.user("bob")
        await factory.user("carol")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(
            BOB, FOO,
            Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_DELETE, Right.RIGHT_APPLICATION_SETTINGS_COLLABORATORS,
        )
        alice_token = await factory.session(ALICE)
        bob_token = await factory.session(BOB)
        find_chains = store.find_account_membership_chains

        async def slow_find_chains(*args, **kwargs):
            await asyncio.sleep(0.01)
            return await find_chains(*args, **kwargs)

        async def as_caller(token, change):
            with request_scope(bearer(token)):
                return await change()

        with patch.object(store, "find_account_membership_chains", side_effect=slow_find_chains):
            demotion, grant = await asyncio.gather(
                as_caller(alice_token, lambda: container.access.set_collaborator(
                    FOO, BOB, Rights.of(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_SETTINGS_COLLABORATORS),
                )),
                as_caller(bob_token, lambda: container.access.set_collaborator(
                    FOO, CAROL, Rights.of(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_DELETE),
                )),
                return_exceptions=True,
            )

        assert not isinstance(demotion, Exception)
        assert isinstance(grant, PermissionDeniedError)
        assert grant.error_code == "insufficient_rights_to_add"
        assert not (await store.get_member(BOB, FOO)).includes(Right.RIGHT_APPLICATION_DELETE)
        with pytest.raises(MemberNotFoundError):
            await store.get_member(CAROL, FOO)

    @pytest.mark.asyncio
    async def test_api_key_after_concurrent_loss_of_settings_right(self, container, factory, store):
        await factory.user("alice")
        await factory.user("bob")
        await factory.entity(EntityKind.APPLICATION, "foo", owner=ALICE)
        await factory.member(BOB, FOO, Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_SETTINGS_API_KEYS)
        bob_token = await factory.session(BOB)

        with request_scope(bearer(bob_token)):
            await container.resolver.require(FOO, Right.RIGHT_APPLICATION_SETTINGS_API_KEYS)
            await store.set_member(BOB, FOO, Rights.of(Right.RIGHT_APPLICATION_INFO))

            with pytest.raises(PermissionDeniedError) as exc_info:
                await container.access.create_api_key(FOO, Rights.of(Right.RIGHT_APPLICATION_INFO))

        assert exc_info.value.details["missing"] == ["RIGHT_APPLICATION_SETTINGS_API_KEYS"]
        assert (await store.find_api_keys(FOO))[1] == 0


class TestStoreTransaction:
    """Test that a failed guarded change leaves no write behind."""

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, factory, store):
        await factory.user("alice")
        await factory.entity(EntityKind.APPLICATION, "foo")

        with pytest.raises(RuntimeError):
            async with store.transaction():
                await store.set_member(ALICE, FOO, Rights.of(Right.RIGHT_APPLICATION_ALL))
                raise RuntimeError("boom")

        with pytest.raises(MemberNotFoundError):
            await store.get_member(ALICE, FOO)

"""Tests for the rights algebra."""

import pytest

from lorawan_identity.core.exceptions.domain import InvalidRightsError
from lorawan_identity.core.value_objects.identifiers import EntityKind
from lorawan_identity.features.rights.entities.right import Right, all_right_for
from lorawan_identity.features.rights.entities.rights import (
    Rights,
    all_admin_rights,
    all_application_rights,
    all_cluster_rights,
    all_entity_rights,
    all_gateway_rights,
    all_potential_rights,
    all_rights,
    all_user_rights,
)


SAMPLES = [
    Rights(),
    Rights.of(Right.RIGHT_APPLICATION_INFO),
    Rights.of(Right.RIGHT_APPLICATION_LINK, Right.RIGHT_GATEWAY_INFO),
    Rights.of(Right.RIGHT_APPLICATION_ALL),
    Rights.of(Right.RIGHT_ORGANIZATION_ALL, Right.RIGHT_USER_INFO),
    Rights.of(Right.RIGHT_ALL),
]


class TestRightsSet:
    """Test set operations on rights."""

    def test_construct_from_strings(self):
        """Rights accept enum members and their string values."""
        rights = Rights(["RIGHT_APPLICATION_INFO", Right.RIGHT_GATEWAY_INFO, "right_user_info"])

        assert rights.includes(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_GATEWAY_INFO, Right.RIGHT_USER_INFO)
        assert len(rights) == 3

    def test_unknown_right_is_rejected(self):
        """Unknown right names raise an invalid rights error."""
        with pytest.raises(InvalidRightsError):
            Rights(["RIGHT_DOES_NOT_EXIST"])

    def test_contains_unknown_right(self):
        """Membership tests on unknown names are false instead of raising."""
        assert "RIGHT_DOES_NOT_EXIST" not in Rights.of(Right.RIGHT_ALL)

    def test_union_intersect_sub(self):
        """Union, intersection and difference behave like sets."""
        a = Rights.of(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_LINK)
        b = Rights.of(Right.RIGHT_APPLICATION_LINK, Right.RIGHT_APPLICATION_DELETE)

        assert a.union(b) == Rights.of(
            Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_LINK, Right.RIGHT_APPLICATION_DELETE
        )
        assert a.intersect(b) == Rights.of(Right.RIGHT_APPLICATION_LINK)
        assert a.sub(b) == Rights.of(Right.RIGHT_APPLICATION_INFO)
        assert (a | b) == a.union(b)
        assert (a & b) == a.intersect(b)
        assert (a - b) == a.sub(b)

    def test_operations_do_not_expand_implications(self):
        """Set operations never expand ALL rights on their own."""
        all_app = Rights.of(Right.RIGHT_APPLICATION_ALL)
        info = Rights.of(Right.RIGHT_APPLICATION_INFO)

        assert all_app.intersect(info).is_empty()
        assert not all_app.includes(Right.RIGHT_APPLICATION_INFO)
        assert all_app.implied().includes(Right.RIGHT_APPLICATION_INFO)

    def test_missing(self):
        rights = Rights.of(Right.RIGHT_APPLICATION_INFO)

        missing = rights.missing(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_APPLICATION_DELETE)

        assert missing == Rights.of(Right.RIGHT_APPLICATION_DELETE)

    def test_to_list_is_sorted_in_declaration_order(self):
        """Rights serialize in enumeration order regardless of input order."""
        rights = Rights.of(Right.RIGHT_GATEWAY_INFO, Right.RIGHT_USER_INFO, Right.RIGHT_APPLICATION_INFO)

        assert rights.to_list() == ["RIGHT_USER_INFO", "RIGHT_APPLICATION_INFO", "RIGHT_GATEWAY_INFO"]

    def test_rights_are_hashable_values(self):
        assert {Rights.of(Right.RIGHT_USER_INFO), Rights(["RIGHT_USER_INFO"])} == {Rights.of(Right.RIGHT_USER_INFO)}


class TestRightsLaws:
    """Algebraic laws that hold for any rights set."""

    @pytest.mark.parametrize("x", SAMPLES)
    def test_implied_is_idempotent(self, x):
        assert x.implied().implied() == x.implied()

    @pytest.mark.parametrize("x", SAMPLES)
    def test_union_with_empty(self, x):
        assert x.union(Rights()) == x

    @pytest.mark.parametrize("x", SAMPLES)
    def test_intersect_with_self(self, x):
        assert x.intersect(x) == x

    @pytest.mark.parametrize("x", SAMPLES)
    @pytest.mark.parametrize("y", SAMPLES)
    def test_union_minus_other_is_subset(self, x, y):
        assert x.includes_all(x.union(y).sub(y))

    @pytest.mark.parametrize("x", SAMPLES)
    def test_implied_is_superset(self, x):
        assert x.implied().includes_all(x)


class TestImplications:
    """Test expansion of ALL and composite rights."""

    def test_application_all(self):
        assert Rights.of(Right.RIGHT_APPLICATION_ALL).implied().includes_all(all_application_rights())

    def test_application_all_does_not_leak(self):
        implied = Rights.of(Right.RIGHT_APPLICATION_ALL).implied()

        assert implied.intersect(all_gateway_rights()).is_empty()
        assert implied.intersect(all_user_rights()).is_empty()

    def test_organization_all_covers_owned_entities(self):
        """Organization ALL implies what an organization holds on its entities."""
        implied = Rights.of(Right.RIGHT_ORGANIZATION_ALL).implied()

        assert implied.includes(
            Right.RIGHT_ORGANIZATION_INFO,
            Right.RIGHT_APPLICATION_ALL,
            Right.RIGHT_APPLICATION_INFO,
            Right.RIGHT_GATEWAY_LINK,
            Right.RIGHT_CLIENT_INFO,
        )
        assert not implied.includes(Right.RIGHT_USER_INFO)

    def test_right_all_implies_everything(self):
        assert Rights.of(Right.RIGHT_ALL).implied() == all_rights()

    def test_composite_rights(self):
        """Link and key rights imply their weaker counterparts."""
        implied = Rights.of(
            Right.RIGHT_APPLICATION_LINK,
            Right.RIGHT_APPLICATION_DEVICES_WRITE_KEYS,
            Right.RIGHT_GATEWAY_LINK,
        ).implied()

        assert implied.includes(
            Right.RIGHT_APPLICATION_INFO,
            Right.RIGHT_APPLICATION_DEVICES_WRITE,
            Right.RIGHT_GATEWAY_INFO,
        )
        assert not implied.includes(Right.RIGHT_APPLICATION_DEVICES_READ)


class TestRightSets:
    """Test the named rights sets."""

    def test_all_right_for_kind(self):
        assert all_right_for(EntityKind.APPLICATION) == Right.RIGHT_APPLICATION_ALL
        assert all_right_for(EntityKind.GATEWAY) == Right.RIGHT_GATEWAY_ALL
        assert all_right_for(EntityKind.ORGANIZATION) == Right.RIGHT_ORGANIZATION_ALL

    def test_right_family(self):
        assert Right.RIGHT_APPLICATION_INFO.family == EntityKind.APPLICATION
        assert Right.RIGHT_USER_ALL.family == EntityKind.USER
        assert Right.RIGHT_SEND_INVITES.family is None
        assert Right.RIGHT_ALL.family is None

    def test_potential_rights(self):
        """Only the rights that apply to the entity kind are potential rights."""
        rights = Rights.of(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_GATEWAY_INFO, Right.RIGHT_SEND_INVITES)

        assert all_potential_rights(EntityKind.APPLICATION, rights) == Rights.of(Right.RIGHT_APPLICATION_INFO)
        assert all_potential_rights(EntityKind.USER, rights).is_empty()

    def test_entity_rights_of_organization_include_owned_kinds(self):
        assert all_entity_rights(EntityKind.ORGANIZATION).includes(Right.RIGHT_APPLICATION_INFO)

    def test_admin_rights_exclude_keys_and_all_rights(self):
        admin = all_admin_rights()

        assert admin.includes(Right.RIGHT_APPLICATION_INFO, Right.RIGHT_USER_DELETE, Right.RIGHT_SEND_INVITES)
        assert not admin.includes(Right.RIGHT_APPLICATION_DEVICES_READ_KEYS)
        assert not admin.includes(Right.RIGHT_APPLICATION_ALL)
        assert not admin.includes(Right.RIGHT_ALL)

    def test_cluster_rights(self):
        cluster = all_cluster_rights().implied()

        assert cluster.includes(Right.RIGHT_APPLICATION_LINK, Right.RIGHT_GATEWAY_LINK)
        assert not cluster.includes(Right.RIGHT_APPLICATION_DELETE)
        assert cluster.intersect(all_user_rights()).is_empty()

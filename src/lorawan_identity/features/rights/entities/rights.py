"""Rights algebra.

``Rights`` is an immutable set of ``Right`` values. Set operations never
expand implications on their own; policy code calls ``implied()`` before
comparing rights sets.
"""

from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, Iterator, List, Union

from ....core.exceptions.domain import InvalidRightsError
from ....core.value_objects.identifiers import EntityKind
from .right import Right, RIGHT_ORDER


RightLike = Union[Right, str]


def _coerce(right: RightLike) -> Right:
    if isinstance(right, Right):
        return right
    try:
        return Right(str(right).upper())
    except ValueError:
        raise InvalidRightsError(f"Unknown right: {right}", details={"right": str(right)})


class Rights:
    """Immutable set of rights."""

    __slots__ = ("_rights",)

    def __init__(self, rights: Iterable[RightLike] = ()):
        self._rights: FrozenSet[Right] = frozenset(_coerce(right) for right in rights)

    @classmethod
    def of(cls, *rights: RightLike) -> "Rights":
        return cls(rights)

    @property
    def values(self) -> FrozenSet[Right]:
        return self._rights

    def union(self, *others: "Rights") -> "Rights":
        result = set(self._rights)
        for other in others:
            result.update(other._rights)
        return Rights(result)

    def intersect(self, *others: "Rights") -> "Rights":
        result = set(self._rights)
        for other in others:
            result.intersection_update(other._rights)
        return Rights(result)

    def sub(self, *others: "Rights") -> "Rights":
        result = set(self._rights)
        for other in others:
            result.difference_update(other._rights)
        return Rights(result)

    def includes(self, *rights: RightLike) -> bool:
        """Check that every given right is in the set."""
        return all(_coerce(right) in self._rights for right in rights)

    def includes_all(self, other: "Rights") -> bool:
        return other._rights <= self._rights

    def missing(self, *rights: RightLike) -> "Rights":
        """Rights from the arguments that are not in the set."""
        return Rights(right for right in map(_coerce, rights) if right not in self._rights)

    def implied(self) -> "Rights":
        """Expand ALL rights and composite rights into their members."""
        return Rights(_implied_closure(self._rights))

    def is_empty(self) -> bool:
        return not self._rights

    def to_list(self) -> List[str]:
        """Rights as sorted string values."""
        return [right.value for right in self]

    def __iter__(self) -> Iterator[Right]:
        return iter(sorted(self._rights, key=RIGHT_ORDER.__getitem__))

    def __len__(self) -> int:
        return len(self._rights)

    def __bool__(self) -> bool:
        return bool(self._rights)

    def __contains__(self, right: object) -> bool:
        try:
            return _coerce(right) in self._rights
        except InvalidRightsError:
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rights):
            return NotImplemented
        return self._rights == other._rights

    def __hash__(self) -> int:
        return hash(self._rights)

    def __or__(self, other: "Rights") -> "Rights":
        return self.union(other)

    def __and__(self, other: "Rights") -> "Rights":
        return self.intersect(other)

    def __sub__(self, other: "Rights") -> "Rights":
        return self.sub(other)

    def __copy__(self) -> "Rights":
        return self

    def __deepcopy__(self, memo) -> "Rights":
        return self

    def __repr__(self) -> str:
        return f"Rights({', '.join(self.to_list())})"


def _family(prefix: str) -> FrozenSet[Right]:
    return frozenset(right for right in Right if right.value.startswith(prefix))


_USER_RIGHTS = _family("RIGHT_USER_")
_APPLICATION_RIGHTS = _family("RIGHT_APPLICATION_")
_CLIENT_RIGHTS = _family("RIGHT_CLIENT_")
_GATEWAY_RIGHTS = _family("RIGHT_GATEWAY_")
# Organization rights cover what the organization holds on its applications, clients and gateways
_ORGANIZATION_RIGHTS = _family("RIGHT_ORGANIZATION_") | _APPLICATION_RIGHTS | _CLIENT_RIGHTS | _GATEWAY_RIGHTS

_IMPLICATIONS: Dict[Right, FrozenSet[Right]] = {
    Right.RIGHT_ALL: frozenset(Right),
    Right.RIGHT_USER_ALL: _USER_RIGHTS,
    Right.RIGHT_APPLICATION_ALL: _APPLICATION_RIGHTS,
    Right.RIGHT_CLIENT_ALL: _CLIENT_RIGHTS,
    Right.RIGHT_GATEWAY_ALL: _GATEWAY_RIGHTS,
    Right.RIGHT_ORGANIZATION_ALL: _ORGANIZATION_RIGHTS,
    Right.RIGHT_APPLICATION_LINK: frozenset({Right.RIGHT_APPLICATION_INFO}),
    Right.RIGHT_APPLICATION_DEVICES_READ_KEYS: frozenset({Right.RIGHT_APPLICATION_DEVICES_READ}),
    Right.RIGHT_APPLICATION_DEVICES_WRITE_KEYS: frozenset({Right.RIGHT_APPLICATION_DEVICES_WRITE}),
    Right.RIGHT_GATEWAY_LINK: frozenset({Right.RIGHT_GATEWAY_INFO}),
}


@lru_cache(maxsize=4096)
def _implied_closure(rights: FrozenSet[Right]) -> FrozenSet[Right]:
    result = set(rights)
    pending = list(rights)
    while pending:
        for implied in _IMPLICATIONS.get(pending.pop(), ()):
            if implied not in result:
                result.add(implied)
                pending.append(implied)
    return frozenset(result)


def all_rights() -> Rights:
    return Rights(Right)


def all_user_rights() -> Rights:
    return Rights(_USER_RIGHTS)


def all_application_rights() -> Rights:
    return Rights(_APPLICATION_RIGHTS)


def all_client_rights() -> Rights:
    return Rights(_CLIENT_RIGHTS)


def all_gateway_rights() -> Rights:
    return Rights(_GATEWAY_RIGHTS)


def all_organization_rights() -> Rights:
    return Rights(_ORGANIZATION_RIGHTS)


_ENTITY_RIGHTS = {
    EntityKind.USER: _USER_RIGHTS,
    EntityKind.APPLICATION: _APPLICATION_RIGHTS,
    EntityKind.CLIENT: _CLIENT_RIGHTS,
    EntityKind.GATEWAY: _GATEWAY_RIGHTS,
    EntityKind.ORGANIZATION: _ORGANIZATION_RIGHTS,
    EntityKind.END_DEVICE: _APPLICATION_RIGHTS,
}


def all_entity_rights(kind: EntityKind) -> Rights:
    """Every right that can apply to an entity of the given kind."""
    return Rights(_ENTITY_RIGHTS[kind])


def all_potential_rights(kind: EntityKind, rights: Rights) -> Rights:
    """The subset of ``rights`` that could apply to an entity of the given kind."""
    return rights.intersect(all_entity_rights(kind))


def all_admin_rights() -> Rights:
    """Rights granted to admins: everything except key material and ALL rights."""
    return Rights(
        right for right in Right
        if not right.value.endswith("_KEYS") and not right.is_all
    )


def all_cluster_rights() -> Rights:
    """Rights granted to cluster-internal callers."""
    return Rights.of(
        Right.RIGHT_APPLICATION_INFO,
        Right.RIGHT_APPLICATION_LINK,
        Right.RIGHT_APPLICATION_DEVICES_READ,
        Right.RIGHT_APPLICATION_DEVICES_READ_KEYS,
        Right.RIGHT_APPLICATION_TRAFFIC_READ,
        Right.RIGHT_APPLICATION_TRAFFIC_UP_WRITE,
        Right.RIGHT_APPLICATION_TRAFFIC_DOWN_WRITE,
        Right.RIGHT_GATEWAY_INFO,
        Right.RIGHT_GATEWAY_LINK,
        Right.RIGHT_GATEWAY_STATUS_READ,
        Right.RIGHT_GATEWAY_LOCATION_READ,
        Right.RIGHT_GATEWAY_TRAFFIC_READ,
        Right.RIGHT_GATEWAY_TRAFFIC_DOWN_WRITE,
    )

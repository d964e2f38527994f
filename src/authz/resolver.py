"""Principal resolution.

Maps an authenticated user name to its effective role set through group
membership. Nothing is cached: roles are recomputed for every check from
the snapshot the check is evaluated against.

Membership comes either from an external lookup or, when none is given,
from the ``user_groups`` published in that same snapshot, so grants and
membership always belong to one policy version.
"""

from typing import Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from .store import PermissionStore, PolicySnapshot

GroupMembershipLookup = Callable[[str], Iterable[str]]


def groups_of(
    principal: str,
    group_membership_of: Optional[GroupMembershipLookup],
    snapshot: Optional[PolicySnapshot] = None,
) -> FrozenSet[str]:
    """Groups a principal belongs to; unknown principals have none."""
    if group_membership_of is None:
        return snapshot.groups_of(principal) if snapshot is not None else frozenset()
    groups = group_membership_of(principal)
    if not groups:
        return frozenset()
    return frozenset(groups)


def effective_roles(
    principal: str,
    group_membership_of: Optional[GroupMembershipLookup],
    snapshot: PolicySnapshot,
) -> FrozenSet[str]:
    """Union of the roles of every group the principal belongs to."""
    roles = set()
    for group in groups_of(principal, group_membership_of, snapshot):
        roles.update(snapshot.roles_of(group))
    return frozenset(roles)


class StaticGroupMapping:
    """In-memory principal -> groups lookup.

    Usable anywhere a group membership lookup is expected::

        mapping = StaticGroupMapping({"user1_1": ["user_group1"]})
        mapping("user1_1")  # frozenset({'user_group1'})
    """

    def __init__(self, mapping: Optional[Mapping[str, Iterable[str]]] = None):
        self._mapping: Dict[str, FrozenSet[str]] = {
            user: frozenset(groups) for user, groups in (mapping or {}).items()
        }

    def __call__(self, principal: str) -> FrozenSet[str]:
        return self._mapping.get(principal, frozenset())

    def add(self, principal: str, *groups: str) -> "StaticGroupMapping":
        self._mapping[principal] = self._mapping.get(principal, frozenset()) | frozenset(groups)
        return self

    def users(self) -> list:
        return sorted(self._mapping)


class PrincipalResolver:
    """Resolves principals against a permission store.

    Without ``group_membership_of`` the groups are read from the snapshot
    being evaluated (the ``users`` section of a policy file).
    """

    def __init__(
        self,
        store: PermissionStore,
        group_membership_of: Optional[GroupMembershipLookup] = None,
    ):
        self.store = store
        self.group_membership_of = group_membership_of

    def groups_of(
        self, principal: str, snapshot: Optional[PolicySnapshot] = None
    ) -> FrozenSet[str]:
        return groups_of(principal, self.group_membership_of, snapshot or self.store.snapshot)

    def effective_roles(
        self, principal: str, snapshot: Optional[PolicySnapshot] = None
    ) -> FrozenSet[str]:
        return effective_roles(
            principal, self.group_membership_of, snapshot or self.store.snapshot
        )

    def is_admin(self, principal: str, snapshot: Optional[PolicySnapshot] = None) -> bool:
        """True if any of the principal's groups is an admin group."""
        snapshot = snapshot or self.store.snapshot
        return any(snapshot.is_admin(group) for group in self.groups_of(principal, snapshot))

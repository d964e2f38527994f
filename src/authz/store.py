"""Permission store for catalog authorization.

The store publishes an immutable :class:`PolicySnapshot` behind a single
reference. ``load`` builds a complete new snapshot first and then swaps the
reference, so readers always see either the previous policy or the new one
and never a partially built index. Readers take no lock; reloads serialize
on ``_reload_lock`` so two concurrent loads cannot interleave.
"""

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, NamedTuple, Optional, Union

from ..common.logger import get_logger
from .exceptions import PolicyParseError
from .permissions import Permission, coerce_permission

logger = get_logger("permission_store")


class GroupRoleGrant(NamedTuple):
    """Policy entry assigning a role to a group."""

    group: str
    role: str


class RolePermissionGrant(NamedTuple):
    """Policy entry granting a permission to a role."""

    role: str
    permission: Union[str, Permission]


PolicyEntry = Union[GroupRoleGrant, RolePermissionGrant]

_EMPTY: FrozenSet = frozenset()


@dataclass(frozen=True)
class PolicySnapshot:
    """An immutable view of one loaded policy."""

    group_roles: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: MappingProxyType({}))
    role_permissions: Mapping[str, FrozenSet[Permission]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    admin_groups: FrozenSet[str] = frozenset()
    user_groups: Optional[Mapping[str, FrozenSet[str]]] = None
    version: int = 0

    def roles_of(self, group: str) -> FrozenSet[str]:
        return self.group_roles.get(group, _EMPTY)

    def permissions_of(self, role: str) -> FrozenSet[Permission]:
        return self.role_permissions.get(role, _EMPTY)

    def is_admin(self, group: str) -> bool:
        return group in self.admin_groups

    def groups_of(self, principal: str) -> FrozenSet[str]:
        """Groups the policy itself assigns to ``principal``."""
        if self.user_groups is None:
            return _EMPTY
        return self.user_groups.get(principal, _EMPTY)

    @property
    def roles(self) -> FrozenSet[str]:
        """Every role named by the policy."""
        named = set(self.role_permissions)
        for roles in self.group_roles.values():
            named.update(roles)
        return frozenset(named)


def build_snapshot(
    entries: Iterable[PolicyEntry],
    admin_groups: Iterable[str] = (),
    *,
    user_groups: Optional[Mapping[str, Iterable[str]]] = None,
    version: int = 0,
    default_filesystem: Optional[str] = None,
) -> PolicySnapshot:
    """Index policy entries into a new snapshot.

    Args:
        entries: Group-role and role-permission grants
        admin_groups: Groups that bypass every check
        user_groups: Principal -> groups membership published with the grants,
            or None when membership comes from outside the policy
        version: Version number stamped on the snapshot
        default_filesystem: Filesystem used to qualify scheme-less URI grants

    Returns:
        Fully built PolicySnapshot

    Raises:
        PolicyParseError: If an entry is not a known grant or a permission
            string does not parse
    """
    group_roles: dict = {}
    role_permissions: dict = {}

    for entry in entries:
        if isinstance(entry, GroupRoleGrant):
            group_roles.setdefault(entry.group, set()).add(entry.role)
        elif isinstance(entry, RolePermissionGrant):
            try:
                permission = coerce_permission(entry.permission, default_filesystem)
            except PolicyParseError as e:
                e.role = entry.role
                raise
            role_permissions.setdefault(entry.role, set()).add(permission)
        else:
            raise PolicyParseError(f"Unsupported policy entry: {entry!r}")

    membership = None
    if user_groups is not None:
        membership = MappingProxyType({u: frozenset(g) for u, g in user_groups.items()})

    return PolicySnapshot(
        group_roles=MappingProxyType({g: frozenset(r) for g, r in group_roles.items()}),
        role_permissions=MappingProxyType(
            {r: frozenset(p) for r, p in role_permissions.items()}
        ),
        admin_groups=frozenset(admin_groups),
        user_groups=membership,
        version=version,
    )


class PermissionStore:
    """Holds the current policy snapshot and replaces it atomically."""

    def __init__(self, default_filesystem: Optional[str] = None):
        """
        Initialize an empty store.

        Args:
            default_filesystem: Filesystem used to qualify scheme-less URI grants
        """
        self.default_filesystem = default_filesystem
        self._snapshot = PolicySnapshot()
        self._reload_lock = threading.Lock()

    @property
    def snapshot(self) -> PolicySnapshot:
        """The currently published snapshot."""
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def load(
        self,
        entries: Iterable[PolicyEntry],
        admin_groups: Iterable[str] = (),
        user_groups: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> "PermissionStore":
        """
        Replace the whole policy with the given entries.

        Either the new snapshot is published in full or, when any entry
        fails to parse, the previous snapshot stays active. Membership given
        in ``user_groups`` is published in the same snapshot as the grants.

        Raises:
            PolicyParseError: If any permission string is malformed
        """
        entries = list(entries)
        admin_groups = list(admin_groups)
        with self._reload_lock:
            try:
                snapshot = build_snapshot(
                    entries,
                    admin_groups,
                    user_groups=user_groups,
                    version=self._snapshot.version + 1,
                    default_filesystem=self.default_filesystem,
                )
            except PolicyParseError as e:
                logger.error(
                    f"Policy load rejected, keeping version {self._snapshot.version}: {e}"
                )
                raise
            self._snapshot = snapshot

        logger.info(
            f"Loaded policy version {snapshot.version}: "
            f"{len(snapshot.group_roles)} groups, {len(snapshot.role_permissions)} roles, "
            f"{len(snapshot.admin_groups)} admin groups"
        )
        return self

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[PolicyEntry],
        admin_groups: Iterable[str] = (),
        default_filesystem: Optional[str] = None,
    ) -> "PermissionStore":
        return cls(default_filesystem=default_filesystem).load(entries, admin_groups)

    def roles_of(self, group: str) -> FrozenSet[str]:
        return self._snapshot.roles_of(group)

    def permissions_of(self, role: str) -> FrozenSet[Permission]:
        return self._snapshot.permissions_of(role)

    def is_admin(self, group: str) -> bool:
        return self._snapshot.is_admin(group)

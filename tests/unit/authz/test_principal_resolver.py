"""Tests for principal -> group -> role resolution."""

from src.authz.resolver import PrincipalResolver, StaticGroupMapping, effective_roles
from src.authz.store import GroupRoleGrant, PermissionStore

from tests.factories import ADMIN1, USER1_1, USER2_1, USER3_1, USERGROUP1, USERGROUP2


class TestStaticGroupMapping:
    """Test the in-memory group lookup."""

    def test_lookup(self, group_mapping):
        """Test known and unknown users."""
        assert group_mapping(USER1_1) == {USERGROUP1}
        assert group_mapping("stranger") == frozenset()

    def test_add_extends_groups(self):
        """Test adding groups for a user."""
        mapping = StaticGroupMapping().add("bob", "g1").add("bob", "g2")
        assert mapping("bob") == {"g1", "g2"}
        assert mapping.users() == ["bob"]


class TestPrincipalResolver:
    """Test effective role computation."""

    def test_roles_union_across_groups(self):
        """Test that roles of every group are combined."""
        store = PermissionStore.from_entries(
            [
                GroupRoleGrant("g1", "r1"),
                GroupRoleGrant("g2", "r2"),
                GroupRoleGrant("g2", "r3"),
            ]
        )
        resolver = PrincipalResolver(store, StaticGroupMapping({"bob": ["g1", "g2"]}))
        assert resolver.groups_of("bob") == {"g1", "g2"}
        assert resolver.effective_roles("bob") == {"r1", "r2", "r3"}

    def test_unknown_principal_has_no_roles(self, store, group_mapping):
        """Test that an unmapped user resolves to nothing."""
        resolver = PrincipalResolver(store, group_mapping)
        assert resolver.effective_roles("stranger") == frozenset()
        assert not resolver.is_admin("stranger")

    def test_group_without_roles(self, store, group_mapping):
        """Test a user whose group has no policy entries."""
        resolver = PrincipalResolver(store, group_mapping)
        assert resolver.effective_roles(USER3_1) == frozenset()

    def test_admin_membership(self, store, group_mapping):
        """Test admin group detection."""
        resolver = PrincipalResolver(store, group_mapping)
        assert resolver.is_admin(ADMIN1)
        assert not resolver.is_admin(USER1_1)

    def test_lookup_returning_none(self, store):
        """Test that a lookup returning None is treated as no groups."""
        resolver = PrincipalResolver(store, lambda principal: None)
        assert resolver.groups_of(USER1_1) == frozenset()

    def test_roles_follow_reload(self, store, group_mapping):
        """Test that role changes apply to the next resolution."""
        resolver = PrincipalResolver(store, group_mapping)
        assert resolver.effective_roles(USER2_1) == {"read_db_role"}
        store.load([GroupRoleGrant(USERGROUP2, "other_role")])
        assert resolver.effective_roles(USER2_1) == {"other_role"}

    def test_resolution_against_explicit_snapshot(self, store, group_mapping):
        """Test resolving against a held snapshot."""
        held = store.snapshot
        store.load([])
        assert effective_roles(USER1_1, group_mapping, held) == {"all_db1"}
        assert effective_roles(USER1_1, group_mapping, store.snapshot) == frozenset()

    def test_membership_from_snapshot(self):
        """Test that without a lookup, groups come from the evaluated snapshot."""
        store = PermissionStore().load(
            [GroupRoleGrant("g1", "r1")], admin_groups=["admins"], user_groups={"bob": ["g1"]}
        )
        resolver = PrincipalResolver(store)
        held = store.snapshot
        store.load(
            [GroupRoleGrant("g1", "r1")],
            admin_groups=["admins"],
            user_groups={"bob": ["admins"]},
        )

        assert resolver.effective_roles("bob", held) == {"r1"}
        assert not resolver.is_admin("bob", held)
        assert resolver.effective_roles("bob") == frozenset()
        assert resolver.is_admin("bob")

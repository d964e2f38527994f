"""Tests for the permission store."""

import pytest

from src.authz.exceptions import PolicyParseError
from src.authz.permissions import parse_permission
from src.authz.store import (
    GroupRoleGrant,
    PermissionStore,
    PolicySnapshot,
    RolePermissionGrant,
    build_snapshot,
)


class TestBuildSnapshot:
    """Test indexing of policy entries."""

    def test_indexes_groups_and_roles(self):
        """Test group->role and role->permission indexes."""
        snapshot = build_snapshot(
            [
                GroupRoleGrant("g1", "r1"),
                GroupRoleGrant("g1", "r2"),
                GroupRoleGrant("g2", "r1"),
                RolePermissionGrant("r1", "server=s1->db=d1"),
                RolePermissionGrant("r2", parse_permission("server=s1->uri=/wh")),
            ],
            admin_groups=["admins"],
        )
        assert snapshot.roles_of("g1") == {"r1", "r2"}
        assert snapshot.roles_of("g2") == {"r1"}
        assert snapshot.permissions_of("r1") == {parse_permission("server=s1->db=d1")}
        assert snapshot.is_admin("admins")
        assert not snapshot.is_admin("g1")
        assert snapshot.roles == {"r1", "r2"}

    def test_unknown_lookups_are_empty(self):
        """Test that unknown groups and roles yield empty sets."""
        snapshot = PolicySnapshot()
        assert snapshot.roles_of("nobody") == frozenset()
        assert snapshot.permissions_of("none") == frozenset()

    def test_role_without_permissions(self):
        """Test that a role may be assigned without any permission."""
        snapshot = build_snapshot([GroupRoleGrant("g1", "empty_role")])
        assert snapshot.roles_of("g1") == {"empty_role"}
        assert snapshot.permissions_of("empty_role") == frozenset()

    def test_snapshot_indexes_are_read_only(self):
        """Test that published indexes cannot be mutated."""
        snapshot = build_snapshot([GroupRoleGrant("g1", "r1")])
        with pytest.raises(TypeError):
            snapshot.group_roles["g2"] = frozenset({"r2"})

    def test_parse_error_names_role(self):
        """Test that a bad permission reports its role."""
        with pytest.raises(PolicyParseError) as exc_info:
            build_snapshot([RolePermissionGrant("broken", "server=s1->table=t")])
        assert exc_info.value.role == "broken"
        assert exc_info.value.permission == "server=s1->table=t"

    def test_unknown_entry_type_rejected(self):
        """Test that arbitrary tuples are not accepted as entries."""
        with pytest.raises(PolicyParseError):
            build_snapshot([("g1", "r1")])


class TestPermissionStore:
    """Test snapshot publication."""

    def test_new_store_is_empty(self):
        """Test the initial state."""
        store = PermissionStore()
        assert store.version == 0
        assert store.roles_of("g1") == frozenset()

    def test_load_publishes_and_bumps_version(self):
        """Test that load replaces the snapshot."""
        store = PermissionStore()
        result = store.load([GroupRoleGrant("g1", "r1")], admin_groups=["admins"])
        assert result is store
        assert store.version == 1
        assert store.roles_of("g1") == {"r1"}
        assert store.is_admin("admins")

    def test_reload_replaces_wholesale(self):
        """Test that a reload drops grants absent from the new policy."""
        store = PermissionStore.from_entries(
            [GroupRoleGrant("g1", "r1"), RolePermissionGrant("r1", "server=s1")],
            admin_groups=["admins"],
        )
        store.load([GroupRoleGrant("g2", "r2")])
        assert store.roles_of("g1") == frozenset()
        assert store.permissions_of("r1") == frozenset()
        assert not store.is_admin("admins")
        assert store.roles_of("g2") == {"r2"}
        assert store.version == 2

    def test_failed_load_keeps_previous_snapshot(self):
        """Test that a parse error leaves the prior policy active."""
        store = PermissionStore.from_entries(
            [GroupRoleGrant("g1", "r1"), RolePermissionGrant("r1", "server=s1->db=d1")]
        )
        before = store.snapshot

        with pytest.raises(PolicyParseError):
            store.load(
                [
                    GroupRoleGrant("g2", "r2"),
                    RolePermissionGrant("r2", "server=s1->db=d2"),
                    RolePermissionGrant("r2", "not a permission"),
                ]
            )

        assert store.snapshot is before
        assert store.version == 1
        assert store.roles_of("g1") == {"r1"}
        assert store.roles_of("g2") == frozenset()

    def test_snapshot_held_by_reader_is_unaffected_by_reload(self):
        """Test that a reader's snapshot stays consistent across a reload."""
        store = PermissionStore.from_entries([GroupRoleGrant("g1", "r1")])
        held = store.snapshot
        store.load([GroupRoleGrant("g1", "r2")])
        assert held.roles_of("g1") == {"r1"}
        assert store.roles_of("g1") == {"r2"}

    def test_default_filesystem_applies_to_uri_grants(self):
        """Test that scheme-less URI grants are qualified at load time."""
        store = PermissionStore.from_entries(
            [RolePermissionGrant("r1", "server=s1->uri=/wh")],
            default_filesystem="hdfs://nn:8020",
        )
        (perm,) = store.permissions_of("r1")
        assert str(perm.resource) == "hdfs://nn:8020/wh"

    def test_membership_published_with_grants(self):
        """Test that user membership travels in the same snapshot as grants."""
        store = PermissionStore.from_entries([GroupRoleGrant("g1", "r1")])
        assert store.snapshot.user_groups is None
        assert store.snapshot.groups_of("bob") == frozenset()

        held = store.snapshot
        store.load([GroupRoleGrant("g2", "r2")], user_groups={"bob": ["g2"]})
        assert store.snapshot.groups_of("bob") == {"g2"}
        assert store.snapshot.groups_of("alice") == frozenset()
        assert held.groups_of("bob") == frozenset()

    def test_failed_load_keeps_previous_membership(self):
        """Test that a rejected policy does not publish its membership."""
        store = PermissionStore().load([], user_groups={"bob": ["g1"]})
        with pytest.raises(PolicyParseError):
            store.load(
                [RolePermissionGrant("r", "server=s1->table=t")],
                user_groups={"bob": ["g2"]},
            )
        assert store.snapshot.groups_of("bob") == {"g1"}

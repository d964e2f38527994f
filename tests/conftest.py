"""Pytest configuration and shared fixtures."""

import pytest

from src.authz.evaluator import PolicyEvaluator
from src.authz.resolver import PrincipalResolver, StaticGroupMapping
from src.authz.store import GroupRoleGrant, PermissionStore, RolePermissionGrant
from src.metastore.binding import MetastoreAuthorizationBinding
from src.metastore.catalog import MetastoreCatalog

from tests.factories import (
    ADMINGROUP,
    SERVER,
    STATIC_USER_GROUPS,
    USERGROUP1,
    USERGROUP2,
    WAREHOUSE_DIR,
)


@pytest.fixture
def sample_config():
    """Sample configuration dictionary."""
    return {
        "authorization": {
            "server_name": SERVER,
            "admin_groups": [ADMINGROUP],
            "alter_partition_scope": "server",
        },
        "catalog": {
            "database_url": "sqlite://",
            "warehouse_dir": WAREHOUSE_DIR,
        },
        "logging": {
            "level": "DEBUG",
            "console_logging": False,
        },
    }


@pytest.fixture
def group_mapping():
    """The static user -> groups mapping used across tests."""
    return StaticGroupMapping(STATIC_USER_GROUPS)


@pytest.fixture
def store():
    """Store with the database-level roles of the end-to-end suite."""
    return PermissionStore.from_entries(
        [
            GroupRoleGrant(USERGROUP1, "all_db1"),
            GroupRoleGrant(USERGROUP2, "read_db_role"),
            RolePermissionGrant("all_db1", "server=server1->db=db_1"),
            RolePermissionGrant(
                "read_db_role", "server=server1->db=db_1->table=*->action=SELECT"
            ),
        ],
        admin_groups=[ADMINGROUP],
    )


@pytest.fixture
def evaluator(store, group_mapping):
    return PolicyEvaluator(PrincipalResolver(store, group_mapping))


@pytest.fixture
def binding(evaluator):
    return MetastoreAuthorizationBinding(evaluator, SERVER)


@pytest.fixture
def catalog():
    """Empty in-memory catalog."""
    return MetastoreCatalog("sqlite://", WAREHOUSE_DIR)

"""YAML policy document.

The document is one convenient source of policy entries; the engine only
ever consumes the structured grants it produces. Layout::

    admin_groups: [admin_group]
    groups:
      user_group1: [all_db1, uri_role]
      user_group2: [read_db_role]
    roles:
      all_db1: ["server=server1->db=db_1"]
      read_db_role: ["server=server1->db=db_1->table=*->action=select"]
      uri_role: ["server=server1->uri=/user/hive/warehouse/fooTab1"]
    users:
      user1_1: [user_group1]

Role and group lists may also be written as comma separated strings.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..authz.exceptions import PolicyParseError
from ..authz.permissions import Permission, server_permission
from ..authz.resolver import StaticGroupMapping
from ..authz.store import GroupRoleGrant, PolicyEntry, RolePermissionGrant


def _split_names(value):
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class PolicyDocument(BaseModel):
    """Validated policy document."""

    admin_groups: List[str] = Field(default_factory=list)
    groups: Dict[str, List[str]] = Field(default_factory=dict)
    roles: Dict[str, List[str]] = Field(default_factory=dict)
    users: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("admin_groups", mode="before")
    @classmethod
    def _admin_groups_from_string(cls, value):
        return _split_names(value) if value is not None else []

    @field_validator("groups", "roles", "users", mode="before")
    @classmethod
    def _sections_from_strings(cls, value):
        if value is None:
            return {}
        if isinstance(value, dict):
            return {key: _split_names(items) or [] for key, items in value.items()}
        return value

    def entries(self) -> List[PolicyEntry]:
        """Flatten the document into group-role and role-permission grants."""
        entries: List[PolicyEntry] = []
        for group, roles in self.groups.items():
            entries.extend(GroupRoleGrant(group, role) for role in roles)
        for role, permissions in self.roles.items():
            entries.extend(RolePermissionGrant(role, perm) for perm in permissions)
        return entries

    def group_mapping(self) -> StaticGroupMapping:
        return StaticGroupMapping(self.users)


def load_policy_document(path: Union[str, Path]) -> PolicyDocument:
    """
    Read and validate a policy document.

    Raises:
        FileNotFoundError: If the file doesn't exist
        PolicyParseError: If the file is not valid YAML or not a valid document
    """
    policy_path = Path(path)
    if not policy_path.exists():
        raise FileNotFoundError(f"Policy file not found: {path}")

    try:
        with policy_path.open("r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PolicyParseError(f"Invalid YAML in policy file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PolicyParseError(
            f"Policy file root must be a mapping, got {type(data).__name__}"
        )

    try:
        return PolicyDocument.model_validate(data)
    except ValidationError as e:
        raise PolicyParseError(f"Invalid policy file {path}: {e}") from e


class PolicyFile:
    """
    Fluent builder for policy documents.

    Usage:
        policy = (
            PolicyFile.set_admin_on_server("admin_group")
            .add_roles_to_group("user_group1", "all_db1")
            .add_permissions_to_role("all_db1", "server=server1->db=db_1")
        )
        policy.write(tmp_path / "policy.yaml")
    """

    ADMIN_ROLE = "admin_role"

    def __init__(self):
        self._admin_groups: List[str] = []
        self._groups: Dict[str, List[str]] = {}
        self._roles: Dict[str, List[str]] = {}
        self._users: Dict[str, List[str]] = {}

    @classmethod
    def set_admin_on_server(cls, admin_group: str, server: str = "server1") -> "PolicyFile":
        """Start a policy in which ``admin_group`` holds ALL on ``server``."""
        return (
            cls()
            .add_roles_to_group(admin_group, cls.ADMIN_ROLE)
            .add_permissions_to_role(cls.ADMIN_ROLE, server_permission(server))
        )

    def add_admin_groups(self, *groups: str) -> "PolicyFile":
        for group in groups:
            if group not in self._admin_groups:
                self._admin_groups.append(group)
        return self

    def add_roles_to_group(self, group: str, *roles: str) -> "PolicyFile":
        assigned = self._groups.setdefault(group, [])
        assigned.extend(role for role in roles if role not in assigned)
        return self

    def remove_roles_from_group(self, group: str, *roles: str) -> "PolicyFile":
        if group in self._groups:
            self._groups[group] = [r for r in self._groups[group] if r not in roles]
        return self

    def add_permissions_to_role(
        self, role: str, *permissions: Union[str, Permission]
    ) -> "PolicyFile":
        granted = self._roles.setdefault(role, [])
        for permission in permissions:
            text = str(permission)
            if text not in granted:
                granted.append(text)
        return self

    def remove_permissions_from_role(self, role: str, *permissions: str) -> "PolicyFile":
        if role in self._roles:
            self._roles[role] = [p for p in self._roles[role] if p not in permissions]
        return self

    def set_user_group_mapping(self, mapping: Mapping[str, Iterable[str]]) -> "PolicyFile":
        self._users = {user: list(groups) for user, groups in mapping.items()}
        return self

    def to_document(self) -> PolicyDocument:
        return PolicyDocument(
            admin_groups=list(self._admin_groups),
            groups={g: list(r) for g, r in self._groups.items()},
            roles={r: list(p) for r, p in self._roles.items()},
            users={u: list(g) for u, g in self._users.items()},
        )

    def write(self, path: Union[str, Path]) -> Path:
        """Write the document as YAML, replacing the file in one rename."""
        policy_path = Path(path)
        tmp_path = policy_path.with_name(policy_path.name + ".tmp")
        with tmp_path.open("w") as f:
            yaml.safe_dump(self.to_document().model_dump(), f, sort_keys=True)
        tmp_path.replace(policy_path)
        return policy_path


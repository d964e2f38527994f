"""Role-based authorization engine for metadata catalog operations.

This package defines the resource model, the permission grammar, the
permission store, principal resolution and policy evaluation.
"""

from .exceptions import (
    AuthorizationError,
    AuthorizationDenied,
    MalformedResourceError,
    PolicyParseError,
)
from .resources import Action, Level, ResourcePath, UriResource
from .permissions import Permission, parse_permission
from .store import (
    GroupRoleGrant,
    PermissionStore,
    PolicySnapshot,
    RolePermissionGrant,
)
from .resolver import PrincipalResolver, StaticGroupMapping, effective_roles
from .evaluator import AuthorizationDecision, PolicyEvaluator, RequiredCheck

__all__ = [
    "Action",
    "AuthorizationDecision",
    "AuthorizationDenied",
    "AuthorizationError",
    "GroupRoleGrant",
    "Level",
    "MalformedResourceError",
    "Permission",
    "PermissionStore",
    "PolicyEvaluator",
    "PolicyParseError",
    "PolicySnapshot",
    "PrincipalResolver",
    "RequiredCheck",
    "ResourcePath",
    "RolePermissionGrant",
    "StaticGroupMapping",
    "UriResource",
    "effective_roles",
    "parse_permission",
]

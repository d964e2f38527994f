"""Policy evaluation for catalog authorization.

Given a principal and an ordered sequence of required checks, decides
Allow or Deny:

1. A principal in any admin group is allowed unconditionally.
2. Otherwise the principal's roles are resolved, their permissions are
   unioned, and every check must be satisfied by some permission.
3. Checks are conjunctive. A Deny names the first failing check, but the
   request is always rejected as a unit.

Each call reads the store's snapshot exactly once, so a concurrent reload
is observed either entirely or not at all.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, NamedTuple, Optional, Sequence, Union

from ..common.logger import get_logger
from .exceptions import AuthorizationDenied
from .permissions import Permission
from .resolver import PrincipalResolver
from .resources import Action, ResourcePath, UriResource

logger = get_logger("policy_evaluator")


class RequiredCheck(NamedTuple):
    """One authorization condition an operation must satisfy."""

    target: Union[ResourcePath, UriResource]
    action: Action
    server: str

    @classmethod
    def on_path(cls, path: ResourcePath, action: Action = Action.ALL) -> "RequiredCheck":
        return cls(path, action, path.server)

    @classmethod
    def on_uri(cls, server: str, uri: Union[str, UriResource]) -> "RequiredCheck":
        if not isinstance(uri, UriResource):
            uri = UriResource(uri)
        return cls(uri, Action.ALL, server.strip().lower())

    @property
    def is_uri(self) -> bool:
        return isinstance(self.target, UriResource)

    def describe(self) -> str:
        if self.is_uri:
            return f"URI {self.target} on server {self.server}"
        return f"{self.action.value.upper()} on {self.target}"


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of evaluating a request: Allow, or Deny with a reason."""

    allowed: bool
    principal: str
    reason: Optional[str] = None
    failed_check: Optional[RequiredCheck] = None
    policy_version: int = 0

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls, principal: str, policy_version: int = 0) -> "AuthorizationDecision":
        return cls(allowed=True, principal=principal, policy_version=policy_version)

    @classmethod
    def deny(
        cls, principal: str, check: RequiredCheck, policy_version: int = 0
    ) -> "AuthorizationDecision":
        return cls(
            allowed=False,
            principal=principal,
            reason=f"User {principal} does not have privileges for {check.describe()}",
            failed_check=check,
            policy_version=policy_version,
        )


def check_satisfied(check: RequiredCheck, permissions: Iterable[Permission]) -> bool:
    """True if any permission satisfies the check."""
    for permission in permissions:
        if permission.server != check.server:
            continue
        if check.is_uri:
            if permission.is_uri and permission.resource.is_uri_prefix_of(check.target):
                return True
        elif not permission.is_uri:
            if permission.resource.is_ancestor_of(check.target) and permission.action.implies(
                check.action
            ):
                return True
    return False


class PolicyEvaluator:
    """Decides whether a principal may perform a set of required checks."""

    def __init__(self, resolver: PrincipalResolver):
        self.resolver = resolver

    @property
    def store(self):
        return self.resolver.store

    def permissions_for(self, principal: str, snapshot=None) -> FrozenSet[Permission]:
        """Union of the permissions of every effective role of the principal."""
        snapshot = snapshot or self.store.snapshot
        permissions = set()
        for role in self.resolver.effective_roles(principal, snapshot):
            permissions.update(snapshot.permissions_of(role))
        return frozenset(permissions)

    def authorize(
        self, principal: str, required_checks: Sequence[RequiredCheck]
    ) -> AuthorizationDecision:
        """
        Evaluate every required check against one policy snapshot.

        Args:
            principal: Authenticated user name
            required_checks: Ordered checks, all of which must pass

        Returns:
            AuthorizationDecision; on Deny the reason names the first
            failing check
        """
        required_checks = list(required_checks)
        snapshot = self.store.snapshot
        version = snapshot.version

        if self.resolver.is_admin(principal, snapshot):
            logger.debug(f"Allowing {principal}: member of an admin group")
            return AuthorizationDecision.allow(principal, version)

        permissions = self.permissions_for(principal, snapshot)
        for check in required_checks:
            if not check_satisfied(check, permissions):
                decision = AuthorizationDecision.deny(principal, check, version)
                logger.warning(f"Denied (policy version {version}): {decision.reason}")
                return decision

        logger.debug(
            f"Allowing {principal} for {len(required_checks)} check(s) "
            f"at policy version {version}"
        )
        return AuthorizationDecision.allow(principal, version)

    def check(self, principal: str, required_checks: Sequence[RequiredCheck]) -> AuthorizationDecision:
        """
        Like :meth:`authorize` but raises on Deny.

        Raises:
            AuthorizationDenied: If any required check fails
        """
        decision = self.authorize(principal, required_checks)
        if not decision.allowed:
            raise AuthorizationDenied(principal, decision.reason, decision.failed_check)
        return decision

"""Enforcement of authorization at the catalog-operation boundary.

The binding turns a :class:`CatalogRequest` into its required checks using
the static operation table, asks the evaluator, and only then hands the
call to the catalog. A denial raises before the catalog is touched.
"""

from typing import Any, Callable, List, Optional

from ..authz.evaluator import AuthorizationDecision, PolicyEvaluator, RequiredCheck
from ..authz.exceptions import AuthorizationDenied
from ..authz.resources import ResourcePath, UriResource
from ..common.logger import get_logger
from .operations import CatalogRequest, Scope, build_rule_table

logger = get_logger("enforcement")


class MetastoreAuthorizationBinding:
    """Generic enforcement function driven by the operation table."""

    def __init__(
        self,
        evaluator: PolicyEvaluator,
        server_name: str,
        *,
        alter_partition_scope: Scope = Scope.SERVER,
        default_filesystem: Optional[str] = None,
    ):
        """
        Initialize the binding.

        Args:
            evaluator: Policy evaluator to consult
            server_name: Server the catalog belongs to
            alter_partition_scope: Scope required by general partition alteration
            default_filesystem: Filesystem used to qualify scheme-less locations
        """
        self.evaluator = evaluator
        self.server_name = server_name.strip().lower()
        self.default_filesystem = default_filesystem
        self.rules = build_rule_table(alter_partition_scope=Scope(alter_partition_scope))

    def required_checks(self, request: CatalogRequest) -> List[RequiredCheck]:
        """Materialize the checks a request must pass, in evaluation order."""
        rule = self.rules[request.kind]
        checks: List[RequiredCheck] = []

        for scope in rule.scopes:
            if scope is Scope.SERVER:
                checks.append(RequiredCheck.on_path(ResourcePath.of(self.server_name)))
                continue
            checks.append(
                RequiredCheck.on_path(ResourcePath.of(self.server_name, request.database))
            )
            # Moving a table into another database needs ALL there as well
            if request.new_database and request.new_database.lower() != request.database.lower():
                checks.append(
                    RequiredCheck.on_path(ResourcePath.of(self.server_name, request.new_database))
                )

        if rule.checks_location and request.location:
            location = UriResource.parse(request.location, self.default_filesystem)
            checks.append(RequiredCheck.on_uri(self.server_name, location))

        return checks

    def authorize(self, principal: str, request: CatalogRequest) -> AuthorizationDecision:
        """
        Authorize a request or raise.

        Raises:
            AuthorizationDenied: If any required check fails
            MalformedResourceError: If the request names an invalid resource
        """
        checks = self.required_checks(request)
        decision = self.evaluator.authorize(principal, checks)
        if not decision.allowed:
            logger.warning(f"Rejected {request.describe()} for {principal}")
            raise AuthorizationDenied(principal, decision.reason, decision.failed_check)
        logger.debug(f"Authorized {request.describe()} for {principal}")
        return decision

    def execute(
        self,
        principal: str,
        request: CatalogRequest,
        delegate: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Authorize the request, then delegate unchanged and return its result."""
        self.authorize(principal, request)
        return delegate(*args, **kwargs)

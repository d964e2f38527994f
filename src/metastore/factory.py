"""Wiring of the authorization engine in front of a catalog."""

from dataclasses import dataclass
from typing import Optional

from ..authz.evaluator import PolicyEvaluator
from ..authz.resolver import GroupMembershipLookup, PrincipalResolver, StaticGroupMapping
from ..authz.store import PermissionStore
from ..common.config import MetastoreAuthzConfig
from ..common.logger import ROOT_LOGGER_NAME, get_logger, setup_logger
from ..policy.source import PolicyFileSource
from .binding import MetastoreAuthorizationBinding
from .catalog import MetastoreCatalog
from .client import MetastoreClient
from .operations import Scope

logger = get_logger("factory")


@dataclass
class MetastoreAuthorizationService:
    """The assembled engine plus the catalog it guards."""

    config: MetastoreAuthzConfig
    store: PermissionStore
    resolver: PrincipalResolver
    evaluator: PolicyEvaluator
    binding: MetastoreAuthorizationBinding
    catalog: MetastoreCatalog
    policy_source: Optional[PolicyFileSource] = None

    def get_metastore_client(self, principal: str) -> MetastoreClient:
        return MetastoreClient(principal, self.binding, self.catalog)

    def refresh_policy(self) -> bool:
        """Reload the policy file if it changed; False without a policy file."""
        if self.policy_source is None:
            return False
        return self.policy_source.refresh_if_changed()


def build_service(
    config: MetastoreAuthzConfig,
    group_membership_of: Optional[GroupMembershipLookup] = None,
    catalog: Optional[MetastoreCatalog] = None,
    configure_logging: bool = True,
) -> MetastoreAuthorizationService:
    """
    Assemble store, resolver, evaluator, binding and catalog from config.

    When the configuration names a policy file it is loaded immediately and,
    unless ``group_membership_of`` is given, its ``users`` section supplies
    group membership.

    Raises:
        FileNotFoundError: If the configured policy file is missing
        PolicyParseError: If the policy file is malformed
    """
    if configure_logging:
        setup_logger(
            ROOT_LOGGER_NAME,
            log_dir=config.logging.log_dir,
            level=config.logging.level,
            file_logging=config.logging.file_logging,
            console_logging=config.logging.console_logging,
        )

    authz = config.authorization
    store = PermissionStore(default_filesystem=authz.default_filesystem)

    policy_source = None
    if authz.policy_file:
        policy_source = PolicyFileSource(authz.policy_file, store, admin_groups=authz.admin_groups)
        policy_source.reload()
    else:
        store.load([], admin_groups=authz.admin_groups)

    # A policy file publishes membership in the same snapshot as its grants
    if group_membership_of is None and policy_source is None:
        logger.warning(
            "No group membership source configured; every principal resolves to no groups"
        )
        group_membership_of = StaticGroupMapping()

    resolver = PrincipalResolver(store, group_membership_of)
    evaluator = PolicyEvaluator(resolver)
    binding = MetastoreAuthorizationBinding(
        evaluator,
        authz.server_name,
        alter_partition_scope=Scope(authz.alter_partition_scope),
        default_filesystem=authz.default_filesystem,
    )
    if catalog is None:
        catalog = MetastoreCatalog(
            config.catalog.database_url,
            config.catalog.warehouse_dir,
            echo=config.catalog.echo,
        )

    return MetastoreAuthorizationService(
        config=config,
        store=store,
        resolver=resolver,
        evaluator=evaluator,
        binding=binding,
        catalog=catalog,
        policy_source=policy_source,
    )

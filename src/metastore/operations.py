"""Catalog operations and the privileges they require.

Every catalog mutation is described by an :class:`OperationKind`. The
static :data:`OPERATION_RULES` table maps each kind to the scopes at which
``ALL`` is required and to whether an explicit storage location must also
pass the URI check. One generic enforcement function consumes this table,
so no call site decides its own checks.

    Operation                        Required
    -------------------------------  ------------------------------------
    create/drop database             server ALL
    create table                     database ALL (+ URI if location)
    alter table                      database ALL (+ URI if location)
    drop table                       database ALL
    add partition                    database ALL (+ URI if location)
    drop partition                   database ALL
    alter partition location         database ALL + URI
    alter partition (general)        server ALL (+ URI if location)

General partition alteration requires the server scope while add/drop
only require the database. The asymmetry is kept on purpose and can be
switched with ``alter_partition_scope``.
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Sequence, Tuple


class OperationKind(str, Enum):
    """Catalog mutations subject to authorization."""

    CREATE_DATABASE = "create_database"
    DROP_DATABASE = "drop_database"
    CREATE_TABLE = "create_table"
    ALTER_TABLE = "alter_table"
    DROP_TABLE = "drop_table"
    ADD_PARTITION = "add_partition"
    DROP_PARTITION = "drop_partition"
    ALTER_PARTITION = "alter_partition"
    ALTER_PARTITION_LOCATION = "alter_partition_location"


class Scope(str, Enum):
    """Catalog level at which ALL is demanded."""

    SERVER = "server"
    DATABASE = "database"


class OperationRule(NamedTuple):
    """Privileges one operation kind requires."""

    kind: OperationKind
    scopes: Tuple[Scope, ...]
    checks_location: bool = False


class CatalogRequest(NamedTuple):
    """Target descriptors of a catalog mutation, supplied by the caller."""

    kind: OperationKind
    database: str
    table: Optional[str] = None
    partition_values: Optional[Tuple[str, ...]] = None
    location: Optional[str] = None
    new_database: Optional[str] = None

    def describe(self) -> str:
        target = self.database
        if self.table:
            target += f".{self.table}"
        if self.partition_values:
            target += f"[{', '.join(self.partition_values)}]"
        return f"{self.kind.value.upper()} {target}"


OPERATION_RULES: Tuple[OperationRule, ...] = (
    OperationRule(OperationKind.CREATE_DATABASE, (Scope.SERVER,)),
    OperationRule(OperationKind.DROP_DATABASE, (Scope.SERVER,)),
    OperationRule(OperationKind.CREATE_TABLE, (Scope.DATABASE,), checks_location=True),
    OperationRule(OperationKind.ALTER_TABLE, (Scope.DATABASE,), checks_location=True),
    OperationRule(OperationKind.DROP_TABLE, (Scope.DATABASE,)),
    OperationRule(OperationKind.ADD_PARTITION, (Scope.DATABASE,), checks_location=True),
    OperationRule(OperationKind.DROP_PARTITION, (Scope.DATABASE,)),
    OperationRule(OperationKind.ALTER_PARTITION, (Scope.SERVER,), checks_location=True),
    OperationRule(
        OperationKind.ALTER_PARTITION_LOCATION, (Scope.DATABASE,), checks_location=True
    ),
)


def build_rule_table(
    alter_partition_scope: Scope = Scope.SERVER,
    rules: Sequence[OperationRule] = OPERATION_RULES,
) -> Dict[OperationKind, OperationRule]:
    """
    Index the rules by kind, applying the configured partition-alter scope.

    Args:
        alter_partition_scope: Scope demanded by general partition alteration
        rules: Rules to index

    Returns:
        Mapping of operation kind to rule

    Raises:
        ValueError: If a kind is missing or listed twice
    """
    table: Dict[OperationKind, OperationRule] = {}
    for rule in rules:
        if rule.kind in table:
            raise ValueError(f"Duplicate rule for operation {rule.kind.value}")
        if rule.kind is OperationKind.ALTER_PARTITION:
            rule = rule._replace(scopes=(Scope(alter_partition_scope),))
        table[rule.kind] = rule

    missing = [kind.value for kind in OperationKind if kind not in table]
    if missing:
        raise ValueError(f"No rule for operation(s): {', '.join(missing)}")
    return table


REQUIRED_CHECKS: Dict[OperationKind, OperationRule] = build_rule_table()

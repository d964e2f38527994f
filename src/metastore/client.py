"""Principal-bound metastore client.

Mirrors the metastore client API. Mutations are described as a
:class:`CatalogRequest` and pass through the authorization binding before
reaching the catalog; reads go straight to the catalog. A denial surfaces
as :class:`MetastoreAuthorizationError`, the catalog-level error clients
already handle.
"""

from typing import Any, Callable, List, Optional, Sequence

from ..authz.exceptions import AuthorizationDenied, MalformedResourceError
from .binding import MetastoreAuthorizationBinding
from .catalog import Database, MetastoreCatalog, Partition, Table
from .exceptions import MetaException, MetastoreAuthorizationError
from .operations import CatalogRequest, OperationKind


class MetastoreClient:
    """Catalog client acting on behalf of one principal."""

    def __init__(
        self,
        principal: str,
        binding: MetastoreAuthorizationBinding,
        catalog: MetastoreCatalog,
    ):
        self.principal = principal
        self.binding = binding
        self.catalog = catalog

    def _execute(self, request: CatalogRequest, delegate: Callable[..., Any], *args: Any) -> Any:
        try:
            return self.binding.execute(self.principal, request, delegate, *args)
        except AuthorizationDenied as e:
            raise MetastoreAuthorizationError(
                f"{e.reason} (operation {request.describe()})",
                principal=self.principal,
                reason=e.reason,
            ) from e
        except MalformedResourceError as e:
            raise MetaException(f"Invalid resource in {request.describe()}: {e}") from e

    # Databases

    def create_database(
        self, name: str, location: Optional[str] = None, description: Optional[str] = None
    ) -> None:
        request = CatalogRequest(OperationKind.CREATE_DATABASE, name, location=location)
        self._execute(
            request,
            self.catalog.create_database,
            Database(name=name, location=location, description=description),
        )

    def drop_database(
        self,
        name: str,
        delete_data: bool = True,
        ignore_unknown: bool = False,
        cascade: bool = False,
    ) -> None:
        request = CatalogRequest(OperationKind.DROP_DATABASE, name)
        self._execute(
            request, self.catalog.drop_database, name, delete_data, ignore_unknown, cascade
        )

    def get_database(self, name: str) -> Database:
        return self.catalog.get_database(name)

    def get_all_databases(self) -> List[str]:
        return self.catalog.get_all_databases()

    # Tables

    def create_table(self, table: Table) -> None:
        request = CatalogRequest(
            OperationKind.CREATE_TABLE,
            table.db_name,
            table=table.table_name,
            location=table.location,
        )
        self._execute(request, self.catalog.create_table, table)

    def get_table(self, db_name: str, table_name: str) -> Table:
        return self.catalog.get_table(db_name, table_name)

    def get_tables(self, db_name: str, pattern: str = "*") -> List[str]:
        return self.catalog.get_tables(db_name, pattern)

    def alter_table(self, db_name: str, table_name: str, new_table: Table) -> None:
        """Alter a table; a changed location also requires the URI grant."""
        current = self.catalog.get_table(db_name, table_name)
        location = None
        if new_table.location and new_table.location != current.location:
            location = new_table.location
        new_database = None
        if new_table.db_name.lower() != current.db_name:
            new_database = new_table.db_name
        request = CatalogRequest(
            OperationKind.ALTER_TABLE,
            db_name,
            table=table_name,
            location=location,
            new_database=new_database,
        )
        self._execute(request, self.catalog.alter_table, db_name, table_name, new_table)

    def drop_table(
        self,
        db_name: str,
        table_name: str,
        delete_data: bool = True,
        ignore_unknown: bool = False,
    ) -> None:
        request = CatalogRequest(OperationKind.DROP_TABLE, db_name, table=table_name)
        self._execute(
            request, self.catalog.drop_table, db_name, table_name, delete_data, ignore_unknown
        )

    # Partitions

    def add_partition(self, partition: Partition) -> Partition:
        request = CatalogRequest(
            OperationKind.ADD_PARTITION,
            partition.db_name,
            table=partition.table_name,
            partition_values=tuple(partition.values),
            location=partition.location,
        )
        return self._execute(request, self.catalog.add_partition, partition)

    def get_partition(self, db_name: str, table_name: str, values: Sequence[str]) -> Partition:
        return self.catalog.get_partition(db_name, table_name, values)

    def get_partitions(self, db_name: str, table_name: str) -> List[Partition]:
        return self.catalog.get_partitions(db_name, table_name)

    def alter_partition(self, db_name: str, table_name: str, partition: Partition) -> None:
        """
        Alter a partition.

        A change limited to the location is authorized like adding a
        partition at that location; any other change needs the general
        partition-alter scope.
        """
        current = self.catalog.get_partition(db_name, table_name, partition.values)
        location = None
        if partition.location and partition.location != current.location:
            location = partition.location
        other_changes = partition.parameters != current.parameters
        kind = OperationKind.ALTER_PARTITION
        if location and not other_changes:
            kind = OperationKind.ALTER_PARTITION_LOCATION
        request = CatalogRequest(
            kind,
            db_name,
            table=table_name,
            partition_values=tuple(partition.values),
            location=location,
        )
        if kind is OperationKind.ALTER_PARTITION_LOCATION:
            # Only what was authorized is written
            self._execute(
                request,
                self.catalog.alter_partition_location,
                db_name,
                table_name,
                partition.values,
                location,
            )
        else:
            self._execute(request, self.catalog.alter_partition, db_name, table_name, partition)

    def drop_partition(
        self,
        db_name: str,
        table_name: str,
        values: Sequence[str],
        delete_data: bool = True,
    ) -> bool:
        request = CatalogRequest(
            OperationKind.DROP_PARTITION,
            db_name,
            table=table_name,
            partition_values=tuple(values),
        )
        return self._execute(
            request, self.catalog.drop_partition, db_name, table_name, values, delete_data
        )

    def close(self) -> None:
        """Nothing to release; kept for parity with networked clients."""

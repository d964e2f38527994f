"""Reference metadata catalog backed by SQLAlchemy.

Implements the database/table/partition lifecycle the authorization
binding delegates to. It performs no authorization of its own; callers
go through :class:`~src.metastore.client.MetastoreClient` for that.
"""

import re
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..common.logger import get_logger
from .exceptions import (
    AlreadyExistsException,
    InvalidOperationException,
    NoSuchObjectException,
)
from .models import Base, DatabaseRecord, PartitionRecord, TableRecord

logger = get_logger("catalog")

DEFAULT_WAREHOUSE_DIR = "/user/hive/warehouse"


@dataclass
class FieldSchema:
    """A column or partition key."""

    name: str
    type: str
    comment: str = ""


@dataclass
class Database:
    name: str
    location: Optional[str] = None
    description: Optional[str] = None
    parameters: Dict[str, str] = field(default_factory=dict)


@dataclass
class Table:
    db_name: str
    table_name: str
    columns: List[FieldSchema] = field(default_factory=list)
    partition_keys: List[FieldSchema] = field(default_factory=list)
    location: Optional[str] = None
    parameters: Dict[str, str] = field(default_factory=dict)
    owner: Optional[str] = None
    table_type: str = "MANAGED_TABLE"


@dataclass
class Partition:
    db_name: str
    table_name: str
    values: List[str] = field(default_factory=list)
    location: Optional[str] = None
    parameters: Dict[str, str] = field(default_factory=dict)


def create_catalog_engine(database_url: str = "sqlite://", echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, echo=echo, **kwargs)


def _schema_to_json(fields: Sequence[FieldSchema]) -> list:
    return [asdict(f) for f in fields]


def _schema_from_json(data: Optional[list]) -> List[FieldSchema]:
    return [FieldSchema(**item) for item in data or []]


def partition_name(keys: Sequence[FieldSchema], values: Sequence[str]) -> str:
    """Render ``k1=v1/k2=v2`` for a partition."""
    return "/".join(f"{key.name}={value}" for key, value in zip(keys, values))


def _pattern_regex(pattern: str) -> "re.Pattern":
    """Compile a metastore name pattern (``*`` wildcards, ``|`` alternatives)."""
    alternatives = [
        re.escape(alt.strip()).replace(r"\*", ".*") for alt in pattern.split("|") if alt.strip()
    ]
    return re.compile("^(?:" + "|".join(alternatives or [".*"]) + ")$", re.IGNORECASE)


class MetastoreCatalog:
    """Stores and mutates catalog objects."""

    def __init__(
        self,
        database_url: str = "sqlite://",
        warehouse_dir: str = DEFAULT_WAREHOUSE_DIR,
        *,
        echo: bool = False,
        engine: Optional[Engine] = None,
    ):
        """
        Initialize the catalog and create its schema.

        Args:
            database_url: SQLAlchemy URL of the backing store
            warehouse_dir: Root under which default locations are derived
            echo: Log emitted SQL
            engine: Pre-built engine (overrides ``database_url``)
        """
        self.engine = engine or create_catalog_engine(database_url, echo=echo)
        self.warehouse_dir = warehouse_dir.rstrip("/")
        Base.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._lock = threading.RLock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._lock:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @staticmethod
    def _find_database(session: Session, name: str) -> Optional[DatabaseRecord]:
        return session.query(DatabaseRecord).filter(DatabaseRecord.name == name.lower()).first()

    def _require_database(self, session: Session, name: str) -> DatabaseRecord:
        record = self._find_database(session, name)
        if record is None:
            raise NoSuchObjectException(f"Database {name} does not exist")
        return record

    @staticmethod
    def _find_table(session: Session, db: DatabaseRecord, name: str) -> Optional[TableRecord]:
        return (
            session.query(TableRecord)
            .filter(TableRecord.db_id == db.id, TableRecord.name == name.lower())
            .first()
        )

    def _require_table(self, session: Session, db_name: str, name: str) -> TableRecord:
        db = self._require_database(session, db_name)
        record = self._find_table(session, db, name)
        if record is None:
            raise NoSuchObjectException(f"Table {db_name}.{name} does not exist")
        return record

    @staticmethod
    def _find_partition(
        session: Session, table: TableRecord, values: Sequence[str]
    ) -> Optional[PartitionRecord]:
        keys = _schema_from_json(table.partition_keys)
        if len(keys) != len(values):
            return None
        name = partition_name(keys, values)
        return (
            session.query(PartitionRecord)
            .filter(PartitionRecord.table_id == table.id, PartitionRecord.part_name == name)
            .first()
        )

    def _require_partition(
        self, session: Session, db_name: str, table_name: str, values: Sequence[str]
    ) -> PartitionRecord:
        table = self._require_table(session, db_name, table_name)
        record = self._find_partition(session, table, values)
        if record is None:
            raise NoSuchObjectException(
                f"Partition {list(values)} of {db_name}.{table_name} does not exist"
            )
        return record

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    @staticmethod
    def _to_database(record: DatabaseRecord) -> Database:
        return Database(
            name=record.name,
            location=record.location,
            description=record.description,
            parameters=dict(record.parameters or {}),
        )

    @staticmethod
    def _to_table(record: TableRecord) -> Table:
        return Table(
            db_name=record.database.name,
            table_name=record.name,
            columns=_schema_from_json(record.columns),
            partition_keys=_schema_from_json(record.partition_keys),
            location=record.location,
            parameters=dict(record.parameters or {}),
            owner=record.owner,
            table_type=record.table_type,
        )

    @staticmethod
    def _to_partition(record: PartitionRecord) -> Partition:
        return Partition(
            db_name=record.table.database.name,
            table_name=record.table.name,
            values=list(record.part_values or []),
            location=record.location,
            parameters=dict(record.parameters or {}),
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    def create_database(self, database: Database) -> None:
        with self._session() as session:
            if self._find_database(session, database.name) is not None:
                raise AlreadyExistsException(f"Database {database.name} already exists")
            location = database.location or f"{self.warehouse_dir}/{database.name.lower()}.db"
            session.add(
                DatabaseRecord(
                    name=database.name.lower(),
                    location=location,
                    description=database.description,
                    parameters=dict(database.parameters),
                )
            )
        logger.debug(f"Created database {database.name}")

    def get_database(self, name: str) -> Database:
        with self._session() as session:
            return self._to_database(self._require_database(session, name))

    def get_all_databases(self) -> List[str]:
        with self._session() as session:
            return sorted(name for (name,) in session.query(DatabaseRecord.name).all())

    def drop_database(
        self,
        name: str,
        delete_data: bool = True,
        ignore_unknown: bool = False,
        cascade: bool = False,
    ) -> None:
        """
        Drop a database.

        Args:
            name: Database name
            delete_data: Kept for client parity; storage is not managed here
            ignore_unknown: Return silently when the database does not exist
            cascade: Drop contained tables instead of refusing

        Raises:
            NoSuchObjectException: Unknown database and not ``ignore_unknown``
            InvalidOperationException: Database not empty and not ``cascade``
        """
        with self._session() as session:
            record = self._find_database(session, name)
            if record is None:
                if ignore_unknown:
                    return
                raise NoSuchObjectException(f"Database {name} does not exist")
            if record.tables and not cascade:
                raise InvalidOperationException(
                    f"Database {name} is not empty. One or more tables exist."
                )
            session.delete(record)
        logger.debug(f"Dropped database {name}")

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def create_table(self, table: Table) -> None:
        with self._session() as session:
            db = self._require_database(session, table.db_name)
            if self._find_table(session, db, table.table_name) is not None:
                raise AlreadyExistsException(
                    f"Table {table.db_name}.{table.table_name} already exists"
                )
            location = table.location or f"{db.location}/{table.table_name.lower()}"
            session.add(
                TableRecord(
                    db_id=db.id,
                    name=table.table_name.lower(),
                    owner=table.owner,
                    table_type=table.table_type,
                    location=location,
                    columns=_schema_to_json(table.columns),
                    partition_keys=_schema_to_json(table.partition_keys),
                    parameters=dict(table.parameters),
                )
            )
        logger.debug(f"Created table {table.db_name}.{table.table_name}")

    def get_table(self, db_name: str, table_name: str) -> Table:
        with self._session() as session:
            return self._to_table(self._require_table(session, db_name, table_name))

    def get_tables(self, db_name: str, pattern: str = "*") -> List[str]:
        """Table names in ``db_name`` matching ``pattern``."""
        regex = _pattern_regex(pattern)
        with self._session() as session:
            db = self._require_database(session, db_name)
            return sorted(t.name for t in db.tables if regex.match(t.name))

    def alter_table(self, db_name: str, table_name: str, new_table: Table) -> None:
        """Replace a table's definition, renaming or moving it if the names differ."""
        with self._session() as session:
            record = self._require_table(session, db_name, table_name)
            target_db = record.database
            if new_table.db_name.lower() != record.database.name:
                target_db = self._require_database(session, new_table.db_name)
            renamed = (
                target_db.id != record.db_id or new_table.table_name.lower() != record.name
            )
            if renamed and self._find_table(session, target_db, new_table.table_name) is not None:
                raise InvalidOperationException(
                    f"Table {new_table.db_name}.{new_table.table_name} already exists"
                )
            if _schema_to_json(new_table.partition_keys) != (record.partition_keys or []):
                raise InvalidOperationException("Partition keys of a table cannot be altered")

            record.database = target_db
            record.name = new_table.table_name.lower()
            record.columns = _schema_to_json(new_table.columns)
            record.parameters = dict(new_table.parameters)
            record.owner = new_table.owner
            record.table_type = new_table.table_type
            if new_table.location:
                record.location = new_table.location
        logger.debug(f"Altered table {db_name}.{table_name}")

    def drop_table(
        self,
        db_name: str,
        table_name: str,
        delete_data: bool = True,
        ignore_unknown: bool = False,
    ) -> None:
        with self._session() as session:
            db = self._require_database(session, db_name)
            record = self._find_table(session, db, table_name)
            if record is None:
                if ignore_unknown:
                    return
                raise NoSuchObjectException(f"Table {db_name}.{table_name} does not exist")
            session.delete(record)
        logger.debug(f"Dropped table {db_name}.{table_name}")

    # ------------------------------------------------------------------
    # Partitions
    # ------------------------------------------------------------------

    def add_partition(self, partition: Partition) -> Partition:
        with self._session() as session:
            table = self._require_table(session, partition.db_name, partition.table_name)
            keys = _schema_from_json(table.partition_keys)
            if not keys:
                raise InvalidOperationException(
                    f"Table {partition.db_name}.{partition.table_name} is not partitioned"
                )
            if len(keys) != len(partition.values):
                raise InvalidOperationException(
                    f"Expected {len(keys)} partition values, got {len(partition.values)}"
                )
            if self._find_partition(session, table, partition.values) is not None:
                raise AlreadyExistsException(
                    f"Partition {list(partition.values)} of "
                    f"{partition.db_name}.{partition.table_name} already exists"
                )
            name = partition_name(keys, partition.values)
            record = PartitionRecord(
                part_name=name,
                part_values=list(partition.values),
                location=partition.location or f"{table.location}/{name}",
                parameters=dict(partition.parameters),
            )
            table.partitions.append(record)
            session.flush()
            result = self._to_partition(record)
        logger.debug(f"Added partition {name} to {partition.db_name}.{partition.table_name}")
        return result

    def get_partition(self, db_name: str, table_name: str, values: Sequence[str]) -> Partition:
        with self._session() as session:
            return self._to_partition(
                self._require_partition(session, db_name, table_name, values)
            )

    def get_partitions(self, db_name: str, table_name: str) -> List[Partition]:
        with self._session() as session:
            table = self._require_table(session, db_name, table_name)
            return [self._to_partition(p) for p in sorted(table.partitions, key=lambda p: p.part_name)]

    def alter_partition(self, db_name: str, table_name: str, partition: Partition) -> None:
        with self._session() as session:
            record = self._require_partition(session, db_name, table_name, partition.values)
            record.parameters = dict(partition.parameters)
            if partition.location:
                record.location = partition.location
        logger.debug(f"Altered partition {list(partition.values)} of {db_name}.{table_name}")

    def alter_partition_location(
        self, db_name: str, table_name: str, values: Sequence[str], location: str
    ) -> None:
        """Move a partition without touching its other attributes."""
        with self._session() as session:
            record = self._require_partition(session, db_name, table_name, values)
            record.location = location
        logger.debug(f"Moved partition {list(values)} of {db_name}.{table_name} to {location}")

    def drop_partition(
        self,
        db_name: str,
        table_name: str,
        values: Sequence[str],
        delete_data: bool = True,
    ) -> bool:
        with self._session() as session:
            record = self._require_partition(session, db_name, table_name, values)
            session.delete(record)
        logger.debug(f"Dropped partition {list(values)} of {db_name}.{table_name}")
        return True

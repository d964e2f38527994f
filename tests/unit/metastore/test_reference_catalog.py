"""Tests for the SQLAlchemy-backed reference catalog."""

import pytest

from src.metastore.catalog import (
    Database,
    MetastoreCatalog,
    Partition,
    Table,
    partition_name,
)
from src.metastore.exceptions import (
    AlreadyExistsException,
    InvalidOperationException,
    NoSuchObjectException,
)

from tests.factories import WAREHOUSE_DIR, columns


def make_table(catalog, db="db_1", name="tab1", partitioned=False, location=None):
    catalog.create_table(
        Table(
            db_name=db,
            table_name=name,
            columns=columns("col1:int"),
            partition_keys=columns("part_col1:string") if partitioned else [],
            location=location,
        )
    )
    return catalog.get_table(db, name)


@pytest.fixture
def populated(catalog):
    catalog.create_database(Database("db_1"))
    return catalog


class TestDatabases:
    """Test the database lifecycle."""

    def test_create_uses_warehouse_location(self, catalog):
        catalog.create_database(Database("DB_1"))
        db = catalog.get_database("db_1")
        assert db.name == "db_1"
        assert db.location == f"{WAREHOUSE_DIR}/db_1.db"
        assert catalog.get_all_databases() == ["db_1"]

    def test_create_duplicate(self, populated):
        with pytest.raises(AlreadyExistsException):
            populated.create_database(Database("db_1"))

    def test_get_unknown(self, catalog):
        with pytest.raises(NoSuchObjectException):
            catalog.get_database("missing")

    def test_drop_non_empty_requires_cascade(self, populated):
        make_table(populated)
        with pytest.raises(InvalidOperationException):
            populated.drop_database("db_1")
        populated.drop_database("db_1", cascade=True)
        assert populated.get_all_databases() == []

    def test_drop_unknown(self, catalog):
        with pytest.raises(NoSuchObjectException):
            catalog.drop_database("missing")
        catalog.drop_database("missing", ignore_unknown=True)


class TestTables:
    """Test the table lifecycle."""

    def test_create_and_get(self, populated):
        table = make_table(populated)
        assert table.location == f"{WAREHOUSE_DIR}/db_1.db/tab1"
        assert [c.name for c in table.columns] == ["col1"]
        assert populated.get_tables("db_1") == ["tab1"]

    def test_explicit_location_kept(self, populated):
        table = make_table(populated, location="/data/ext/tab1")
        assert table.location == "/data/ext/tab1"

    def test_create_in_unknown_database(self, catalog):
        with pytest.raises(NoSuchObjectException):
            make_table(catalog, db="missing")

    def test_create_duplicate(self, populated):
        make_table(populated)
        with pytest.raises(AlreadyExistsException):
            make_table(populated)

    def test_get_tables_pattern(self, populated):
        for name in ("tab1", "tab2", "other"):
            make_table(populated, name=name)
        assert populated.get_tables("db_1", "tab*") == ["tab1", "tab2"]
        assert populated.get_tables("db_1", "tab1|other") == ["other", "tab1"]
        assert populated.get_tables("db_1", "TAB2") == ["tab2"]

    def test_alter_columns_and_location(self, populated):
        table = make_table(populated)
        table.columns = columns("col1:int", "col2:string")
        table.location = "/data/moved"
        populated.alter_table("db_1", "tab1", table)
        altered = populated.get_table("db_1", "tab1")
        assert [c.name for c in altered.columns] == ["col1", "col2"]
        assert altered.location == "/data/moved"

    def test_rename_into_other_database(self, populated):
        populated.create_database(Database("db_2"))
        table = make_table(populated)
        table.db_name = "db_2"
        table.table_name = "tab9"
        populated.alter_table("db_1", "tab1", table)
        assert populated.get_tables("db_1") == []
        assert populated.get_tables("db_2") == ["tab9"]

    def test_rename_onto_existing_table(self, populated):
        make_table(populated, name="tab2")
        table = make_table(populated)
        table.table_name = "tab2"
        with pytest.raises(InvalidOperationException):
            populated.alter_table("db_1", "tab1", table)

    def test_partition_keys_cannot_change(self, populated):
        table = make_table(populated)
        table.partition_keys = columns("p:string")
        with pytest.raises(InvalidOperationException):
            populated.alter_table("db_1", "tab1", table)

    def test_drop(self, populated):
        make_table(populated)
        populated.drop_table("db_1", "tab1")
        with pytest.raises(NoSuchObjectException):
            populated.get_table("db_1", "tab1")
        populated.drop_table("db_1", "tab1", ignore_unknown=True)


class TestPartitions:
    """Test the partition lifecycle."""

    def test_partition_name(self):
        assert partition_name(columns("a:int", "b:string"), ["1", "x"]) == "a=1/b=x"

    def test_add_uses_table_location(self, populated):
        make_table(populated, partitioned=True)
        partition = populated.add_partition(Partition("db_1", "tab1", ["part1"]))
        assert partition.values == ["part1"]
        assert partition.location == f"{WAREHOUSE_DIR}/db_1.db/tab1/part_col1=part1"

    def test_add_with_location(self, populated):
        make_table(populated, partitioned=True)
        populated.add_partition(Partition("db_1", "tab1", ["part1"], location="/data/p1"))
        assert populated.get_partition("db_1", "tab1", ["part1"]).location == "/data/p1"

    def test_add_duplicate(self, populated):
        make_table(populated, partitioned=True)
        populated.add_partition(Partition("db_1", "tab1", ["part1"]))
        with pytest.raises(AlreadyExistsException):
            populated.add_partition(Partition("db_1", "tab1", ["part1"]))

    def test_add_to_unpartitioned_table(self, populated):
        make_table(populated)
        with pytest.raises(InvalidOperationException):
            populated.add_partition(Partition("db_1", "tab1", ["part1"]))

    def test_add_with_wrong_value_count(self, populated):
        make_table(populated, partitioned=True)
        with pytest.raises(InvalidOperationException):
            populated.add_partition(Partition("db_1", "tab1", ["a", "b"]))

    def test_list_alter_and_drop(self, populated):
        make_table(populated, partitioned=True)
        populated.add_partition(Partition("db_1", "tab1", ["part2"]))
        populated.add_partition(Partition("db_1", "tab1", ["part1"]))
        assert [p.values for p in populated.get_partitions("db_1", "tab1")] == [
            ["part1"],
            ["part2"],
        ]

        partition = populated.get_partition("db_1", "tab1", ["part1"])
        partition.parameters = {"k": "v"}
        partition.location = "/data/p1"
        populated.alter_partition("db_1", "tab1", partition)
        altered = populated.get_partition("db_1", "tab1", ["part1"])
        assert altered.parameters == {"k": "v"}
        assert altered.location == "/data/p1"

        assert populated.drop_partition("db_1", "tab1", ["part1"])
        with pytest.raises(NoSuchObjectException):
            populated.get_partition("db_1", "tab1", ["part1"])

    def test_drop_table_removes_partitions(self, populated):
        make_table(populated, partitioned=True)
        populated.add_partition(Partition("db_1", "tab1", ["part1"]))
        populated.drop_table("db_1", "tab1")
        make_table(populated, partitioned=True)
        assert populated.get_partitions("db_1", "tab1") == []


class TestCatalogStorage:
    """Test persistence to a file database."""

    def test_file_backed_catalog(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'catalog.db'}"
        first = MetastoreCatalog(url, WAREHOUSE_DIR)
        first.create_database(Database("db_1"))
        first.engine.dispose()

        second = MetastoreCatalog(url, WAREHOUSE_DIR)
        assert second.get_all_databases() == ["db_1"]

    def test_alter_location_only(self, populated):
        """Test that moving a partition leaves its parameters alone."""
        make_table(populated, partitioned=True)
        populated.add_partition(
            Partition("db_1", "tab1", ["part1"], parameters={"k": "v"})
        )
        populated.alter_partition_location("db_1", "tab1", ["part1"], "/data/p1")
        moved = populated.get_partition("db_1", "tab1", ["part1"])
        assert moved.location == "/data/p1"
        assert moved.parameters == {"k": "v"}

    def test_alter_location_of_missing_partition(self, populated):
        make_table(populated, partitioned=True)
        with pytest.raises(NoSuchObjectException):
            populated.alter_partition_location("db_1", "tab1", ["nope"], "/data/p1")

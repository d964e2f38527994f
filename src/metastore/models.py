"""Database models for the reference metadata catalog.

Stores databases, tables and partitions. Names are stored lowercased.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class DatabaseRecord(Base):
    __tablename__ = "dbs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False, unique=True, index=True)
    location = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    parameters = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    tables = relationship(
        "TableRecord", back_populates="database", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<DatabaseRecord {self.name}>"


class TableRecord(Base):
    """
    A catalog table.

    ``columns`` and ``partition_keys`` hold lists of
    ``{"name", "type", "comment"}`` mappings.
    """
    __tablename__ = "tbls"
    __table_args__ = (UniqueConstraint("db_id", "name", name="uq_tbls_db_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    db_id = Column(Integer, ForeignKey("dbs.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    owner = Column(String(128), nullable=True)
    table_type = Column(String(64), nullable=False, default="MANAGED_TABLE")
    location = Column(Text, nullable=True)
    columns = Column(JSON, nullable=False, default=list)
    partition_keys = Column(JSON, nullable=False, default=list)
    parameters = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    database = relationship("DatabaseRecord", back_populates="tables")
    partitions = relationship(
        "PartitionRecord", back_populates="table", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<TableRecord {self.name}>"


class PartitionRecord(Base):
    """A partition of a table, keyed by its ``k1=v1/k2=v2`` name."""
    __tablename__ = "partitions"
    __table_args__ = (UniqueConstraint("table_id", "part_name", name="uq_partitions_table_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_id = Column(Integer, ForeignKey("tbls.id", ondelete="CASCADE"), nullable=False, index=True)
    part_name = Column(String(767), nullable=False)
    part_values = Column(JSON, nullable=False, default=list)
    location = Column(Text, nullable=True)
    parameters = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    table = relationship("TableRecord", back_populates="partitions")

    def __repr__(self) -> str:
        return f"<PartitionRecord {self.part_name}>"

"""Authorization enforcement in front of a metadata catalog.

This module maps catalog operations to the privileges they require,
enforces them before delegating to the catalog, and ships a reference
SQLAlchemy-backed catalog plus a principal-bound client.
"""

from .operations import (
    OPERATION_RULES,
    REQUIRED_CHECKS,
    CatalogRequest,
    OperationKind,
    OperationRule,
    Scope,
)
from .binding import MetastoreAuthorizationBinding
from .catalog import Database, FieldSchema, MetastoreCatalog, Partition, Table
from .client import MetastoreClient
from .exceptions import (
    AlreadyExistsException,
    InvalidOperationException,
    MetaException,
    MetastoreAuthorizationError,
    NoSuchObjectException,
)
from .factory import MetastoreAuthorizationService, build_service

__all__ = [
    "OPERATION_RULES",
    "REQUIRED_CHECKS",
    "AlreadyExistsException",
    "CatalogRequest",
    "Database",
    "FieldSchema",
    "InvalidOperationException",
    "MetaException",
    "MetastoreAuthorizationBinding",
    "MetastoreAuthorizationError",
    "MetastoreAuthorizationService",
    "MetastoreCatalog",
    "MetastoreClient",
    "NoSuchObjectException",
    "OperationKind",
    "OperationRule",
    "Partition",
    "Scope",
    "Table",
    "build_service",
]

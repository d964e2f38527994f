"""Catalog-level exceptions surfaced to metastore clients."""

from typing import Optional


class MetaException(Exception):
    """Base class for every error a metastore client call can raise."""


class NoSuchObjectException(MetaException):
    """The named database, table or partition does not exist."""


class AlreadyExistsException(MetaException):
    """The object being created already exists."""


class InvalidOperationException(MetaException):
    """The operation is not valid for the current catalog state."""


class MetastoreAuthorizationError(MetaException):
    """The caller lacks the privileges the operation requires."""

    def __init__(self, message: str, principal: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.principal = principal
        self.reason = reason or message

"""Error taxonomy for the authorization engine.

None of these are retried internally; each one is terminal for the
request that raised it and carries the original reason verbatim.
"""

from typing import Optional


class AuthorizationError(Exception):
    """Base class for every error raised by the engine."""


class MalformedResourceError(AuthorizationError):
    """Raised when a resource path or URI violates the resource model."""

    def __init__(self, message: str, value: Optional[object] = None):
        super().__init__(message)
        self.value = value


class PolicyParseError(AuthorizationError):
    """Raised when a policy entry does not resolve to a valid permission."""

    def __init__(self, message: str, permission: Optional[str] = None, role: Optional[str] = None):
        super().__init__(message)
        self.permission = permission
        self.role = role


class AuthorizationDenied(AuthorizationError):
    """Raised when the evaluator denies a request."""

    def __init__(self, principal: str, reason: str, check=None):
        super().__init__(reason)
        self.principal = principal
        self.reason = reason
        self.check = check

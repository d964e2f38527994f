"""Permission model for catalog authorization.

A permission grants an action on a catalog resource path, or access to a
storage location, within one server.

Permission string format (keys are case-insensitive, parts joined by ``->``)::

    server=server1                                  ALL on the whole server
    server=server1->db=sales                        ALL on a database
    server=server1->db=sales->table=*->action=select
    server=server1->uri=hdfs://nn:8020/warehouse/sales

A missing ``action`` part means ALL, and ``action=*`` is ALL as well. URI
grants are a single access right, so any action given on them is ignored
during matching.
"""

from typing import NamedTuple, Optional, Union

from .exceptions import MalformedResourceError, PolicyParseError
from .resources import (
    LEVEL_ALIASES,
    WILDCARD,
    Action,
    Level,
    Resource,
    ResourcePath,
    UriResource,
)

PART_SEPARATOR = "->"
KEY_VALUE_SEPARATOR = "="
ACTION_KEY = "action"
URI_KEY = "uri"


class Permission(NamedTuple):
    """A grant of an action on a resource path or URI within a server."""

    resource: Resource
    action: Action
    server: str

    @property
    def is_uri(self) -> bool:
        return isinstance(self.resource, UriResource)

    def __str__(self) -> str:
        if self.is_uri:
            return f"server={self.server}{PART_SEPARATOR}uri={self.resource}"
        text = str(self.resource)
        if self.action is not Action.ALL:
            text += f"{PART_SEPARATOR}{ACTION_KEY}={self.action.value}"
        return text

    @classmethod
    def on_path(cls, path: ResourcePath, action: Action = Action.ALL) -> "Permission":
        return cls(path, action, path.server)

    @classmethod
    def on_uri(cls, server: str, uri: Union[str, UriResource]) -> "Permission":
        if not isinstance(uri, UriResource):
            uri = UriResource(uri)
        return cls(uri, Action.ALL, server.strip().lower())

    @classmethod
    def from_string(cls, perm_str: str, default_filesystem: Optional[str] = None) -> "Permission":
        """Parse a permission string like ``server=s1->db=d1->action=select``."""
        return parse_permission(perm_str, default_filesystem=default_filesystem)


def _split_part(part: str, perm_str: str) -> tuple:
    key, sep, value = part.partition(KEY_VALUE_SEPARATOR)
    key = key.strip().lower()
    value = value.strip()
    if not sep or not key or not value:
        raise PolicyParseError(
            f"Invalid permission part {part!r} in {perm_str!r}: expected key=value",
            permission=perm_str,
        )
    return key, value


def parse_permission(perm_str: str, default_filesystem: Optional[str] = None) -> Permission:
    """Parse the textual permission grammar into a typed Permission.

    Args:
        perm_str: Permission string from the policy source
        default_filesystem: Filesystem used to qualify scheme-less URI grants

    Returns:
        Parsed Permission

    Raises:
        PolicyParseError: If the string is not a well-formed permission
    """
    if not isinstance(perm_str, str) or not perm_str.strip():
        raise PolicyParseError("Permission string must not be empty", permission=perm_str)

    parts = perm_str.split(PART_SEPARATOR)
    if any(not p.strip() for p in parts):
        raise PolicyParseError(f"Empty part in permission {perm_str!r}", permission=perm_str)

    pairs = [_split_part(part, perm_str) for part in parts]

    action = Action.ALL
    if pairs[-1][0] == ACTION_KEY:
        try:
            action = Action.from_string(pairs[-1][1])
        except ValueError as e:
            raise PolicyParseError(f"{e} in {perm_str!r}", permission=perm_str) from e
        pairs = pairs[:-1]

    if not pairs:
        raise PolicyParseError(f"Permission has no resource: {perm_str!r}", permission=perm_str)

    keys = [key for key, _ in pairs]
    if ACTION_KEY in keys:
        raise PolicyParseError(
            f"'action' must be the last part of {perm_str!r}", permission=perm_str
        )

    # Decisions are always made within one concrete server
    if keys[0] == "server" and pairs[0][1] == WILDCARD:
        raise PolicyParseError(
            f"Server name must not be a wildcard: {perm_str!r}", permission=perm_str
        )

    if URI_KEY in keys:
        if len(pairs) != 2 or keys[0] != "server" or keys[1] != URI_KEY:
            raise PolicyParseError(
                f"URI permission must have the form server=S->uri=LOCATION: {perm_str!r}",
                permission=perm_str,
            )
        try:
            uri = UriResource.parse(pairs[1][1], default_filesystem=default_filesystem)
        except MalformedResourceError as e:
            raise PolicyParseError(f"{e} in {perm_str!r}", permission=perm_str) from e
        return Permission(uri, Action.ALL, pairs[0][1].lower())

    unknown = [key for key in keys if key not in LEVEL_ALIASES]
    if unknown:
        raise PolicyParseError(
            f"Unknown permission key(s) {', '.join(unknown)} in {perm_str!r}",
            permission=perm_str,
        )

    try:
        path = ResourcePath.from_pairs(pairs)
    except MalformedResourceError as e:
        raise PolicyParseError(f"{e} in {perm_str!r}", permission=perm_str) from e

    return Permission(path, action, path.server)


def coerce_permission(
    permission: Union[str, Permission], default_filesystem: Optional[str] = None
) -> Permission:
    """Accept either a parsed Permission or its textual form."""
    if isinstance(permission, Permission):
        return permission
    return parse_permission(permission, default_filesystem=default_filesystem)


def server_permission(server: str) -> Permission:
    """ALL on a whole server."""
    return Permission.on_path(ResourcePath.from_pairs([(Level.SERVER, server)]))

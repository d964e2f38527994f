"""Resource model for catalog authorization.

Two independent namespaces are protected:

- the catalog hierarchy ``Server -> Database -> Table -> Column``, where a
  path may stop at any level and denotes that level and everything under it
- the flat URI namespace of storage locations, matched by path component
  prefix rather than by hierarchy depth

Catalog names are case-insensitive and are stored lowercased. The value
``*`` at a catalog level matches any name at that level.
"""

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple, Union
from urllib.parse import urlsplit

from .exceptions import MalformedResourceError

WILDCARD = "*"


class Level(str, Enum):
    """Levels of the catalog hierarchy, outermost first."""

    SERVER = "server"
    DATABASE = "db"
    TABLE = "table"
    COLUMN = "column"


LEVEL_ORDER: Tuple[Level, ...] = (Level.SERVER, Level.DATABASE, Level.TABLE, Level.COLUMN)

LEVEL_ALIASES = {
    "server": Level.SERVER,
    "db": Level.DATABASE,
    "database": Level.DATABASE,
    "table": Level.TABLE,
    "column": Level.COLUMN,
}


def parse_level(name: Union[str, Level]) -> Level:
    """Resolve a level name (``db``, ``Database``, ...) to a Level."""
    if isinstance(name, Level):
        return name
    level = LEVEL_ALIASES.get(str(name).strip().lower())
    if level is None:
        raise MalformedResourceError(f"Unknown resource level: {name!r}", name)
    return level


class Action(str, Enum):
    """Operation classes a permission can grant."""

    SELECT = "select"
    INSERT = "insert"
    ALL = "all"

    def implies(self, other: "Action") -> bool:
        """ALL implies every action; anything else only implies itself."""
        return self is Action.ALL or self is other

    @classmethod
    def from_string(cls, value: str) -> "Action":
        """Parse an action name; ``*`` is accepted as ALL."""
        normalized = value.strip().lower()
        if normalized == WILDCARD:
            return cls.ALL
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Invalid action: {value!r}") from None


@dataclass(frozen=True)
class ResourcePath:
    """An immutable position in the catalog hierarchy."""

    parts: Tuple[Tuple[Level, str], ...]

    def __post_init__(self):
        if not self.parts:
            raise MalformedResourceError("Resource path must not be empty")

        normalized = []
        for index, part in enumerate(self.parts):
            try:
                level, value = part
            except (TypeError, ValueError):
                raise MalformedResourceError(
                    f"Resource path element must be a (level, value) pair: {part!r}", part
                ) from None
            level = parse_level(level)
            if index >= len(LEVEL_ORDER) or level is not LEVEL_ORDER[index]:
                expected = LEVEL_ORDER[index].value if index < len(LEVEL_ORDER) else None
                raise MalformedResourceError(
                    f"Resource levels out of order: got {level.value!r} at position "
                    f"{index}, expected {expected!r}",
                    self.parts,
                )
            if value is None or not str(value).strip():
                raise MalformedResourceError(
                    f"Empty value for resource level {level.value!r}", self.parts
                )
            normalized.append((level, str(value).strip().lower()))

        object.__setattr__(self, "parts", tuple(normalized))

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[Union[str, Level], str]]) -> "ResourcePath":
        """Build a path from ordered (level-name, value) pairs."""
        return cls(tuple(pairs))

    @classmethod
    def of(
        cls,
        server: str,
        database: Optional[str] = None,
        table: Optional[str] = None,
        column: Optional[str] = None,
    ) -> "ResourcePath":
        """Build a path from keyword levels, stopping at the first missing one."""
        if (column is not None and table is None) or (table is not None and database is None):
            raise MalformedResourceError(
                "Resource level skipped while a deeper level is present",
                (server, database, table, column),
            )
        pairs = [(Level.SERVER, server)]
        for level, value in ((Level.DATABASE, database), (Level.TABLE, table), (Level.COLUMN, column)):
            if value is None:
                break
            pairs.append((level, value))
        return cls(tuple(pairs))

    def _value_at(self, level: Level) -> Optional[str]:
        for part_level, value in self.parts:
            if part_level is level:
                return value
        return None

    @property
    def server(self) -> str:
        return self.parts[0][1]

    @property
    def database(self) -> Optional[str]:
        return self._value_at(Level.DATABASE)

    @property
    def table(self) -> Optional[str]:
        return self._value_at(Level.TABLE)

    @property
    def column(self) -> Optional[str]:
        return self._value_at(Level.COLUMN)

    @property
    def level(self) -> Level:
        """The deepest level this path names."""
        return self.parts[-1][0]

    def is_ancestor_of(self, other: "ResourcePath") -> bool:
        """True if this path is a level prefix of ``other`` (equality included)."""
        if not isinstance(other, ResourcePath) or len(self.parts) > len(other.parts):
            return False
        for (_, mine), (_, theirs) in zip(self.parts, other.parts):
            if mine != WILDCARD and mine != theirs:
                return False
        return True

    def __str__(self) -> str:
        return "->".join(f"{level.value}={value}" for level, value in self.parts)


@dataclass(frozen=True)
class UriResource:
    """An absolute storage location, compared component by component."""

    uri: str
    scheme: str = field(init=False, compare=False)
    authority: str = field(init=False, compare=False)
    segments: Tuple[str, ...] = field(init=False, compare=False)

    def __post_init__(self):
        if self.uri is None or not str(self.uri).strip():
            raise MalformedResourceError("URI must not be empty", self.uri)

        raw = str(self.uri).strip()
        split = urlsplit(raw)
        path = split.path or "/"
        if not path.startswith("/"):
            raise MalformedResourceError(f"URI must be absolute: {raw!r}", raw)

        segments = tuple(
            segment for segment in posixpath.normpath(path).split("/") if segment
        )
        scheme = split.scheme.lower()
        authority = split.netloc.lower()

        object.__setattr__(self, "scheme", scheme)
        object.__setattr__(self, "authority", authority)
        object.__setattr__(self, "segments", segments)
        object.__setattr__(self, "uri", self._render(scheme, authority, segments))

    @staticmethod
    def _render(scheme: str, authority: str, segments: Sequence[str]) -> str:
        path = "/" + "/".join(segments)
        if scheme:
            return f"{scheme}://{authority}{path}"
        return path

    @classmethod
    def parse(cls, uri: str, default_filesystem: Optional[str] = None) -> "UriResource":
        """Parse a location, qualifying scheme-less paths with ``default_filesystem``."""
        if uri is not None and default_filesystem and not urlsplit(str(uri).strip()).scheme:
            uri = default_filesystem.rstrip("/") + "/" + str(uri).strip().lstrip("/")
        return cls(uri)

    def is_uri_prefix_of(self, candidate: Union[str, "UriResource"]) -> bool:
        """True if ``candidate`` is this location or lies beneath it."""
        if not isinstance(candidate, UriResource):
            candidate = UriResource(candidate)
        if self.scheme != candidate.scheme or self.authority != candidate.authority:
            return False
        if len(self.segments) > len(candidate.segments):
            return False
        return candidate.segments[: len(self.segments)] == self.segments

    def __str__(self) -> str:
        return self.uri


Resource = Union[ResourcePath, UriResource]

"""
Declarative per-type metadata: index declarations and resolved policies.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from ..exceptions import ConfigurationError


class IndexKind(str, Enum):
    """Per-field index kinds."""

    ASCENDING = "ascending"
    DESCENDING = "descending"
    GEO2D = "geo2d"
    GEO2DSPHERE = "geo2dsphere"
    TEXT = "text"
    HASHED = "hashed"

    @classmethod
    def parse(cls, value: Any) -> "IndexKind":
        """
        Coerce a declaration value to an IndexKind.

        Accepts members, their names or values (case-insensitive), the
        server's own spellings ("2d", "2dsphere") and the directions 1 / -1.

        Raises:
            ConfigurationError: If the value names no known index kind
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            if value in _DIRECTION_ALIASES:
                return _DIRECTION_ALIASES[value]
        elif isinstance(value, str):
            key = value.strip().lower()
            if key in _KIND_ALIASES:
                return _KIND_ALIASES[key]
        raise ConfigurationError(
            f"Unknown index kind {value!r}. Expected one of: "
            f"{', '.join(kind.value for kind in cls)}",
            config_key="index.types",
            config_value=value,
        )


_DIRECTION_ALIASES = {1: IndexKind.ASCENDING, -1: IndexKind.DESCENDING}
_KIND_ALIASES = {
    **{kind.value: kind for kind in IndexKind},
    **{kind.name.lower(): kind for kind in IndexKind},
    "asc": IndexKind.ASCENDING,
    "desc": IndexKind.DESCENDING,
    "2d": IndexKind.GEO2D,
    "2dsphere": IndexKind.GEO2DSPHERE,
}


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (str, IndexKind)) or not isinstance(value, Iterable):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class IndexSpec:
    """
    An index declaration.

    ``fields[i]`` is paired with ``types[i]``; fields past the end of
    ``types`` are ascending. One field makes a single-key index, several
    fields make one compound index.

    Example:
        IndexSpec(fields=("customer", "created_at"),
                  types=(IndexKind.ASCENDING, IndexKind.DESCENDING))
        IndexSpec(fields="expires", expire_after_seconds=3600)
    """

    fields: tuple[str, ...]
    types: tuple[IndexKind, ...] = ()
    sparse: bool = False
    unique: bool = False
    expire_after_seconds: int | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        fields = _as_tuple(self.fields)
        if not fields or not all(isinstance(f, str) and f for f in fields):
            raise ConfigurationError(
                "Index declarations need at least one non-empty field name",
                config_key="index.fields",
                config_value=self.fields,
            )
        types = tuple(IndexKind.parse(t) for t in _as_tuple(self.types))
        if len(types) > len(fields):
            raise ConfigurationError(
                f"Index on {list(fields)} declares {len(types)} kinds for {len(fields)} fields",
                config_key="index.types",
            )
        if self.expire_after_seconds is not None and self.expire_after_seconds < 0:
            raise ConfigurationError(
                "expire_after_seconds must be >= 0",
                config_key="index.expire_after_seconds",
                config_value=self.expire_after_seconds,
            )
        object.__setattr__(self, "fields", fields)
        object.__setattr__(self, "types", types)

    def kind_for(self, position: int) -> IndexKind:
        """Index kind of the field at ``position``."""
        if position < len(self.types):
            return self.types[position]
        return IndexKind.ASCENDING

    @property
    def is_compound(self) -> bool:
        return len(self.fields) > 1


@dataclass(frozen=True)
class EntityPolicy:
    """Resolved storage policy of one entity type."""

    collection_name: str
    indexes: tuple[IndexSpec, ...] = ()
    capped: bool = False
    max_size: int | None = None
    max_documents: int | None = None
    write_log: bool = False
    preprocess: bool = False


@dataclass(frozen=True)
class EntityDeclaration:
    """
    What was registered for a type; unset flags fall back to context defaults.
    """

    collection_name: str | None = None
    indexes: tuple[IndexSpec, ...] = field(default_factory=tuple)
    capped: bool = False
    max_size: int | None = None
    max_documents: int | None = None
    write_log: bool | None = None
    preprocess: bool | None = None

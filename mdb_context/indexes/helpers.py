"""
Helper functions for index management.

Translate IndexSpec declarations into the key lists and options the driver's
``create_index`` expects.
"""

from typing import Any

import pymongo
from pymongo.errors import OperationFailure

from ..constants import INDEX_CONFLICT_CODES
from ..metadata.policy import IndexKind, IndexSpec

INDEX_KIND_DIRECTIONS: dict[IndexKind, Any] = {
    IndexKind.ASCENDING: pymongo.ASCENDING,
    IndexKind.DESCENDING: pymongo.DESCENDING,
    IndexKind.GEO2D: pymongo.GEO2D,
    IndexKind.GEO2DSPHERE: pymongo.GEOSPHERE,
    IndexKind.TEXT: pymongo.TEXT,
    IndexKind.HASHED: pymongo.HASHED,
}


def build_index_keys(spec: IndexSpec) -> list[tuple[str, Any]]:
    """
    Build the ordered key list of an index.

    Args:
        spec: Index declaration

    Returns:
        Ordered list of (field_name, direction) tuples; several entries make
        one compound index

    Example:
        >>> build_index_keys(IndexSpec(fields=("a", "b"), types=("ascending", "descending")))
        [('a', 1), ('b', -1)]
    """
    return [
        (field_name, INDEX_KIND_DIRECTIONS[spec.kind_for(position)])
        for position, field_name in enumerate(spec.fields)
    ]


def build_index_options(spec: IndexSpec) -> dict[str, Any]:
    """
    Build ``create_index`` keyword options.

    Flags left at their defaults are omitted so the stored index matches one
    created without them.
    """
    options: dict[str, Any] = {}
    if spec.unique:
        options["unique"] = True
    if spec.sparse:
        options["sparse"] = True
    if spec.expire_after_seconds is not None:
        options["expireAfterSeconds"] = spec.expire_after_seconds
    if spec.name:
        options["name"] = spec.name
    return options


def keys_to_dict(keys: list[tuple[str, Any]]) -> dict[str, Any]:
    """Convert index keys to dictionary format for comparison and logging."""
    return {k: v for k, v in keys}


def is_index_conflict(error: Exception) -> bool:
    """
    Check whether a driver error reports an index declared differently
    than an existing one.
    """
    return isinstance(error, OperationFailure) and error.code in INDEX_CONFLICT_CODES

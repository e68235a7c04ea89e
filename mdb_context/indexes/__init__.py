"""
Index Management Module

Builds and creates the indexes declared in entity policies.
"""

from .helpers import (
    INDEX_KIND_DIRECTIONS,
    build_index_keys,
    build_index_options,
    is_index_conflict,
    keys_to_dict,
)
from .manager import ensure_indexes, ensure_indexes_async

__all__ = [
    "INDEX_KIND_DIRECTIONS",
    "build_index_keys",
    "build_index_options",
    "is_index_conflict",
    "keys_to_dict",
    "ensure_indexes",
    "ensure_indexes_async",
]

"""
Constants for MDB_CONTEXT.

Shared defaults for connections, provisioning and audit records.
"""

from typing import Final

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing connections (milliseconds)."""

MIN_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 1000
"""Lowest accepted server selection timeout (milliseconds)."""

CLIENT_APP_NAME: Final[str] = "MDB_CONTEXT"
"""Application name reported to the server by clients the context opens."""

# ============================================================================
# PROVISIONING CONSTANTS
# ============================================================================

INDEX_OPTIONS_CONFLICT_CODE: Final[int] = 85
"""Server error code for an existing index with the same name and other options."""

INDEX_KEY_SPECS_CONFLICT_CODE: Final[int] = 86
"""Server error code for an existing index with the same name and other keys."""

INDEX_CONFLICT_CODES: Final[frozenset[int]] = frozenset(
    {INDEX_OPTIONS_CONFLICT_CODE, INDEX_KEY_SPECS_CONFLICT_CODE}
)
"""Server error codes treated as provisioning conflicts."""

# ============================================================================
# DOCUMENT CONSTANTS
# ============================================================================

ID_FIELD: Final[str] = "_id"
"""Document key holding the entity identifier."""

DICT_KEY_FIELD: Final[str] = "k"
"""Key name used when mappings are stored as arrays of documents."""

DICT_VALUE_FIELD: Final[str] = "v"
"""Value name used when mappings are stored as arrays of documents."""

PERSIST_METADATA_KEY: Final[str] = "persist"
"""Dataclass field metadata key; ``False`` excludes a field from storage and diffs."""

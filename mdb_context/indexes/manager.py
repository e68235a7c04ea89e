"""
Index creation for provisioned collections.

``create_index`` is idempotent on the server for identical declarations.
A declaration that conflicts with an existing index is surfaced as
ProvisioningError; every other driver error propagates unchanged.
"""

import logging
from typing import Any, Iterable

from pymongo.errors import OperationFailure

from ..exceptions import ProvisioningError
from ..metadata.policy import IndexSpec
from .helpers import build_index_keys, build_index_options, is_index_conflict, keys_to_dict

logger = logging.getLogger(__name__)


def _conflict(collection_name: str, keys: list[tuple[str, Any]], error: OperationFailure):
    logger.error(
        f"[{collection_name}] Index {keys_to_dict(keys)} conflicts with an existing index: "
        f"{error}"
    )
    return ProvisioningError(
        f"Index {keys_to_dict(keys)} on '{collection_name}' conflicts with an existing index",
        collection_name=collection_name,
        index_keys=keys,
    )


def ensure_indexes(collection: Any, indexes: Iterable[IndexSpec]) -> list[str]:
    """
    Create every declared index on a pymongo collection.

    Args:
        collection: pymongo Collection
        indexes: Index declarations

    Returns:
        Names of the created (or already existing) indexes

    Raises:
        ProvisioningError: If a declaration conflicts with an existing index
    """
    names = []
    for spec in indexes:
        keys = build_index_keys(spec)
        options = build_index_options(spec)
        logger.debug(f"[{collection.name}] Creating index {keys} with options {options}")
        try:
            names.append(collection.create_index(keys, **options))
        except OperationFailure as e:
            if is_index_conflict(e):
                raise _conflict(collection.name, keys, e) from e
            raise
    if names:
        logger.info(f"[{collection.name}] ✔️ Ensured indexes: {names}")
    return names


async def ensure_indexes_async(collection: Any, indexes: Iterable[IndexSpec]) -> list[str]:
    """
    Create every declared index on a motor collection.

    Same contract as :func:`ensure_indexes`.
    """
    names = []
    for spec in indexes:
        keys = build_index_keys(spec)
        options = build_index_options(spec)
        logger.debug(f"[{collection.name}] Creating index {keys} with options {options}")
        try:
            names.append(await collection.create_index(keys, **options))
        except OperationFailure as e:
            if is_index_conflict(e):
                raise _conflict(collection.name, keys, e) from e
            raise
    if names:
        logger.info(f"[{collection.name}] ✔️ Ensured indexes: {names}")
    return names

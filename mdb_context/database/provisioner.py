"""
Collection provisioning.

The first request for an entity type's collection resolves its policy, routes
it to the right database, creates it as a capped collection if declared and
absent, ensures its indexes, then caches the handle under its route and
collection name. Later requests return the cached handle without touching
the server. Types sharing a collection name on different routes get separate
handles.

Two threads asking for the same uncached collection may both provision it.
Capped creation and index creation are idempotent, and the cache keeps the
first stored handle, so both callers end up with the same object.
"""

import logging
import time
from typing import Any, Generic, TypeVar

from pymongo.errors import CollectionInvalid

from ..config import ContextConfig
from ..indexes import ensure_indexes, ensure_indexes_async
from ..metadata.policy import EntityPolicy
from ..metadata.registry import MetadataRegistry
from ..observability import record_operation
from ..utils import InsertIfAbsentCache
from .connection import open_async_client, open_client
from .routing import ConnectionRouter, ConnectionTarget

logger = logging.getLogger(__name__)

DEFAULT_ROUTE = ""

HandleKey = tuple[str, str]

DatabaseT = TypeVar("DatabaseT")
CollectionT = TypeVar("CollectionT")


def capped_options(policy: EntityPolicy) -> dict[str, Any]:
    """``create_collection`` options for a capped policy."""
    options: dict[str, Any] = {"capped": True, "size": policy.max_size}
    if policy.max_documents is not None:
        options["max"] = policy.max_documents
    return options


class _ProvisionerBase(Generic[DatabaseT, CollectionT]):
    def __init__(
        self,
        registry: MetadataRegistry,
        router: ConnectionRouter,
        default_database: DatabaseT,
        config: ContextConfig | None = None,
    ) -> None:
        self.registry = registry
        self.router = router
        self.default_database = default_database
        self._config = config
        self._handles: InsertIfAbsentCache[HandleKey, CollectionT] = InsertIfAbsentCache()
        self._clients: InsertIfAbsentCache[str, Any] = InsertIfAbsentCache()

    def cached(self, collection_name: str, route: str = DEFAULT_ROUTE) -> CollectionT | None:
        """
        Return the cached handle for a collection name, if provisioned.

        Args:
            collection_name: Resolved collection name
            route: Connection target name, or the default database when omitted
        """
        return self._handles.get((route, collection_name))

    @property
    def provisioned(self) -> list[str]:
        return [collection_name for _, collection_name in self._handles]

    def _route(self, entity_type: type, policy: EntityPolicy) -> ConnectionTarget | None:
        return self.router.route_entity(entity_type, policy.collection_name)

    @staticmethod
    def _key(target: ConnectionTarget | None, policy: EntityPolicy) -> HandleKey:
        return (target.type_name if target else DEFAULT_ROUTE, policy.collection_name)

    def _open(self, target: ConnectionTarget) -> Any:
        raise NotImplementedError

    def _database_for(self, entity_type: type, target: ConnectionTarget | None) -> DatabaseT:
        if target is None:
            return self.default_database
        client = self._clients.get(target.type_name)
        if client is None:
            opened = self._open(target)
            client = self._clients.insert_if_absent(target.type_name, opened)
            if client is not opened:
                opened.close()
        logger.debug(
            f"Routing {entity_type.__name__} to database '{target.db_name}' "
            f"via target '{target.type_name}'"
        )
        return client[target.db_name]

    def _store(self, key: HandleKey, handle: CollectionT) -> CollectionT:
        cached = self._handles.insert_if_absent(key, handle)
        if cached is not handle:
            logger.debug(f"[{key[1]}] Handle provisioned concurrently; using cached one")
        return cached

    def close(self) -> None:
        """Close clients opened for alternate connection targets."""
        for client in self._clients.values():
            client.close()
        self._clients.clear()
        self._handles.clear()


class CollectionProvisioner(_ProvisionerBase[Any, Any]):
    """
    Provisions pymongo collections.

    Example:
        provisioner = CollectionProvisioner(registry, router, client["app"])
        orders = provisioner.get_collection(Order)
    """

    def _open(self, target: ConnectionTarget) -> Any:
        return open_client(target.connection_settings, self._config)

    def get_collection(self, entity_type: type) -> Any:
        """
        Return the provisioned collection handle of an entity type.

        Raises:
            ConfigurationError: If the entity declaration is invalid
            ProvisioningError: If a declared index conflicts with an existing one
            pymongo.errors.PyMongoError: Any other driver failure, unchanged
        """
        policy = self.registry.resolve(entity_type)
        target = self._route(entity_type, policy)
        key = self._key(target, policy)
        handle = self._handles.get(key)
        if handle is not None:
            return handle

        start_time = time.time()
        success = False
        try:
            database = self._database_for(entity_type, target)
            if policy.capped:
                self._ensure_capped(database, policy)
            collection = database[policy.collection_name]
            ensure_indexes(collection, policy.indexes)
            success = True
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(
                "provision.collection",
                duration_ms,
                success=success,
                collection=policy.collection_name,
            )
        logger.info(f"[{policy.collection_name}] Provisioned collection for {entity_type.__name__}")
        return self._store(key, collection)

    def _ensure_capped(self, database: Any, policy: EntityPolicy) -> None:
        name = policy.collection_name
        if database.list_collection_names(filter={"name": name}):
            return
        try:
            database.create_collection(name, **capped_options(policy))
            logger.info(f"[{name}] Created capped collection (size={policy.max_size})")
        except CollectionInvalid:
            # Created by a concurrent caller between the check and the create
            logger.debug(f"[{name}] Capped collection already exists")


class AsyncCollectionProvisioner(_ProvisionerBase[Any, Any]):
    """
    Provisions motor collections. Same semantics as CollectionProvisioner.
    """

    def _open(self, target: ConnectionTarget) -> Any:
        return open_async_client(target.connection_settings, self._config)

    async def get_collection(self, entity_type: type) -> Any:
        """See :meth:`CollectionProvisioner.get_collection`."""
        policy = self.registry.resolve(entity_type)
        target = self._route(entity_type, policy)
        key = self._key(target, policy)
        handle = self._handles.get(key)
        if handle is not None:
            return handle

        start_time = time.time()
        success = False
        try:
            database = self._database_for(entity_type, target)
            if policy.capped:
                await self._ensure_capped(database, policy)
            collection = database[policy.collection_name]
            await ensure_indexes_async(collection, policy.indexes)
            success = True
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(
                "provision.collection",
                duration_ms,
                success=success,
                collection=policy.collection_name,
            )
        logger.info(f"[{policy.collection_name}] Provisioned collection for {entity_type.__name__}")
        return self._store(key, collection)

    async def _ensure_capped(self, database: Any, policy: EntityPolicy) -> None:
        name = policy.collection_name
        if await database.list_collection_names(filter={"name": name}):
            return
        try:
            await database.create_collection(name, **capped_options(policy))
            logger.info(f"[{name}] Created capped collection (size={policy.max_size})")
        except CollectionInvalid:
            logger.debug(f"[{name}] Capped collection already exists")

"""
State and helpers shared by the synchronous and asyncio contexts.
"""

import dataclasses
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, TypeVar

from bson import ObjectId
from pymongo.errors import PyMongoError

from ..audit.writer import ActorAccessor
from ..config import ContextConfig
from ..database.routing import ConnectionRouter, ConnectionTarget, connection_targets_from_manifest
from ..entities.base import SavePreprocessor
from ..entities.codec import DocumentCodec, id_filter
from ..exceptions import MongoContextError
from ..metadata.policy import EntityPolicy
from ..metadata.registry import MetadataRegistry
from ..observability import clear_entity_context, get_logger, set_entity_context

logger = get_logger(__name__)

T = TypeVar("T")


def is_entity_instance(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


class ContextBase:
    """
    Per-context registry, router, codec and hooks.

    Args:
        database: Default database handle (pymongo Database or motor database)
        connections: Connection overrides for selected entity types
        current_actor: Returns the acting user's identity for activity records
        preprocessor: Save hook for types with ``preprocess`` enabled
        default_write_log: Activity logging for types without an explicit flag
        default_preprocess: Preprocessing for types without an explicit flag
        dict_as_documents: Store mapping fields as ``{k, v}`` document arrays
        config: Pool options for clients opened for connection overrides
        client: Client owned by the context, closed by ``close()``
    """

    def __init__(
        self,
        database: Any,
        *,
        connections: Iterable[ConnectionTarget] = (),
        current_actor: ActorAccessor | None = None,
        preprocessor: SavePreprocessor | None = None,
        default_write_log: bool = False,
        default_preprocess: bool = False,
        dict_as_documents: bool = False,
        config: ContextConfig | None = None,
        client: Any = None,
    ) -> None:
        self.database = database
        self.registry = MetadataRegistry(default_write_log, default_preprocess)
        self.router = ConnectionRouter(connections)
        self.codec = DocumentCodec(dict_as_documents)
        self.current_actor = current_actor
        self.preprocessor = preprocessor
        self._config = config
        self._client = client
        self._closed = False

    @staticmethod
    def _settings_from_config(config: ContextConfig, kwargs: dict[str, Any]) -> dict[str, Any]:
        kwargs.setdefault("default_write_log", config.default_write_log)
        kwargs.setdefault("default_preprocess", config.default_preprocess)
        kwargs.setdefault("dict_as_documents", config.dict_as_documents)
        return kwargs

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def register(self, entity_type: type, **declaration: Any) -> None:
        """
        Declare an entity type's storage policy. See :meth:`MetadataRegistry.register`.
        """
        self.registry.register(entity_type, **declaration)

    def load_manifest(self, manifest: dict[str, Any], entity_types: Iterable[type]) -> list[type]:
        """
        Register the entities and connection overrides of a manifest.

        Returns:
            The registered entity types
        """
        registered = self.registry.load_manifest(manifest, entity_types)
        for target in connection_targets_from_manifest(manifest):
            self.router.add(target)
        return registered

    def collection_name(self, entity_type: type) -> str:
        return self.registry.collection_name(entity_type)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _decode(self, entity_type: type[T], doc: dict[str, Any] | None) -> T | None:
        return self.codec.from_document(entity_type, doc)

    def _preprocess(self, item: Any, policy: EntityPolicy) -> None:
        if not policy.preprocess:
            return
        if self.preprocessor is None:
            logger.debug(f"Preprocessing enabled for {type(item).__name__} but no preprocessor set")
            return
        self.preprocessor.preprocess(item)

    def _target_filter(self, entity_type: type, target: Any) -> dict[str, Any]:
        """
        Filter selecting the document a delete targets.

        Raises:
            TypeError: If target is of another entity type or unsupported
            ValueError: If target is an instance that was never saved
        """
        if is_entity_instance(target):
            if not isinstance(target, entity_type):
                raise TypeError(
                    f"Expected {entity_type.__name__} instance, got {type(target).__name__}"
                )
            if target.id is None:
                raise ValueError(f"{entity_type.__name__} instance has no id; it was never saved")
            return id_filter(target.id)
        if isinstance(target, Mapping):
            return dict(target)
        if isinstance(target, (str, ObjectId)):
            return id_filter(str(target))
        raise TypeError(
            f"Delete target must be an entity, an id or a filter, got {type(target).__name__}"
        )

    @staticmethod
    def _pinned(selector: dict[str, Any], entity_id: Any) -> dict[str, Any]:
        """
        Narrow a caller's filter to the document read as the pre-image.

        The caller's predicate stays part of the write, so a document changed
        by another writer after the read no longer matches.
        """
        by_id = id_filter(entity_id)
        if selector == by_id:
            return selector
        return {"$and": [selector, by_id]}

    @staticmethod
    def _check_batch(items: list[Any]) -> type:
        entity_type = type(items[0])
        if not is_entity_instance(items[0]) or any(type(item) is not entity_type for item in items):
            raise TypeError("insert_many expects entities of a single dataclass type")
        return entity_type

    @contextmanager
    def _entity_scope(self, operation: str, entity_type: type) -> Iterator[None]:
        token = set_entity_context(entity_type.__name__, operation=operation)
        try:
            yield
        finally:
            clear_entity_context(token)

    @contextmanager
    def _audit_guard(self, operation: str, entity_type: type, obj_id: Any) -> Iterator[None]:
        """
        Log activity write failures. The primary write has already committed
        when this runs; the error is re-raised unchanged.
        """
        try:
            yield
        except (PyMongoError, MongoContextError) as e:
            logger.error(
                f"Activity record for {operation} of {entity_type.__name__} id={obj_id} "
                f"was not written; the {operation} itself succeeded: {e}"
            )
            raise

    def _mark_closed(self) -> bool:
        if self._closed:
            return False
        self._closed = True
        return True

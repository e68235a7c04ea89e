"""
Metadata registry: resolves and caches the storage policy of each entity type.

Declarations are made explicitly at startup, either through
:meth:`MetadataRegistry.register` or from a validated manifest. Types that
were never declared resolve to defaults: the class name as collection name,
no indexes, and the context-wide logging/preprocessing flags.
"""

import dataclasses
import logging
from typing import Any, Iterable, Mapping

from ..entities.activity import ActivityRecord
from ..exceptions import ConfigurationError
from ..utils import InsertIfAbsentCache
from .manifest import validate_manifest
from .policy import EntityDeclaration, EntityPolicy, IndexSpec

logger = logging.getLogger(__name__)


def _is_activity_type(entity_type: type) -> bool:
    return isinstance(entity_type, type) and issubclass(entity_type, ActivityRecord)


def _coerce_index(index: IndexSpec | Mapping[str, Any]) -> IndexSpec:
    if isinstance(index, IndexSpec):
        return index
    if isinstance(index, Mapping):
        return IndexSpec(**index)
    raise ConfigurationError(
        f"Index declarations must be IndexSpec or mapping, got {type(index).__name__}",
        config_key="indexes",
    )


class MetadataRegistry:
    """
    Per-context registry of entity declarations and resolved policies.

    Policies are immutable once resolved. Concurrent first resolution of the
    same type may compute the policy twice; the first cached result is kept
    and every caller gets an equal value.

    Example:
        registry = MetadataRegistry(default_write_log=False)
        registry.register(
            Order,
            collection_name="orders",
            write_log=True,
            indexes=[IndexSpec(fields=("total",), unique=True)],
        )
        registry.resolve(Order).collection_name  # "orders"
    """

    def __init__(self, default_write_log: bool = False, default_preprocess: bool = False) -> None:
        self.default_write_log = default_write_log
        self.default_preprocess = default_preprocess
        self._declarations: InsertIfAbsentCache[type, EntityDeclaration] = InsertIfAbsentCache()
        self._policies: InsertIfAbsentCache[type, EntityPolicy] = InsertIfAbsentCache()

    def register(
        self,
        entity_type: type,
        *,
        collection_name: str | None = None,
        indexes: Iterable[IndexSpec | Mapping[str, Any]] = (),
        capped: bool = False,
        max_size: int | None = None,
        max_documents: int | None = None,
        write_log: bool | None = None,
        preprocess: bool | None = None,
    ) -> EntityDeclaration:
        """
        Declare the storage policy of an entity type.

        Args:
            entity_type: Dataclass entity type
            collection_name: Physical collection name (defaults to the class name)
            indexes: Index declarations (IndexSpec or mappings of its fields)
            capped: Create the collection as a capped collection
            max_size: Capped collection size in bytes (required when capped)
            max_documents: Capped collection document limit
            write_log: Write activity records (None: context default)
            preprocess: Run the save preprocessor (None: context default)

        Returns:
            The stored declaration

        Raises:
            ConfigurationError: If the declaration is invalid, the type was
                already declared, or its policy was already resolved
        """
        type_name = getattr(entity_type, "__name__", repr(entity_type))
        if not dataclasses.is_dataclass(entity_type) or not isinstance(entity_type, type):
            raise ConfigurationError(
                f"Entity type {type_name} must be a dataclass", context={"entity_type": type_name}
            )
        if entity_type in self._policies:
            raise ConfigurationError(
                f"Policy for {type_name} was already resolved; register entities before first use",
                context={"entity_type": type_name},
            )
        if _is_activity_type(entity_type) and (write_log or preprocess):
            raise ConfigurationError(
                "Activity records cannot be logged or preprocessed",
                config_key="write_log" if write_log else "preprocess",
                context={"entity_type": type_name},
            )
        if collection_name is not None and not collection_name.strip():
            raise ConfigurationError(
                "collection_name must not be empty", config_key="collection_name"
            )
        if capped and (max_size is None or max_size < 1):
            raise ConfigurationError(
                f"Capped collection for {type_name} needs a positive max_size",
                config_key="max_size",
                config_value=max_size,
            )
        if not capped and (max_size is not None or max_documents is not None):
            raise ConfigurationError(
                f"max_size / max_documents for {type_name} require capped=True",
                config_key="capped",
            )
        if max_documents is not None and max_documents < 1:
            raise ConfigurationError(
                "max_documents must be >= 1",
                config_key="max_documents",
                config_value=max_documents,
            )

        declaration = EntityDeclaration(
            collection_name=collection_name,
            indexes=tuple(_coerce_index(index) for index in indexes),
            capped=capped,
            max_size=max_size,
            max_documents=max_documents,
            write_log=write_log,
            preprocess=preprocess,
        )
        stored = self._declarations.insert_if_absent(entity_type, declaration)
        if stored is not declaration:
            raise ConfigurationError(
                f"Entity type {type_name} is already registered",
                context={"entity_type": type_name},
            )
        logger.debug(f"Registered entity {type_name}: {declaration}")
        return declaration

    def load_manifest(
        self, manifest: dict[str, Any], entity_types: Iterable[type]
    ) -> list[type]:
        """
        Register every entity declared in a manifest.

        Args:
            manifest: Entity manifest (see :mod:`mdb_context.metadata.manifest`)
            entity_types: Candidate types, matched to manifest keys by class name

        Returns:
            The registered types, in manifest order

        Raises:
            ManifestValidationError: If the manifest is invalid
            ConfigurationError: If a manifest entity names no known type
        """
        normalized = validate_manifest(manifest)
        by_name = {t.__name__: t for t in entity_types}
        registered = []
        for type_name, declared in normalized.get("entities", {}).items():
            entity_type = by_name.get(type_name)
            if entity_type is None:
                raise ConfigurationError(
                    f"Manifest declares unknown entity type '{type_name}'",
                    config_key=f"entities.{type_name}",
                )
            capped = declared.get("capped")
            self.register(
                entity_type,
                collection_name=declared.get("collection"),
                indexes=declared.get("indexes", ()),
                capped=capped is not None,
                max_size=capped.get("max_size") if capped else None,
                max_documents=capped.get("max_documents") if capped else None,
                write_log=declared.get("write_log"),
                preprocess=declared.get("preprocess"),
            )
            registered.append(entity_type)
        logger.info(f"Loaded {len(registered)} entity declaration(s) from manifest")
        return registered

    def resolve(self, entity_type: type) -> EntityPolicy:
        """
        Resolve the storage policy of an entity type (cached per type).
        """
        policy = self._policies.get(entity_type)
        if policy is not None:
            return policy
        return self._policies.insert_if_absent(entity_type, self._build_policy(entity_type))

    def collection_name(self, entity_type: type) -> str:
        return self.resolve(entity_type).collection_name

    def is_registered(self, entity_type: type) -> bool:
        return entity_type in self._declarations

    def _build_policy(self, entity_type: type) -> EntityPolicy:
        declaration = self._declarations.get(entity_type) or EntityDeclaration()
        write_log = declaration.write_log
        preprocess = declaration.preprocess
        if _is_activity_type(entity_type):
            write_log = preprocess = False
        policy = EntityPolicy(
            collection_name=declaration.collection_name or entity_type.__name__,
            indexes=declaration.indexes,
            capped=declaration.capped,
            max_size=declaration.max_size,
            max_documents=declaration.max_documents,
            write_log=self.default_write_log if write_log is None else write_log,
            preprocess=self.default_preprocess if preprocess is None else preprocess,
        )
        logger.debug(f"Resolved policy for {entity_type.__name__}: {policy}")
        return policy

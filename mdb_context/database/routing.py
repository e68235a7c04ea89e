"""
Connection routing: which physical database holds an entity type.

Most types live in the context's default database. A short, static list of
ConnectionTarget overrides sends named types to other servers or databases.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ..exceptions import ConfigurationError
from ..metadata.manifest import validate_manifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ConnectionTarget:
    """
    Override entry routing one logical type to another database.

    Attributes:
        type_name: Entity class name (or collection name) this entry applies to
        connection_settings: MongoDB URI or mapping of client keyword arguments
        db_name: Database name on that connection
    """

    type_name: str
    connection_settings: str | Mapping[str, Any]
    db_name: str


class ConnectionRouter:
    """
    Linear lookup over the configured ConnectionTarget list.

    The list is small and fixed for the context lifetime, so no cache is kept.
    """

    def __init__(self, targets: Iterable[ConnectionTarget] = ()) -> None:
        self._targets: list[ConnectionTarget] = []
        for target in targets:
            self.add(target)

    def add(self, target: ConnectionTarget) -> None:
        """
        Add an override.

        Raises:
            ConfigurationError: If the type name already has an override
        """
        if not target.type_name or not target.db_name:
            raise ConfigurationError(
                "Connection targets need a type_name and a db_name",
                config_key="connections",
            )
        if self.route(target.type_name) is not None:
            raise ConfigurationError(
                f"Duplicate connection target for '{target.type_name}'",
                config_key="connections",
                config_value=target.type_name,
            )
        self._targets.append(target)
        logger.debug(f"Routing '{target.type_name}' to database '{target.db_name}'")

    def route(self, type_name: str) -> ConnectionTarget | None:
        """Return the override for a logical type name, or None for the default connection."""
        for target in self._targets:
            if target.type_name == type_name:
                return target
        return None

    def route_entity(self, entity_type: type, collection_name: str) -> ConnectionTarget | None:
        """Route by class name first, then by resolved collection name."""
        return self.route(entity_type.__name__) or self.route(collection_name)

    @property
    def targets(self) -> list[ConnectionTarget]:
        return list(self._targets)

    def __len__(self) -> int:
        return len(self._targets)


def connection_targets_from_manifest(manifest: dict[str, Any]) -> list[ConnectionTarget]:
    """
    Build ConnectionTargets from the ``connections`` section of a manifest.

    Raises:
        ManifestValidationError: If the manifest is invalid
    """
    normalized = validate_manifest(manifest)
    return [
        ConnectionTarget(
            type_name=entry["type"],
            connection_settings=entry.get("uri") or entry["settings"],
            db_name=entry["db_name"],
        )
        for entry in normalized.get("connections", [])
    ]

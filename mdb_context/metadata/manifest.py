"""
Entity manifest: a startup configuration map of entity policies and
alternate connections.

Example manifest:
    {
        "entities": {
            "Order": {
                "collection": "orders",
                "write_log": true,
                "indexes": [
                    {"fields": ["customer", "total"], "types": ["ascending", "descending"]},
                    {"fields": "reference", "unique": true}
                ]
            },
            "PageView": {"capped": {"max_size": 1048576, "max_documents": 1000}}
        },
        "connections": [
            {"type": "PageView", "uri": "mongodb://analytics:27017", "db_name": "analytics"}
        ]
    }
"""

import logging
from typing import Any

from jsonschema import SchemaError, ValidationError, validate

from ..exceptions import ManifestValidationError

logger = logging.getLogger(__name__)

INDEX_KIND_NAMES = [
    "ascending",
    "descending",
    "asc",
    "desc",
    "geo2d",
    "geo2dsphere",
    "2d",
    "2dsphere",
    "text",
    "hashed",
    1,
    -1,
]

INDEX_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "fields": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "minItems": 1,
                },
            ]
        },
        "types": {"type": "array", "items": {"enum": INDEX_KIND_NAMES}},
        "unique": {"type": "boolean"},
        "sparse": {"type": "boolean"},
        "expire_after_seconds": {"type": "integer", "minimum": 0},
        "name": {"type": "string", "minLength": 1},
    },
    "required": ["fields"],
    "additionalProperties": False,
}

ENTITY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "collection": {"type": "string", "minLength": 1},
        "capped": {
            "type": "object",
            "properties": {
                "max_size": {"type": "integer", "minimum": 1},
                "max_documents": {"type": "integer", "minimum": 1},
            },
            "required": ["max_size"],
            "additionalProperties": False,
        },
        "write_log": {"type": "boolean"},
        "preprocess": {"type": "boolean"},
        "indexes": {"type": "array", "items": INDEX_SCHEMA},
    },
    "additionalProperties": False,
}

CONNECTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"type": "string", "minLength": 1},
        "uri": {"type": "string", "minLength": 1},
        "settings": {"type": "object"},
        "db_name": {"type": "string", "minLength": 1},
    },
    "required": ["type", "db_name"],
    "oneOf": [{"required": ["uri"]}, {"required": ["settings"]}],
    "additionalProperties": False,
}

MANIFEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "entities": {"type": "object", "additionalProperties": ENTITY_SCHEMA},
        "connections": {"type": "array", "items": CONNECTION_SCHEMA},
    },
    "additionalProperties": False,
}


def _convert_tuples_to_lists(obj: Any) -> Any:
    """
    Recursively convert tuples to lists for JSON schema compatibility.

    Python declarations often use tuples (e.g. ``"fields": ("a", "b")``), which
    JSON schema does not treat as arrays.
    """
    if isinstance(obj, tuple):
        return [_convert_tuples_to_lists(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _convert_tuples_to_lists(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_convert_tuples_to_lists(item) for item in obj]
    return obj


def validate_manifest(manifest: dict[str, Any]) -> dict[str, Any]:
    """
    Validate an entity manifest.

    Args:
        manifest: Manifest mapping (tuples are accepted where arrays are expected)

    Returns:
        The normalized manifest (tuples converted to lists)

    Raises:
        ManifestValidationError: If the manifest does not match the schema
    """
    normalized = _convert_tuples_to_lists(manifest)
    try:
        validate(instance=normalized, schema=MANIFEST_SCHEMA)
    except ValidationError as e:
        path = ".".join(str(part) for part in e.absolute_path) or "<root>"
        logger.warning(f"Entity manifest rejected at '{path}': {e.message}")
        raise ManifestValidationError(
            f"Invalid entity manifest at '{path}': {e.message}",
            error_paths=[path],
        ) from e
    except SchemaError as e:
        raise ManifestValidationError(f"Manifest schema is invalid: {e.message}") from e
    return normalized

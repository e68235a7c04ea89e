"""
Entity <-> document conversion.

The codec maps ``id`` to ``_id`` (as an ObjectId when the id is a 24-char hex
string), encodes nested dataclasses, enums and sequences into BSON-friendly
values (datetimes as naive UTC with millisecond precision), and rebuilds
typed values from stored documents using the entity's type hints.
Unknown stored keys are ignored on decode.
"""

import dataclasses
import logging
import types
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints

from bson import ObjectId

from ..constants import DICT_KEY_FIELD, DICT_VALUE_FIELD, ID_FIELD
from .base import bson_datetime, persisted_fields

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset)


def to_object_id(value: Any) -> Any:
    """Convert a hex id string to ObjectId; other values are returned unchanged."""
    if isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def id_filter(entity_id: Any) -> dict[str, Any]:
    """Filter document matching a single entity id."""
    return {ID_FIELD: to_object_id(entity_id)}


@lru_cache(maxsize=None)
def _type_hints(entity_type: type) -> dict[str, Any]:
    return get_type_hints(entity_type)


class DocumentCodec:
    """
    Converts dataclass entities to MongoDB documents and back.

    Args:
        dict_as_documents: Store mapping values as arrays of
            ``{"k": key, "v": value}`` documents instead of embedded documents.
            Useful when keys are not valid BSON field names. Entries are
            sorted by key so equal mappings encode identically.
    """

    def __init__(self, dict_as_documents: bool = False) -> None:
        self.dict_as_documents = dict_as_documents

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def to_document(self, entity: Any, include_id: bool = True) -> dict[str, Any]:
        """Convert an entity to a document for storage."""
        doc: dict[str, Any] = {}
        for f in persisted_fields(type(entity)):
            value = getattr(entity, f.name)
            if f.name == "id":
                if include_id and value is not None:
                    doc[ID_FIELD] = to_object_id(value)
                continue
            doc[f.name] = self.encode_value(value)
        return doc

    def encode_value(self, value: Any) -> Any:
        """Encode a single field value into its stored form."""
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return {
                f.name: self.encode_value(getattr(value, f.name))
                for f in persisted_fields(type(value))
            }
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            return bson_datetime(value)
        if isinstance(value, dict):
            if self.dict_as_documents:
                return [
                    {DICT_KEY_FIELD: k, DICT_VALUE_FIELD: self.encode_value(v)}
                    for k, v in sorted(value.items(), key=lambda item: str(item[0]))
                ]
            return {k: self.encode_value(v) for k, v in value.items()}
        if isinstance(value, _SEQUENCE_ORIGINS):
            return [self.encode_value(v) for v in value]
        return value

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def from_document(self, entity_type: type[T], doc: dict[str, Any] | None) -> T | None:
        """Create an entity from a stored document (``None`` passes through)."""
        if doc is None:
            return None
        return self._decode_dataclass(entity_type, doc, top_level=True)

    def _decode_dataclass(self, cls: type, data: dict[str, Any], top_level: bool = False) -> Any:
        hints = _type_hints(cls)
        kwargs: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            if top_level and f.name == "id":
                raw = data.get(ID_FIELD, data.get("id"))
                kwargs["id"] = str(raw) if raw is not None else None
                continue
            if f.name in data:
                kwargs[f.name] = self._decode_value(hints.get(f.name, Any), data[f.name])
            elif (
                f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
            ):
                # Schemaless documents may predate a required field
                kwargs[f.name] = None
        return cls(**kwargs)

    def _decode_value(self, hint: Any, value: Any) -> Any:  # noqa: C901
        if value is None:
            return None

        origin = get_origin(hint)

        if origin is Union or origin is types.UnionType:
            args = [a for a in get_args(hint) if a is not type(None)]
            if len(args) == 1:
                return self._decode_value(args[0], value)
            return value

        if dataclasses.is_dataclass(hint) and isinstance(hint, type) and isinstance(value, dict):
            return self._decode_dataclass(hint, value)

        if isinstance(hint, type) and issubclass(hint, Enum):
            return hint(value)

        if origin in _SEQUENCE_ORIGINS or hint in _SEQUENCE_ORIGINS:
            container = origin or hint
            args = get_args(hint)
            item_hint = args[0] if args else Any
            items = [self._decode_value(item_hint, v) for v in value]
            return items if container is list else container(items)

        if origin is dict or hint is dict:
            args = get_args(hint)
            value_hint = args[1] if len(args) == 2 else Any
            if isinstance(value, list):
                return {
                    item[DICT_KEY_FIELD]: self._decode_value(value_hint, item[DICT_VALUE_FIELD])
                    for item in value
                }
            return {k: self._decode_value(value_hint, v) for k, v in value.items()}

        if hint is str and isinstance(value, ObjectId):
            return str(value)

        return value

"""
Field-level diff between two versions of an entity.
"""

from typing import Any

from ..entities.activity import DiffEntry
from ..entities.base import persisted_fields
from ..entities.codec import DocumentCodec

_default_codec = DocumentCodec()


def diff(old: Any, new: Any, codec: DocumentCodec | None = None) -> list[DiffEntry]:
    """
    Compare the persisted fields of two instances of the same entity type.

    Values are compared in their stored form, so a tuple and a list with the
    same items, or an enum and its value, are equal. Nested dataclasses and
    collections are compared as whole values: a change inside one yields a
    single entry for the enclosing field.

    Args:
        old: Previous version
        new: Current version
        codec: Codec for the stored form (defaults to a plain DocumentCodec)

    Returns:
        One DiffEntry per changed field, in field declaration order. Empty
        when nothing changed, including when ``old is new``.

    Raises:
        TypeError: If old and new are not instances of the same type

    Example:
        >>> diff(Order(total=10), Order(total=20))
        [DiffEntry(field_name='total', old_value=10, new_value=20)]
    """
    if old is new:
        return []
    if type(old) is not type(new):
        raise TypeError(
            f"Cannot diff {type(old).__name__} against {type(new).__name__}"
        )

    codec = codec or _default_codec
    entries = []
    for f in persisted_fields(type(old)):
        old_value = codec.encode_value(getattr(old, f.name))
        new_value = codec.encode_value(getattr(new, f.name))
        if old_value != new_value:
            entries.append(DiffEntry(f.name, old_value, new_value))
    return entries

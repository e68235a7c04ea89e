"""
Utility helpers for MDB_CONTEXT.
"""

from .cache import InsertIfAbsentCache

__all__ = ["InsertIfAbsentCache"]

"""
Audit trail: field diffs and activity record writers.
"""

from .diff import diff
from .writer import ActorAccessor, AsyncAuditWriter, AuditWriter

__all__ = ["diff", "ActorAccessor", "AuditWriter", "AsyncAuditWriter"]

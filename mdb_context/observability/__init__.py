"""
Observability components.

Provides structured logging and metrics collection.
"""

from .logging import (
    ContextualLoggerAdapter,
    clear_correlation_id,
    clear_entity_context,
    get_correlation_id,
    get_logger,
    get_logging_context,
    log_operation,
    set_correlation_id,
    set_entity_context,
)
from .metrics import (
    MetricsCollector,
    OperationMetrics,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_entity_context",
    "clear_entity_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
    "log_operation",
]

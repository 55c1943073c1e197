"""
Observability components.

Correlation-id aware logging and per-handler timings for blueprint
operations.
"""

from .logging import (ResourceLoggerAdapter, clear_correlation_id,
                      get_correlation_id, get_logger, log_operation,
                      set_correlation_id, set_resource_context)
from .metrics import (MetricsCollector, OperationStats, get_metrics_collector,
                      record_operation, timed_operation)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationStats",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_resource_context",
    "ResourceLoggerAdapter",
    "get_logger",
    "log_operation",
]

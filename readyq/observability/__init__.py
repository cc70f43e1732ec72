"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from readyq.observability.logging import get_logger, setup_logging, task_log_context
from readyq.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from readyq.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "get_logger",
    "task_log_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
]

"""Observability module for reliqueue."""

from reliqueue.observability.logging import configure_logging, get_logger
from reliqueue.observability.metrics import MetricsCollector, get_metrics_collector

__all__ = [
    "configure_logging",
    "get_logger",
    "MetricsCollector",
    "get_metrics_collector",
]

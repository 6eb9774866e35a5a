"""
Bridge metrics subsystem.

This package provides the MetricsReporter interface and its implementations.
"""

from bridge.metrics.base import LoggingReporter, MetricsReporter
from bridge.metrics.prometheus_reporter import MetricsContext, PrometheusReporter

__all__ = [
    "LoggingReporter",
    "MetricsReporter",
    "MetricsContext",
    "PrometheusReporter",
]

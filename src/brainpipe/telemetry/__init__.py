# src/brainpipe/telemetry/__init__.py
"""Metrics boundary: collector protocol and built-in collectors."""

from brainpipe.telemetry.collectors import LoggingMetricsCollector, NullMetricsCollector
from brainpipe.telemetry.protocols import MetricsCollector

__all__ = [
    "LoggingMetricsCollector",
    "MetricsCollector",
    "NullMetricsCollector",
]

"""Infrastructure utilities for configuration, logging, and metrics."""

from .config import ConfigError, PollSchedule, Settings, load_endpoint, resolve_endpoint
from .logging import configure_logging
from .metrics import MetricsSink

__all__ = [
    "ConfigError",
    "MetricsSink",
    "PollSchedule",
    "Settings",
    "configure_logging",
    "load_endpoint",
    "resolve_endpoint",
]

"""In-process counters for poll loop instrumentation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping


@dataclass
class MetricsSink:
    """Collects counters for a polling run."""

    counters: Dict[str, int] = field(default_factory=dict)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("quotepoll.metrics"))
    _lock: threading.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def incr(self, name: str, value: int = 1, **payload: Any) -> None:
        """Increment a counter and emit it as a debug event."""

        with self._lock:
            total = self.counters.get(name, 0) + value
            self.counters[name] = total
        self.log_event(name, {"total": total, **payload})

    def get(self, name: str) -> int:
        with self._lock:
            return self.counters.get(name, 0)

    def export(self) -> Dict[str, int]:
        """Return a copy of all current counters."""

        with self._lock:
            return dict(self.counters)

    def log_event(self, event: str, payload: Mapping[str, Any] | None = None) -> None:
        extras = {"event": event, **(payload or {})}
        self.logger.debug(event, extra=extras)


__all__ = ["MetricsSink"]

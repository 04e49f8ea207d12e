"""Per-backend connection statistics for a listener."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace


@dataclass
class BackendMetrics:
    """Connection and traffic counters for one backend."""

    total_conns: int = 0
    active_conns: int = 0
    bytes_in: int = 0
    bytes_out: int = 0


class MetricsStore:
    """Thread-safe store of metrics keyed by backend port."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metrics: dict[int, BackendMetrics] = {}

    def _entry(self, port: int) -> BackendMetrics:
        return self._metrics.setdefault(port, BackendMetrics())

    def record_connect(self, port: int) -> None:
        """Record a new connection to the backend."""
        with self._lock:
            entry = self._entry(port)
            entry.total_conns += 1
            entry.active_conns += 1

    def record_disconnect(self, port: int) -> None:
        """Record a disconnection from the backend."""
        with self._lock:
            self._entry(port).active_conns -= 1

    def add_bytes_in(self, port: int, n: int) -> None:
        """Add to the bytes-in counter of the backend."""
        with self._lock:
            self._entry(port).bytes_in += n

    def add_bytes_out(self, port: int, n: int) -> None:
        """Add to the bytes-out counter of the backend."""
        with self._lock:
            self._entry(port).bytes_out += n

    def get(self, port: int) -> BackendMetrics:
        """Return a copy of the metrics for a port; zeros when unknown."""
        with self._lock:
            entry = self._metrics.get(port)
            return replace(entry) if entry is not None else BackendMetrics()

    def all(self) -> dict[int, BackendMetrics]:
        """Return a copy of all metrics."""
        with self._lock:
            return {port: replace(entry) for port, entry in self._metrics.items()}

    def remove(self, port: int) -> None:
        """Forget the metrics of a port."""
        with self._lock:
            self._metrics.pop(port, None)
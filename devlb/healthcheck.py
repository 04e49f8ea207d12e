"""Periodic TCP health checks of backend ports."""

from __future__ import annotations

import socket
import threading
from dataclasses import dataclass, replace
from datetime import datetime


@dataclass
class HealthConfig:
    """Health check settings; durations are in seconds."""

    interval: float = 5.0
    timeout: float = 1.0
    unhealthy_after: int = 3


def default_health_config() -> HealthConfig:
    """Return the default health check settings."""
    return HealthConfig(interval=5.0, timeout=1.0, unhealthy_after=3)


@dataclass
class BackendHealth:
    """Health state of a single backend."""

    healthy: bool = True
    consec_fails: int = 0
    last_check: datetime | None = None
    last_error: str = ""


class HealthChecker:
    """Checks registered backend ports by opening TCP connections to them."""

    def __init__(self, config: HealthConfig) -> None:
        self.config = config
        self._lock = threading.Lock()
        self._backends: dict[int, BackendHealth] = {}
        self._done = threading.Event()
        self._thread: threading.Thread | None = None

    def add_backend(self, port: int) -> None:
        """Register a backend port; it starts out healthy."""
        with self._lock:
            self._backends.setdefault(port, BackendHealth(healthy=True))

    def remove_backend(self, port: int) -> None:
        """Unregister a backend port."""
        with self._lock:
            self._backends.pop(port, None)

    def start(self) -> None:
        """Begin checking in a background thread."""
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop checking. Calling it again has no effect."""
        self._done.set()

    def is_healthy(self, port: int) -> bool:
        """Return whether the port is healthy; unknown ports count as healthy."""
        with self._lock:
            health = self._backends.get(port)
            return True if health is None else health.healthy

    def status(self, port: int) -> BackendHealth | None:
        """Return a copy of the port's health, or None if it is unknown."""
        with self._lock:
            health = self._backends.get(port)
            return replace(health) if health is not None else None

    def all_statuses(self) -> dict[int, BackendHealth]:
        """Return copies of all health states."""
        with self._lock:
            return {port: replace(h) for port, h in self._backends.items()}

    def _loop(self) -> None:
        self._check_all()
        while not self._done.wait(self.config.interval):
            self._check_all()

    def _check_all(self) -> None:
        with self._lock:
            ports = list(self._backends)

        for port in ports:
            error = self._check_backend(port)
            with self._lock:
                health = self._backends.get(port)
                if health is None:
                    continue
                health.last_check = datetime.now()
                if error is None:
                    health.consec_fails = 0
                    health.healthy = True
                    health.last_error = ""
                else:
                    health.consec_fails += 1
                    health.last_error = error
                    if health.consec_fails >= self.config.unhealthy_after:
                        health.healthy = False

    def _check_backend(self, port: int) -> str | None:
        """Return None if the port accepts a connection, else the error text."""
        try:
            conn = socket.create_connection(("127.0.0.1", port), timeout=self.config.timeout)
        except OSError as exc:
            return str(exc) or exc.__class__.__name__
        conn.close()
        return None
"""A TCP listener that forwards each connection to the active backend of a service."""

from __future__ import annotations

import errno
import logging
import os
import socket
import struct
import threading
import time
from dataclasses import dataclass, replace

from devlb.bridge import bridge
from devlb.countingconn import CountingConn
from devlb.healthcheck import HealthChecker
from devlb.httperror import peek_and_respond_503
from devlb.metrics import MetricsStore
from devlb.portinfo import PortOwner, find_port_owner

log = logging.getLogger(__name__)

_HOST = "127.0.0.1"
_ACCEPT_POLL = 0.1
_DRAIN_POLL = 0.05
_BACKEND_DIAL_TIMEOUT = 3.0


@dataclass
class BackendEntry:
    """A backend registered with a service listener."""

    port: int
    label: str = ""
    active: bool = False
    pid: int = 0
    log_file: str = ""


@dataclass
class ListenerInfo:
    """A snapshot of a service listener's state."""

    name: str
    listen_addr: str
    backend_port: int
    label: str
    listening: bool
    active_conns: int
    blocked: bool
    blocked_by: str


class ServiceListener:
    """Accepts TCP connections for one service and proxies them to a backend.

    A health checker, if given, must be set before start() is called.
    """

    def __init__(
        self,
        name: str,
        listen_port: int,
        health_checker: HealthChecker | None = None,
    ) -> None:
        self.name = name
        self.listen_port = listen_port
        self.health_checker = health_checker

        self._lock = threading.RLock()
        self._listener: socket.socket | None = None
        self._backends: list[BackendEntry] = []
        self._blocked = False
        self._block_info: PortOwner | None = None

        self._done = threading.Event()
        self._stop_lock = threading.Lock()

        self._count_lock = threading.Lock()
        self._active_conns = 0

        self._conns_lock = threading.Lock()
        self._conns: set[socket.socket] = set()

        self._metrics = MetricsStore()

    # ----- lifecycle -------------------------------------------------------

    def start(self) -> None:
        """Bind the listening socket and start accepting connections.

        Raises OSError when the port cannot be bound; if it is already in use
        the listener is marked as blocked.
        """
        address = f"{_HOST}:{self.listen_port}"
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((_HOST, self.listen_port))
            sock.listen(128)
        except OSError as exc:
            sock.close()
            if exc.errno == errno.EADDRINUSE:
                owner = find_port_owner(self.listen_port)
                with self._lock:
                    self._blocked = True
                    self._block_info = owner
            raise OSError(exc.errno, f"listen on {address}: {exc.strerror or exc}") from exc

        sock.settimeout(_ACCEPT_POLL)
        with self._lock:
            self._listener = sock

        if self.health_checker is not None:
            self.health_checker.start()

        threading.Thread(target=self._accept_loop, args=(sock,), daemon=True).start()

    def _mark_done(self) -> bool:
        """Mark the listener as stopped; return False if it already was."""
        with self._stop_lock:
            if self._done.is_set():
                return False
            self._done.set()
            return True

    def _shut_listener(self) -> None:
        if self.health_checker is not None:
            self.health_checker.stop()
        with self._lock:
            sock = self._listener
        if sock is not None:
            sock.close()

    def stop(self) -> None:
        """Stop accepting connections. Calling it again has no effect."""
        if not self._mark_done():
            return
        self._shut_listener()

    def stop_graceful(self, timeout: float) -> None:
        """Stop accepting connections and wait up to timeout seconds for active ones to drain.

        Connections still open after the timeout are closed.
        """
        if not self._mark_done():
            return
        self._shut_listener()

        deadline = time.monotonic() + timeout
        while self._active_count() != 0:
            if time.monotonic() >= deadline:
                log.warning(
                    "drain timeout, force-closing connections service=%s active_conns=%d",
                    self.name,
                    self._active_count(),
                )
                with self._conns_lock:
                    conns = list(self._conns)
                for conn in conns:
                    _force_close(conn)
                return
            time.sleep(_DRAIN_POLL)

    # ----- state -----------------------------------------------------------

    def addr(self) -> str:
        """Return the listening address as "host:port", or "" when not listening."""
        with self._lock:
            return self._addr_locked()

    def _addr_locked(self) -> str:
        if self._listener is None:
            return ""
        try:
            host, port = self._listener.getsockname()[:2]
        except OSError:
            return ""
        return f"{host}:{port}"

    def is_blocked(self) -> bool:
        """Return True if start() failed because the port was in use."""
        with self._lock:
            return self._blocked

    def metrics(self) -> MetricsStore:
        """Return the metrics store of this listener."""
        return self._metrics

    def _active_count(self) -> int:
        with self._count_lock:
            return self._active_conns

    def _adjust_active(self, delta: int) -> None:
        with self._count_lock:
            self._active_conns += delta

    # ----- backends --------------------------------------------------------

    def set_backend(self, port: int, label: str) -> None:
        """Replace all backends with a single active one."""
        with self._lock:
            self._backends = [BackendEntry(port=port, label=label, active=True)]

    def clear_backend(self) -> None:
        """Remove all backends."""
        with self._lock:
            self._backends = []

    def add_backend(self, port: int, label: str, pid: int = 0, log_file: str = "") -> None:
        """Register a backend; the first one registered becomes active.

        Raises ValueError if a backend with that port is already registered.
        """
        with self._lock:
            if any(b.port == port for b in self._backends):
                raise ValueError(f"backend :{port} already registered")
            self._backends.append(
                BackendEntry(
                    port=port,
                    label=label,
                    active=not self._backends,
                    pid=pid,
                    log_file=log_file,
                )
            )
            if self.health_checker is not None:
                self.health_checker.add_backend(port)

    def remove_backend(self, port: int) -> bool:
        """Remove the backend with the given port; return False if there was none.

        If the removed backend was active, the first remaining one becomes active.
        """
        with self._lock:
            index = next((i for i, b in enumerate(self._backends) if b.port == port), None)
            if index is None:
                return False
            removed = self._backends.pop(index)
            if removed.active and self._backends:
                self._backends[0].active = True
            if self.health_checker is not None:
                self.health_checker.remove_backend(removed.port)
            return True

    def switch_backend(self, label: str) -> None:
        """Make the backend with the given label the active one.

        Raises KeyError if no backend has that label.
        """
        with self._lock:
            if not any(b.label == label for b in self._backends):
                raise KeyError(f"backend with label {label!r} not found")
            for backend in self._backends:
                backend.active = backend.label == label

    def backends(self) -> list[BackendEntry]:
        """Return copies of the registered backends."""
        with self._lock:
            return [replace(b) for b in self._backends]

    def _active_port(self) -> int:
        return next((b.port for b in self._backends if b.active), 0)

    def _healthy_active_port(self) -> int:
        """Return the active port if healthy, else the first healthy other one, else 0."""
        checker = self.health_checker
        if checker is None:
            return self._active_port()
        active = self._active_port()
        if active and checker.is_healthy(active):
            return active
        return next(
            (b.port for b in self._backends if b.port != active and checker.is_healthy(b.port)),
            0,
        )

    def info(self) -> ListenerInfo:
        """Return a snapshot of the listener's current state."""
        with self._lock:
            active = next((b for b in self._backends if b.active), None)
            blocked_by = ""
            if self._blocked and self._block_info is not None:
                blocked_by = f"PID {self._block_info.pid} ({self._block_info.command})"
            return ListenerInfo(
                name=self.name,
                listen_addr=self._addr_locked(),
                backend_port=active.port if active else 0,
                label=active.label if active else "",
                listening=self._listener is not None,
                active_conns=self._active_count(),
                blocked=self._blocked,
                blocked_by=blocked_by,
            )

    # ----- connection handling --------------------------------------------

    def _accept_loop(self, sock: socket.socket) -> None:
        while not self._done.is_set():
            try:
                client, _ = sock.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if not self._done.is_set():
                    log.error("accept error service=%s error=%s", self.name, exc)
                return
            threading.Thread(target=self._handle_conn, args=(client,), daemon=True).start()

    def _handle_conn(self, client: socket.socket) -> None:
        with self._lock:
            port = self._healthy_active_port()

        if port == 0:
            peek_and_respond_503(client, self.name, self.listen_port)
            client.close()
            return

        try:
            backend = socket.create_connection((_HOST, port), timeout=_BACKEND_DIAL_TIMEOUT)
        except OSError as exc:
            log.warning(
                "backend connect failed service=%s backend_port=%d error=%s",
                self.name,
                port,
                exc,
            )
            if not peek_and_respond_503(client, self.name, self.listen_port):
                # Reset instead of a clean close so the client sees a refusal.
                try:
                    client.setsockopt(
                        socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0)
                    )
                except OSError:
                    pass
            client.close()
            return
        backend.settimeout(None)

        self._adjust_active(1)
        self._metrics.record_connect(port)
        with self._conns_lock:
            self._conns.update((client, backend))

        client_cc = CountingConn(client)
        backend_cc = CountingConn(backend)
        try:
            bridge(client_cc, backend_cc)
        finally:
            with self._conns_lock:
                self._conns.discard(client)
                self._conns.discard(backend)
            client.close()
            backend.close()
            self._metrics.add_bytes_in(port, client_cc.bytes_read())
            self._metrics.add_bytes_out(port, backend_cc.bytes_read())
            self._metrics.record_disconnect(port)
            self._adjust_active(-1)


def _force_close(conn: socket.socket) -> None:
    try:
        conn.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    conn.close()
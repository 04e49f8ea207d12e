"""A socket wrapper that counts the bytes passing through it."""

from __future__ import annotations

import socket
import threading
from typing import Any


class CountingConn:
    """Wraps a socket and counts bytes read and written.

    Attributes not defined here are looked up on the wrapped socket.
    """

    def __init__(self, conn: socket.socket) -> None:
        self.conn = conn
        self._lock = threading.Lock()
        self._read = 0
        self._written = 0

    def __getattr__(self, name: str) -> Any:
        if name == "conn":
            raise AttributeError(name)
        return getattr(self.conn, name)

    def __enter__(self) -> CountingConn:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def recv(self, bufsize: int) -> bytes:
        """Receive up to bufsize bytes and count them."""
        data = self.conn.recv(bufsize)
        if data:
            with self._lock:
                self._read += len(data)
        return data

    def sendall(self, data: bytes) -> int:
        """Send all of data, counting every chunk sent; return the byte count."""
        view = memoryview(data)
        total = 0
        while view:
            sent = self.conn.send(view)
            if sent > 0:
                with self._lock:
                    self._written += sent
                total += sent
            view = view[sent:]
        return total

    def shutdown_write(self) -> None:
        """Close the writing half of the connection."""
        self.conn.shutdown(socket.SHUT_WR)

    def close(self) -> None:
        """Close the wrapped socket."""
        self.conn.close()

    def bytes_read(self) -> int:
        """Total bytes read from this connection."""
        with self._lock:
            return self._read

    def bytes_written(self) -> int:
        """Total bytes written to this connection."""
        with self._lock:
            return self._written
"""Bidirectional copying between two connections."""

from __future__ import annotations

import socket
import threading
from typing import Any

_CHUNK = 32 * 1024


def _close_write(conn: Any) -> None:
    try:
        shutdown_write = getattr(conn, "shutdown_write", None)
        if shutdown_write is not None:
            shutdown_write()
        else:
            conn.shutdown(socket.SHUT_WR)
    except OSError:
        pass


def _pump(dst: Any, src: Any) -> None:
    try:
        while True:
            data = src.recv(_CHUNK)
            if not data:
                break
            dst.sendall(data)
    except OSError:
        pass
    finally:
        _close_write(dst)


def bridge(client: Any, backend: Any) -> None:
    """Copy data both ways between client and backend until both directions end."""
    upstream = threading.Thread(target=_pump, args=(backend, client), daemon=True)
    upstream.start()
    _pump(client, backend)
    upstream.join()
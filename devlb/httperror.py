"""Detection of HTTP requests and the 503 reply sent when no backend is up."""

from __future__ import annotations

from typing import Any

_HTTP_METHODS = (
    b"GET ", b"POST ", b"PUT ", b"DELETE ", b"PATCH ",
    b"HEAD ", b"OPTIONS ", b"CONNECT ",
)

_PEEK_TIMEOUT = 0.5
_PEEK_SIZE = 16


def is_http_request(data: bytes) -> bool:
    """Return True if data looks like the start of an HTTP request."""
    return bytes(data).startswith(_HTTP_METHODS)


def http_error_response(service_name: str, listen_port: int) -> bytes:
    """Build an HTTP 503 response naming the service and port."""
    body = (
        "503 Service Unavailable\n\n"
        f"devlb: no healthy backend available for port {listen_port}\n"
        f"Service: {service_name}\n"
    ).encode()
    head = (
        "HTTP/1.1 503 Service Unavailable\r\n"
        "Content-Type: text/plain\r\n"
        "Connection: close\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    ).encode()
    return head + body


def peek_and_respond_503(conn: Any, service_name: str, listen_port: int) -> bool:
    """Read the first bytes of conn and answer with a 503 if they are HTTP.

    Returns True if an HTTP response was sent.
    """
    try:
        previous = conn.gettimeout()
        conn.settimeout(_PEEK_TIMEOUT)
    except OSError:
        return False
    try:
        data = conn.recv(_PEEK_SIZE)
    except OSError:
        data = b""
    finally:
        try:
            conn.settimeout(previous)
        except OSError:
            pass

    if not data or not is_http_request(data):
        return False

    try:
        conn.sendall(http_error_response(service_name, listen_port))
    except OSError:
        pass
    return True
import socket
import time

import pytest

from devlb.httperror import http_error_response, is_http_request, peek_and_respond_503


@pytest.mark.parametrize(
    "data, expect",
    [
        (b"GET / HTTP/1.1\r\n", True),
        (b"POST /api HTTP/1.1\r\n", True),
        (b"PUT /data HTTP/1.1\r\n", True),
        (b"DELETE /item HTTP/1.1\r\n", True),
        (b"PATCH /update HTTP/1.1\r\n", True),
        (b"HEAD / HTTP/1.1\r\n", True),
        (b"OPTIONS * HTTP/1.1\r\n", True),
        (b"CONNECT host:443 HTTP/1.1\r\n", True),
        (bytes([0x00, 0x01, 0x02, 0x03]), False),
        (b"", False),
        (b"hello world", False),
        (b"GE", False),
    ],
)
def test_is_http_request(data, expect):
    assert is_http_request(data) is expect


def test_http_error_response():
    s = http_error_response("api", 8080).decode()
    assert s.startswith("HTTP/1.1 503 Service Unavailable\r\n")
    assert "Content-Type: text/plain" in s
    assert "Connection: close" in s
    assert "port 8080" in s
    assert "api" in s


def test_http_error_response_content_length_matches_body():
    resp = http_error_response("web", 3000)
    head, body = resp.split(b"\r\n\r\n", 1)
    headers = dict(
        line.split(": ", 1) for line in head.decode().split("\r\n")[1:]
    )
    assert int(headers["Content-Length"]) == len(body)


def test_peek_and_respond_503_http():
    server, client = socket.socketpair()
    client.sendall(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
    result = peek_and_respond_503(server, "api", 8080)
    server.close()
    assert result is True

    client.settimeout(2)
    resp = b""
    while True:
        chunk = client.recv(4096)
        if not chunk:
            break
        resp += chunk
    client.close()
    assert b"503" in resp


def test_peek_and_respond_503_non_http():
    server, client = socket.socketpair()
    client.sendall(bytes([0x00, 0x01, 0x02, 0x03, 0x04, 0x05]))
    result = peek_and_respond_503(server, "api", 8080)
    server.close()
    client.close()
    assert result is False


def test_peek_and_respond_503_timeout():
    server, client = socket.socketpair()
    start = time.monotonic()
    result = peek_and_respond_503(server, "api", 8080)
    elapsed = time.monotonic() - start
    assert result is False
    assert elapsed < 2
    assert server.gettimeout() is None
    server.close()
    client.close()
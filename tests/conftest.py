"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Dict, Generator, Optional, Tuple

import pytest

from hostgate import HTTPServer, LiteralConfig, ServerConfig, resolve_config
from hostgate.http import HTTPRequest
from hostgate.middleware import LoggingMiddleware


BASE_LABEL = "example"


def make_request(host: Optional[str] = "example.com", **kwargs) -> HTTPRequest:
    """Build a request with the given Host header (None leaves it out)."""
    headers = dict(kwargs.pop("headers", {}))
    if host is not None:
        headers["host"] = host
    return HTTPRequest(
        method=kwargs.pop("method", "GET"),
        path=kwargs.pop("path", "/"),
        headers=headers,
        client_address=kwargs.pop("client_address", ("127.0.0.1", 50000)),
        **kwargs,
    )


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for the API subdomain."""
    return (
        b"GET /v1/status?verbose=1 HTTP/1.1\r\n"
        b"Host: api.example.com\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"subdomain=blog"
    return (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: www.example.com\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
        + body
    )


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration: loopback, OS-assigned port, short timeouts."""
    return resolve_config(LiteralConfig(
        host="127.0.0.1",
        port=0,
        base_domain=BASE_LABEL,
        timeout=2.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    ))


class TestServer:
    """Runs an HTTPServer in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self) -> socket.socket:
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=5.0)
        return sock


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server with access logging, torn down after the test."""
    server = HTTPServer(config)
    server.use(LoggingMiddleware())

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()


# =============================================================================
# CLIENT HELPERS
# =============================================================================

def read_response(sock: socket.socket, buffer: bytes = b"") -> Tuple[int, Dict[str, str], bytes, bytes]:
    """
    Read exactly one response from a socket.

    Returns:
        (status, headers, body, leftover) with lower-case header names.
    """
    while b"\r\n\r\n" not in buffer:
        chunk = sock.recv(4096)
        if not chunk:
            raise ConnectionError("connection closed before headers")
        buffer += chunk

    head, _, rest = buffer.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ", 2)[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()

    length = int(headers.get("content-length", 0))
    while len(rest) < length:
        chunk = sock.recv(4096)
        if not chunk:
            break
        rest += chunk

    return status, headers, rest[:length], rest[length:]


def request(port: int, raw: bytes) -> Tuple[int, Dict[str, str], bytes]:
    """Send one raw request on a fresh connection and read the response."""
    with socket.create_connection(("127.0.0.1", port), timeout=5.0) as sock:
        sock.sendall(raw)
        status, headers, body, _ = read_response(sock)
        return status, headers, body


def get(host: Optional[str], path: str = "/", connection: str = "close") -> bytes:
    """Raw GET request bytes with the given Host header."""
    lines = [f"GET {path} HTTP/1.1"]
    if host is not None:
        lines.append(f"Host: {host}")
    lines.append(f"Connection: {connection}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

"""
=============================================================================
CLIENT CONNECTIONS
=============================================================================

A Connection wraps one accepted socket and hands out complete HTTP
requests, one at a time, in the order they arrive.

TCP is a byte stream: a single recv() may return half a request, or one
request plus the start of the next. The connection keeps a buffer:

    recv() chunks ──► _buffer ──► [ headers \r\n\r\n | body ] ──► request
                         ▲                                     │
                         └──── leftover (pipelined) bytes ─────┘

The header block ends at the first \r\n\r\n; the body is exactly
Content-Length bytes. Anything after that stays in the buffer for the
next read_request() call.

Each connection is owned by exactly one thread. Nothing here is shared.

=============================================================================
"""

import logging
import re
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


logger = logging.getLogger(__name__)

_CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*([0-9]+)[ \t]*$", re.IGNORECASE | re.MULTILINE)


class RequestTooLarge(Exception):
    """The client sent more than max_request_size bytes for one request."""


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: The accepted client socket.
        address: Peer (ip, port).
        id: Short random id used to tag log lines.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.monotonic() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read the next complete request from the socket.

        After the first request the shorter keep-alive timeout applies;
        hitting it is a normal end of the conversation, not an error.

        Returns:
            Raw bytes of exactly one request, or None when the client
            closed the connection or went idle between requests.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                if not self._fill():
                    return None

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._content_length(self._buffer[:header_end])

            request_end = body_start + content_length
            if request_end > self.max_request_size:
                raise RequestTooLarge(f"Request too large: {request_end} bytes")

            while len(self._buffer) < request_end:
                if not self._fill():
                    # Peer closed mid-body; the parser reports the short body
                    break

            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]
            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _fill(self) -> bool:
        """recv() once into the buffer. False means the peer closed."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False
        if not chunk:
            return False

        self._buffer += chunk
        if len(self._buffer) > self.max_request_size and b"\r\n\r\n" not in self._buffer:
            raise RequestTooLarge(f"Request headers too large: {len(self._buffer)} bytes")
        return True

    @staticmethod
    def _content_length(header_block: bytes) -> int:
        # Framing only; the parser rejects malformed values later
        match = _CONTENT_LENGTH.search(header_block.replace(b"\r\n", b"\n"))
        return int(match.group(1)) if match else 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write a serialized response.

        Returns:
            True on success, False if the client has gone away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection. Safe to call more than once.

        Sends FIN first (shutdown SHUT_WR), drains briefly so the kernel
        does not answer unread data with RST, then releases the socket.
        """
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Closed after {self.requests_handled} requests ({self.age:.2f}s)"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

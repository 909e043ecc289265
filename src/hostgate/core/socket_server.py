"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

    socket() ─► setsockopt() ─► bind(BindAddress) ─► listen(backlog)
                                                          │
                                   ┌──────────────────────┘
                                   ▼
                        while running: accept() ─► Connection ─► callback

The accept call uses a one-second timeout so the loop notices shutdown()
promptly. SIGINT and SIGTERM trigger the same shutdown path while the
loop runs (only when started from the main thread, since Python only
delivers signals there).

Errors on an individual client never reach this loop: the callback
hands each connection to its own thread straight away. If wrapping the
socket or handing it off fails, that client is logged and closed and
the loop keeps accepting.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    TCP listener for the HTTP server.

        server = SocketServer(config)
        server.start(on_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound.

        Differs from the configured one when the port is 0 and the OS
        picked a free port.
        """
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return self.config.bind.as_tuple()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Used by tests."""
        return self._ready.wait(timeout)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        # Small text responses; don't let Nagle hold them back
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop until shutdown().

        Raises:
            OSError: The address cannot be bound (in use, no permission).
        """
        self._socket = self._create_socket()
        try:
            self._socket.bind(self.config.bind.as_tuple())
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.bind}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            # One client's setup failure drops that client, not the loop
            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                    keep_alive_timeout=self.config.keep_alive_timeout,
                    max_request_size=self.config.max_request_size,
                )
            except (OSError, ValueError) as e:
                logger.error(f"Could not set up connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            try:
                connection_handler(conn)
            except Exception:
                logger.exception(f"[{conn.id}] Failed to hand off connection")
                conn.close()

    def shutdown(self):
        """Ask the accept loop to stop. Idempotent, callable from any thread."""
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready.clear()
        logger.info("Socket server stopped")

"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together:

    ┌───────────────┐   Connection    ┌───────────────────────────────────┐
    │ SocketServer  │ ──────────────► │ connection thread (one per client)│
    │ (accept loop) │                 │                                   │
    └───────────────┘                 │  read_request()                   │
                                      │     │                             │
                                      │  RequestParser.parse()            │
                                      │     │                             │
                                      │  middleware ─► router.handle()    │
                                      │     │                             │
                                      │  send_response()                  │
                                      │     │                             │
                                      │  keep-alive? ─► loop / close      │
                                      └───────────────────────────────────┘

=============================================================================
CONCURRENCY
=============================================================================

Every accepted connection gets its own daemon thread. There is no
worker cap: the limit is whatever the OS allows. Within a connection,
requests are answered strictly in the order they were read.

The only state shared between threads is the ServerConfig and the
router, both read-only once run() starts, plus the set of live
connection threads (guarded by a lock) used for a bounded join on
shutdown.

=============================================================================
FAILURE ISOLATION
=============================================================================

    Host header problems      400 from the router, connection stays open
    Malformed HTTP framing    error response, that connection closes
    Handler exception         500 for that request
    Socket errors, anything   logged, that thread exits
    else unexpected

None of these reach the accept loop.

=============================================================================
"""

import logging
import threading
import time
from typing import Callable, Optional, Set

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, RequestTooLarge
from .http import (
    HTTPRequest, HTTPResponse, HTTPParseError, HTTPStatus,
    RequestParser, ResponseBuilder, internal_error,
)
from .middleware import Middleware, MiddlewarePipeline
from .routing import SubdomainRouter


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class HTTPServer:
    """
    Subdomain-routing HTTP/1.1 server.

    Usage:
        config = resolve_config()
        server = HTTPServer(config)
        server.use(LoggingMiddleware())
        server.run()   # blocks until SIGINT/SIGTERM or shutdown()

    Args:
        config: Resolved configuration.
        router: Router to dispatch to. Defaults to a SubdomainRouter on
                config.base_domain.
        shutdown_timeout: Total seconds to wait for open connections
                when the server stops.
    """

    def __init__(
        self,
        config: ServerConfig,
        router: Optional[SubdomainRouter] = None,
        shutdown_timeout: float = 10.0,
    ):
        self.config = config
        self.shutdown_timeout = shutdown_timeout
        self.config.validate()

        self.router = router or SubdomainRouter(config.base_domain)

        self._socket_server = SocketServer(config)
        self._parser = RequestParser(max_request_size=config.max_request_size)
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._connections: Set[threading.Thread] = set()
        self._connections_lock = threading.Lock()
        self._running = False

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware around the router. First added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def address(self):
        """Bound (host, port); useful when the configured port is 0."""
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, configure_logging: bool = True):
        """
        Serve until shutdown.

        Args:
            configure_logging: Install the root logging config. Tests and
                embedding applications pass False to keep their own.
        """
        if configure_logging:
            setup_logging(self.config.log_level)

        self._handler = self._middleware.wrap(self.router.handle)
        self._running = True

        logger.info(
            f"Starting {self.config.server_name} on {self.config.bind} "
            f"(base domain {self.config.base_domain!r})"
        )

        try:
            self._socket_server.start(self._handle_connection)
        finally:
            self._shutdown(self.shutdown_timeout)

    def shutdown(self):
        """Stop accepting connections. run() returns shortly after."""
        self._socket_server.shutdown()

    def _shutdown(self, timeout: float):
        """Wait up to `timeout` seconds in total for connection threads."""
        logger.info("Shutting down server...")
        self._running = False

        with self._connections_lock:
            pending = list(self._connections)

        deadline = time.monotonic() + timeout
        for thread in pending:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))

        still_alive = sum(1 for t in pending if t.is_alive())
        if still_alive:
            logger.warning(f"{still_alive} connection(s) still open at exit")
        logger.info("Server stopped")

    # =========================================================================
    # PER-CONNECTION WORK
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Start a dedicated thread for a freshly accepted connection."""
        thread = threading.Thread(
            target=self._run_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        with self._connections_lock:
            self._connections.add(thread)
        thread.start()

    def _run_connection(self, conn: Connection):
        try:
            self._process_connection(conn)
        finally:
            with self._connections_lock:
                self._connections.discard(threading.current_thread())

    def _process_connection(self, conn: Connection):
        """
        Keep-alive loop for one connection (runs in its own thread).

        read → parse → handle → send, repeated until the client or the
        server wants the connection closed.
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.state = ConnectionState.PROCESSING
                    response = self._respond(conn, request)

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    response.headers["Connection"] = "keep-alive" if keep_alive else "close"

                    if not conn.send_response(response.to_bytes(self.config.server_name)):
                        break
                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _respond(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return internal_error()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Send an error response that ends the connection."""
        response = (ResponseBuilder()
            .status(status)
            .text(f"{status.phrase} | {message}\n")
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))


def setup_logging(level: str = "INFO"):
    """Configure the root logger and the hostgate logger tree."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    logging.getLogger("hostgate").setLevel(numeric)


def create_app(config: ServerConfig, access_log: bool = True) -> HTTPServer:
    """
    Build a server with the standard middleware stack.

    Args:
        config: Resolved configuration.
        access_log: Add LoggingMiddleware using config.log_format.
    """
    from .middleware import LoggingMiddleware

    server = HTTPServer(config)
    if access_log:
        server.use(LoggingMiddleware(log_format=config.log_format))
    return server

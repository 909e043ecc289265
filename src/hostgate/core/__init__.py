"""
Transport layer: the listening socket and per-client connections.

    SocketServer   bind, listen, accept loop, signal-driven shutdown
    Connection     buffered request reads and response writes on one socket
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge

__all__ = ["SocketServer", "Connection", "ConnectionState", "RequestTooLarge"]

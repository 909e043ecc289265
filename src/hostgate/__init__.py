"""
=============================================================================
HOSTGATE - Subdomain Router on a From-Scratch HTTP/1.1 Server
=============================================================================

hostgate accepts HTTP/1.1 connections on one IPv4 address and decides,
from the Host header alone, which handler answers:

    Host                       response
    ──────────────────────     ──────────────────────────────────────────
    example.com                200  Default router
    www.example.com            200  Default router
    api.example.com            200  API router
    blog.example.com           404  Page not found | Invalid subdomain.
    (missing / empty / bad)    400  Bad Request | ...

(with DOMAIN_BODY=example)

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    hostgate/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m hostgate)
    ├── server.py            # HTTPServer: accept, thread per connection
    ├── config.py            # ServerConfig, environment / literal sources
    ├── core/
    │   ├── socket_server.py # TCP listener and accept loop
    │   └── connection.py    # Buffered per-client reads and writes
    ├── http/
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building
    │   └── status_codes.py  # Status enum
    ├── routing/
    │   ├── host.py          # Host header -> subdomain decision
    │   └── router.py        # Decision -> handler or 404
    ├── handlers/
    │   └── pages.py         # Default and API handlers
    └── middleware/
        ├── base.py          # Middleware pipeline
        └── logging.py       # Access logging

=============================================================================
QUICK START
=============================================================================

    from hostgate import create_app, resolve_config

    server = create_app(resolve_config())   # DOMAIN_BODY, SERVER_HOST, SERVER_PORT
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import (
    ServerConfig,
    BindAddress,
    ConfigError,
    EnvironmentConfig,
    LiteralConfig,
    resolve_config,
)
from .routing import SubdomainRouter
from .server import HTTPServer, create_app

__all__ = [
    "HTTPServer",
    "create_app",
    "ServerConfig",
    "BindAddress",
    "ConfigError",
    "EnvironmentConfig",
    "LiteralConfig",
    "resolve_config",
    "SubdomainRouter",
    "__version__",
]

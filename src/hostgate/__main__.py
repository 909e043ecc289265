"""
=============================================================================
HOSTGATE CLI ENTRY POINT
=============================================================================

    # Production: settings come from the environment (and ./.env)
    DOMAIN_BODY=example SERVER_HOST=0.0.0.0 SERVER_PORT=8080 python -m hostgate

    # Local demo: 127.0.0.1:3000, base label "localhost"
    python -m hostgate --demo
    curl -H "Host: api.localhost" http://127.0.0.1:3000/

    # Structured access logs
    python -m hostgate --log-format json

The installed console script ``hostgate`` runs the same main().

Startup order:

    1. parse arguments
    2. resolve configuration      ConfigError ─► log, exit 1 (nothing bound)
    3. build router, server, middleware
    4. run until SIGINT / SIGTERM

=============================================================================
"""

import argparse
import dataclasses
import logging
import sys

from . import __version__
from .config import (
    ConfigError, EnvironmentConfig, LiteralConfig,
    DEFAULT_ENV_FILE, LOG_FORMATS, LOG_LEVELS, resolve_config,
)
from .middleware import LoggingMiddleware
from .routing import SubdomainRouter
from .server import HTTPServer, setup_logging


logger = logging.getLogger("hostgate")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostgate",
        description="HTTP server that routes requests by subdomain",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  DOMAIN_BODY     base-domain label, e.g. "example" for example.com (required)
  SERVER_HOST     IPv4 address to bind, e.g. 0.0.0.0 (required)
  SERVER_PORT     TCP port, 0-65535 (required)

Examples:
  python -m hostgate                      # Settings from the environment and ./.env
  python -m hostgate --env-file prod.env  # Settings from a specific file
  python -m hostgate --demo               # 127.0.0.1:3000, base "localhost"
  python -m hostgate --log-format json    # JSON access logs
        """
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Ignore the environment and use built-in demo settings",
    )

    parser.add_argument(
        "--env-file",
        metavar="PATH",
        default=None,
        help="Read settings from this file (default: ./.env if present)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help="Logging level (default: SERVER_LOG_LEVEL or INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: SERVER_LOG_FORMAT or text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"hostgate {__version__}",
    )

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.demo:
        source = LiteralConfig()
    else:
        source = EnvironmentConfig(
            env_file=args.env_file or DEFAULT_ENV_FILE,
            require_env_file=args.env_file is not None,
        )

    try:
        config = resolve_config(source)
    except ConfigError as e:
        setup_logging(args.log_level or "INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1

    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_format:
        overrides["log_format"] = args.log_format
    if overrides:
        config = dataclasses.replace(config, **overrides)

    server = HTTPServer(config, SubdomainRouter(config.base_domain))
    server.use(LoggingMiddleware(log_format=config.log_format))

    try:
        server.run()
    except OSError as e:
        logger.error(f"Server failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

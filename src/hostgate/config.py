"""
=============================================================================
STARTUP CONFIGURATION
=============================================================================

Everything hostgate needs to know before it binds a socket lives here.

Three settings are REQUIRED:

    DOMAIN_BODY   The base-domain label. A request whose Host starts with
                  this label is treated as having no subdomain.
                  "example" for example.com, or "localhost" in development.
    SERVER_HOST   Dotted-decimal IPv4 address to bind (four octets).
    SERVER_PORT   Decimal TCP port, 0-65535.

The rest are optional transport and logging knobs with defaults.

Any of them may also come from a .env file in the working directory
(or the file given with --env-file). Real environment variables take
precedence over the file.

=============================================================================
TWO SOURCES, ONE RESULT
=============================================================================

    ┌──────────────────────┐        ┌──────────────────────┐
    │  EnvironmentConfig   │        │    LiteralConfig     │
    │  (production)        │        │    (local demo)      │
    │  os.environ + .env   │        │  hard-coded values   │
    └──────────┬───────────┘        └──────────┬───────────┘
               │                               │
               └───────────┬───────────────────┘
                           ▼
                  resolve_config(source)
                           │
                           ▼
                     ServerConfig  ──►  HTTPServer, SubdomainRouter

Both sources go through the same validation, so the demo cannot drift
from production behaviour.

=============================================================================
FAIL FAST
=============================================================================

Resolution happens once, before the accept loop starts. Any problem
raises a ConfigError subclass and the process exits without binding.
Nothing is retried and nothing is read lazily later on.

=============================================================================
"""

import math
import os
import re
from abc import ABC, abstractmethod
from collections import ChainMap
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from dotenv import dotenv_values


# Environment variable names
ENV_BASE_DOMAIN = "DOMAIN_BODY"
ENV_HOST = "SERVER_HOST"
ENV_PORT = "SERVER_PORT"

ENV_BACKLOG = "SERVER_BACKLOG"
ENV_TIMEOUT = "SERVER_TIMEOUT"
ENV_KEEP_ALIVE = "SERVER_KEEP_ALIVE"
ENV_KEEP_ALIVE_TIMEOUT = "SERVER_KEEP_ALIVE_TIMEOUT"
ENV_MAX_REQUEST_SIZE = "SERVER_MAX_REQUEST_SIZE"
ENV_LOG_LEVEL = "SERVER_LOG_LEVEL"
ENV_LOG_FORMAT = "SERVER_LOG_FORMAT"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

DEFAULT_ENV_FILE = ".env"

_DECIMAL = re.compile(r"[0-9]+")


# =============================================================================
# ERRORS
# =============================================================================

class ConfigError(Exception):
    """
    Base class for startup configuration failures.

    Always fatal. The CLI catches it, logs the message and exits with
    status 1 before any socket exists.

    Attributes:
        setting: Name of the offending setting (e.g. "SERVER_PORT").
    """

    def __init__(self, setting: str, message: str):
        super().__init__(f"{setting}: {message}")
        self.setting = setting


class MissingSetting(ConfigError):
    """A required setting is not present at all."""


class InvalidPort(ConfigError):
    """The port is missing, not a decimal number, or outside 0-65535."""


class InvalidHost(ConfigError):
    """The host is missing or not four dot-separated octets (0-255)."""


class InvalidSetting(ConfigError):
    """An optional setting is present but cannot be parsed."""


# =============================================================================
# BIND ADDRESS
# =============================================================================

@dataclass(frozen=True)
class BindAddress:
    """
    A validated IPv4 address plus port.

    Frozen: built once at startup and shared read-only afterwards.

        >>> BindAddress.parse("127.0.0.1", "3000")
        BindAddress(octets=(127, 0, 0, 1), port=3000)
    """

    octets: Tuple[int, int, int, int]
    port: int

    def __post_init__(self):
        if len(self.octets) != 4 or not all(0 <= o <= 255 for o in self.octets):
            raise InvalidHost(ENV_HOST, f"not an IPv4 address: {self.octets!r}")
        if not 0 <= self.port <= 65535:
            raise InvalidPort(ENV_PORT, f"out of range: {self.port}")

    @property
    def host(self) -> str:
        """Dotted-decimal form, e.g. "127.0.0.1"."""
        return ".".join(str(o) for o in self.octets)

    def as_tuple(self) -> Tuple[str, int]:
        """The (host, port) pair socket.bind() expects."""
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def parse(cls, host: Optional[str], port: Optional[str]) -> "BindAddress":
        """
        Build a BindAddress from raw setting strings.

        The port is checked before the host, matching the order the
        settings are documented in.

        Raises:
            InvalidPort: port missing or malformed.
            InvalidHost: host missing or malformed.
        """
        parsed_port = parse_port(port)
        return cls(octets=parse_ipv4(host), port=parsed_port)


def parse_port(value: Optional[str]) -> int:
    """
    Parse an unsigned 16-bit port number.

    Only ASCII digits are accepted; signs, whitespace and underscores
    that int() would tolerate are rejected.
    """
    if value is None:
        raise InvalidPort(ENV_PORT, "not set")
    if not _DECIMAL.fullmatch(value):
        raise InvalidPort(ENV_PORT, f"not a valid port number: {value!r}")
    port = int(value)
    if port > 65535:
        raise InvalidPort(ENV_PORT, f"not a valid port number: {value!r}")
    return port


def parse_ipv4(value: Optional[str]) -> Tuple[int, int, int, int]:
    """Parse dotted-decimal IPv4 text into four octets."""
    if value is None:
        raise InvalidHost(ENV_HOST, "not set")

    parts = value.split(".")
    if len(parts) != 4:
        raise InvalidHost(
            ENV_HOST,
            f"expected 4 numbers, got {len(parts)}: {value!r}",
        )

    octets = []
    for part in parts:
        if not _DECIMAL.fullmatch(part) or int(part) > 255:
            raise InvalidHost(ENV_HOST, f"not a valid IPv4 address: {value!r}")
        octets.append(int(part))
    return tuple(octets)


# =============================================================================
# SERVER CONFIG
# =============================================================================

@dataclass
class ServerConfig:
    """
    Resolved configuration for one server run.

    Constructed by a ConfigSource, validated once, then handed to
    HTTPServer and SubdomainRouter. Nothing mutates it afterwards.

    Groups:

        ROUTING     base_domain
        NETWORK     bind, backlog, buffer_size, timeout
        HTTP        keep_alive, keep_alive_timeout, max_request_size
        LOGGING     log_level, log_format
        IDENTITY    server_name
    """

    bind: BindAddress
    base_domain: str

    backlog: int = 128
    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """Read timeout for the first request on a connection. None disables it."""

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    """Idle time allowed between requests on a kept-alive connection."""

    max_request_size: int = 1024 * 1024

    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = field(default="hostgate")

    def validate(self) -> None:
        """
        Check the optional knobs.

        The required settings are already checked by BindAddress; this
        covers the rest so a bad value is reported at startup rather
        than on the first connection.
        """
        if self.backlog < 1:
            raise InvalidSetting(ENV_BACKLOG, "must be >= 1")
        if self.buffer_size < 1024:
            raise InvalidSetting("buffer_size", "must be >= 1024")
        # NaN slips past "<= 0" and socket.settimeout() rejects it later
        if self.timeout is not None and not (math.isfinite(self.timeout) and self.timeout > 0):
            raise InvalidSetting(ENV_TIMEOUT, f"must be a finite number > 0, got {self.timeout!r}")
        if not (math.isfinite(self.keep_alive_timeout) and self.keep_alive_timeout > 0):
            raise InvalidSetting(
                ENV_KEEP_ALIVE_TIMEOUT,
                f"must be a finite number > 0, got {self.keep_alive_timeout!r}",
            )
        if self.max_request_size < 1024:
            raise InvalidSetting(ENV_MAX_REQUEST_SIZE, "must be >= 1024")
        if self.log_level.upper() not in LOG_LEVELS:
            raise InvalidSetting(ENV_LOG_LEVEL, f"unknown level {self.log_level!r}")
        if self.log_format not in LOG_FORMATS:
            raise InvalidSetting(ENV_LOG_FORMAT, f"unknown format {self.log_format!r}")


# =============================================================================
# CONFIG SOURCES
# =============================================================================

class ConfigSource(ABC):
    """Something that can produce a ServerConfig."""

    @abstractmethod
    def load(self) -> ServerConfig:
        """Build the config, raising ConfigError on any bad value."""


class EnvironmentConfig(ConfigSource):
    """
    Production source: reads settings from the process environment,
    topped up from a .env file.

    Variables already in the environment win over the file, the same
    precedence as dotenv's load_dotenv(). The file is read without
    touching os.environ. A missing default .env is fine; a missing
    file that was asked for explicitly (require_env_file=True, the
    CLI's --env-file) is a MissingSetting.

    The mapping is injectable so tests never touch os.environ:

        EnvironmentConfig({"DOMAIN_BODY": "example",
                           "SERVER_HOST": "0.0.0.0",
                           "SERVER_PORT": "80"}, env_file=None).load()
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[str] = DEFAULT_ENV_FILE,
        require_env_file: bool = False,
    ):
        self.environ = os.environ if environ is None else environ
        self.env_file = env_file
        self.require_env_file = require_env_file

    def load(self) -> ServerConfig:
        settings = ChainMap(self.environ, self._read_env_file())

        # Order matters: base domain, then port, then host.
        base_domain = settings.get(ENV_BASE_DOMAIN)
        if base_domain is None:
            raise MissingSetting(ENV_BASE_DOMAIN, "base domain is not set")

        bind = BindAddress.parse(
            host=settings.get(ENV_HOST),
            port=settings.get(ENV_PORT),
        )

        return ServerConfig(
            bind=bind,
            base_domain=base_domain,
            backlog=_int(settings, ENV_BACKLOG, 128),
            timeout=_timeout(settings),
            keep_alive=_bool(settings, ENV_KEEP_ALIVE, True),
            keep_alive_timeout=_float(settings, ENV_KEEP_ALIVE_TIMEOUT, 5.0),
            max_request_size=_int(settings, ENV_MAX_REQUEST_SIZE, 1024 * 1024),
            log_level=settings.get(ENV_LOG_LEVEL, "INFO").upper(),
            log_format=settings.get(ENV_LOG_FORMAT, "text").lower(),
        )

    def _read_env_file(self) -> Dict[str, str]:
        if self.env_file is None:
            return {}
        if not os.path.isfile(self.env_file):
            if self.require_env_file:
                raise MissingSetting(self.env_file, "env file not found")
            return {}
        try:
            values = dotenv_values(self.env_file)
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidSetting(self.env_file, f"cannot read env file: {e}") from None
        # "KEY" with no "=" parses as None; treat it as unset
        return {name: value for name, value in values.items() if value is not None}


def _int(settings: Mapping[str, str], name: str, default: int) -> int:
    raw = settings.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidSetting(name, f"not an integer: {raw!r}") from None


def _float(settings: Mapping[str, str], name: str, default: float) -> float:
    raw = settings.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise InvalidSetting(name, f"not a number: {raw!r}") from None
    if not math.isfinite(value):
        raise InvalidSetting(name, f"not a finite number: {raw!r}")
    return value


def _bool(settings: Mapping[str, str], name: str, default: bool) -> bool:
    raw = settings.get(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise InvalidSetting(name, f"not a boolean: {raw!r}")


def _timeout(settings: Mapping[str, str]) -> Optional[float]:
    # 0 means "no read timeout"
    value = _float(settings, ENV_TIMEOUT, 30.0)
    return None if value == 0 else value


class LiteralConfig(ConfigSource):
    """
    Demo source with values fixed in code.

    Handy for trying the router locally:

        python -m hostgate --demo
        curl -H "Host: api.localhost" http://127.0.0.1:3000/
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 3000,
        base_domain: str = "localhost",
        **options,
    ):
        self.host = host
        self.port = port
        self.base_domain = base_domain
        self.options = options

    def load(self) -> ServerConfig:
        bind = BindAddress.parse(host=self.host, port=str(self.port))
        return ServerConfig(bind=bind, base_domain=self.base_domain, **self.options)


def resolve_config(source: Optional[ConfigSource] = None) -> ServerConfig:
    """
    Resolve and validate configuration. Call exactly once at startup.

    Args:
        source: Where to read settings from. Defaults to the environment.

    Returns:
        A validated ServerConfig.

    Raises:
        ConfigError: Any missing or malformed setting.
    """
    config = (source or EnvironmentConfig()).load()
    config.validate()
    return config

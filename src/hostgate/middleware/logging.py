"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log line per request on the "hostgate.access" logger, so access logs
can be routed or silenced separately from server diagnostics:

    logging.getLogger("hostgate.access").setLevel(logging.WARNING)

Text format (Apache-style, plus host and timing):

    10.0.0.7 - - [19/Oct/2026:12:00:00 +0000] "GET / HTTP/1.1" 404 37
        host=blog.example.com 0.21ms id=3f2a9c1e

JSON format, for log shippers:

    {"request_id": "3f2a9c1e", "method": "GET", "path": "/",
     "host": "blog.example.com", "status_code": 404, ...}

Every response also gets an X-Request-ID header carrying the same id.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("hostgate.access")


@dataclass
class RequestLog:
    """One access-log entry."""

    request_id: str
    client_ip: str
    method: str
    path: str
    version: str
    host: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" '
            f'{self.status_code} {self.content_length} '
            f'host={self.host} {self.duration_ms:.2f}ms id={self.request_id}'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Add it first so it sees every response,
    including the 400s and 404s produced by the router.

    Args:
        log_format: "text" or "json".
        include_request_id: Add an X-Request-ID response header.
        log_level: Level the access lines are emitted at.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"host={request.host or '-'} - {type(e).__name__}: {e} "
                f"({duration_ms:.2f}ms) id={request_id}"
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        entry = RequestLog(
            request_id=request_id,
            client_ip=request.client_address[0] or "-",
            method=request.method,
            path=request.path,
            version=request.version,
            host=_printable(request.host),
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        return response


def _printable(host: Optional[str]) -> str:
    # Host values can carry arbitrary bytes; keep log lines on one line
    if host is None:
        return "-"
    return host.encode("unicode_escape").decode("ascii")

"""
=============================================================================
HTTP RESPONSES
=============================================================================

Every response hostgate sends is plain text:

    HTTP/1.1 404 Not Found\r\n
    Content-Type: text/plain; charset=utf-8\r\n
    Content-Length: 37\r\n
    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n
    Server: hostgate\r\n
    Connection: keep-alive\r\n
    \r\n
    Page not found | Invalid subdomain.\n

HTTPResponse holds status, headers and body; to_bytes() fills in the
headers every response needs (Content-Length, Date, Server) and
serializes it. ResponseBuilder and the small helpers at the bottom are
the usual way to create one.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Union

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"
DEFAULT_SERVER_NAME = "hostgate"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written to a socket.

    Handlers return one of these; the connection loop adds the
    Connection header and calls to_bytes().
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8, mostly for tests and logs."""
        return self.body.decode("utf-8")

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize status line, headers and body.

        Content-Length, Date and Server are added unless the handler set
        them itself. The stored headers are left untouched.
        """
        headers = dict(self.headers)
        headers.setdefault("Content-Length", str(len(self.body)))
        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        lines.append("")

        head = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return head + self.body


class ResponseBuilder:
    """
    Fluent construction of HTTPResponse objects.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .text("Page not found | Invalid subdomain.\\n")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Plain UTF-8 text body with the matching Content-Type."""
        self._headers["Content-Type"] = TEXT_PLAIN
        return self.body(text)

    def close_connection(self) -> "ResponseBuilder":
        """Tell the client this is the last response on the connection."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an RFC 7231 HTTP-date.

    Built by hand instead of strftime so the day and month names never
    depend on the process locale.

        Mon, 19 Oct 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# SHORTCUTS
# =============================================================================

def text_response(status: HTTPStatus, text: str) -> HTTPResponse:
    """A plain-text response with the given status."""
    return ResponseBuilder().status(status).text(text).build()


def ok(text: str) -> HTTPResponse:
    return text_response(HTTPStatus.OK, text)


def internal_error(text: str = "Internal Server Error\n") -> HTTPResponse:
    # Never echo exception details to the client
    return text_response(HTTPStatus.INTERNAL_SERVER_ERROR, text)

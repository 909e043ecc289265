"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes of one HTTP/1.x request into an HTTPRequest.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   GET /docs HTTP/1.1\r\n          ◄── request line                  │
    │   Host: api.example.com\r\n       ◄── headers (name: value)         │
    │   Accept: */*\r\n                                                   │
    │   \r\n                            ◄── blank line ends the headers   │
    │   [body, Content-Length bytes]                                      │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

hostgate only routes on the Host header, so the parser is strict about
framing (request line, version, Content-Length) and lenient about
everything else: any token is accepted as a method and the path is kept
as sent.

=============================================================================
HEADER TEXT
=============================================================================

Header bytes are decoded as ISO-8859-1. Every byte maps to exactly one
character, so nothing is lost or replaced at this stage. Deciding whether
a value is acceptable text is left to whoever reads the header; the Host
parser, for instance, insists on visible ASCII.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import re

from .status_codes import HTTPStatus


HEADER_ENCODING = "iso-8859-1"


class HTTPParseError(Exception):
    """
    The request bytes are not a well-formed HTTP/1.x message.

    Carries the status the server should answer with before closing:

        400  malformed request line, header block or Content-Length
        413  request larger than the configured limit
        505  HTTP version other than 1.0 / 1.1
    """

    def __init__(self, message: str, status_code: HTTPStatus = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request, alive for one request/response cycle.

    Header names are stored lower-case (HTTP names are case-insensitive);
    values are ISO-8859-1 text with surrounding whitespace stripped.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    client_address: Tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    @property
    def host(self) -> Optional[str]:
        """Host header value, or None when the client did not send one."""
        return self.headers.get("host")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client expects the connection to stay open.

        HTTP/1.1 defaults to keep-alive unless "Connection: close";
        HTTP/1.0 defaults to close unless "Connection: keep-alive".
        """
        tokens = {
            token.strip().lower()
            for token in self.headers.get("connection", "").split(",")
        }
        if self.version == "HTTP/1.1":
            return "close" not in tokens
        return "keep-alive" in tokens


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    One parser is shared by every connection thread; it holds no
    per-request state.

        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw_bytes, ("10.0.0.5", 51234))
    """

    # RFC 7230 token: method names are not limited to the well-known ones
    REQUEST_LINE_PATTERN = re.compile(
        r"^([!#$%&'*+.^_`|~0-9A-Za-z-]+) (\S+) (HTTP/\d\.\d)$"
    )
    HEADER_PATTERN = re.compile(r"^([^:\s]+):(.*)$")
    DIGITS_PATTERN = re.compile(r"[0-9]+")
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Bytes of exactly one request (headers plus body).
            client_address: Peer (ip, port), kept for logging.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: The bytes do not form a valid request.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode(HEADER_ENCODING)
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        content_length = self._content_length(headers)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body[:content_length],
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()
        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )
        return method, target, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse "Name: value" lines.

        Repeated headers are joined with ", " (RFC 7230 section 3.2.2).
        Obsolete line folding (a line starting with whitespace) is
        rejected rather than unfolded.
        """
        headers: Dict[str, str] = {}

        for line in lines:
            if not line:
                continue
            if line[0] in (" ", "\t"):
                raise HTTPParseError("Obsolete header line folding")

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.groups()
            name = name.lower()
            value = value.strip(" \t")

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers

    def _content_length(self, headers: Dict[str, str]) -> int:
        raw = headers.get("content-length")
        if raw is None:
            return 0
        if not self.DIGITS_PATTERN.fullmatch(raw):
            raise HTTPParseError(f"Invalid Content-Length: {raw!r}")
        return int(raw)


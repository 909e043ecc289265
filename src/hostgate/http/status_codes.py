"""
HTTP status codes used by hostgate.

Only the codes the server can actually emit are listed. IntEnum keeps
them comparable with plain integers, so ``response.status == 404`` works
in tests and logs.

    2xx  the request reached a handler
    4xx  the client sent something we will not route
    5xx  something broke on our side
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """Status codes with their RFC 7231 reason phrases."""

    OK = 200

    BAD_REQUEST = 400                   # Host header missing or unusable
    NOT_FOUND = 404                     # Unknown subdomain
    REQUEST_TIMEOUT = 408               # Client connected but never finished a request
    PAYLOAD_TOO_LARGE = 413             # Over max_request_size

    INTERNAL_SERVER_ERROR = 500         # Handler raised
    HTTP_VERSION_NOT_SUPPORTED = 505    # Not HTTP/1.0 or HTTP/1.1

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 404 Not Found
                         ─────────
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}

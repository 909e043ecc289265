"""
HTTP/1.1 message handling: request parsing, response building, status codes.

    raw bytes ──► RequestParser ──► HTTPRequest
                                        │
                                  (routing, handlers)
                                        │
    raw bytes ◄── to_bytes() ◄──── HTTPResponse
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    TEXT_PLAIN,
    text_response,
    ok,
    internal_error,
)
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "TEXT_PLAIN",
    "text_response",
    "ok",
    "internal_error",
    "HTTPStatus",
]

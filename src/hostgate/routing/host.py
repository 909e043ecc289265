"""
=============================================================================
HOST PARSING
=============================================================================

Works out which subdomain a request is addressed to.

    Host header              base label "example"      decision
    ─────────────────────    ─────────────────────     ─────────
    example.com              first label == base       None
    www.example.com          "www"                     "www"
    api.example.com          "api"                     "api"
    blog.example.com         "blog"                    "blog"

Only the leftmost label is looked at. It is compared byte-for-byte with
the configured base label: no case folding, no port stripping
("localhost:3000" is a single label).

=============================================================================
FAILURES
=============================================================================

    MissingHost             no Host header at all
    InvalidHeaderEncoding   Host contains bytes outside visible ASCII
    EmptyHost               Host header present but empty

All three are HostError subclasses and all map to 400 Bad Request. They
are kept apart from a routing miss (404) so logs can tell "client sent
garbage" from "client asked for a site we don't have".

=============================================================================
"""

from typing import Optional

from ..http.request import HTTPRequest
from ..http.status_codes import HTTPStatus


class HostError(Exception):
    """
    The Host header cannot be turned into a routing decision.

    Attributes:
        status_code: Response status, always 400.
        reason: Fixed client-facing text. str(error) may carry the
                offending value and is meant for logs only.
    """

    status_code = HTTPStatus.BAD_REQUEST
    reason = "Invalid Host header"


class MissingHost(HostError):
    reason = "Missing Host header"

    def __init__(self):
        super().__init__(self.reason)


class InvalidHeaderEncoding(HostError):
    reason = "Host header is not visible ASCII"

    def __init__(self, value: str):
        super().__init__(f"{self.reason}: {value!r}")
        self.value = value


class EmptyHost(HostError):
    reason = "Host header is empty"

    def __init__(self):
        super().__init__(self.reason)


def decode_host(request: HTTPRequest) -> str:
    """
    Return the Host header as text, or raise.

    Header values arrive as ISO-8859-1 text. A usable Host value is
    visible ASCII (0x20-0x7E) plus tab; anything else (UTF-8 bytes,
    control characters) raises InvalidHeaderEncoding.
    """
    value = request.host
    if value is None:
        raise MissingHost()
    if not all(ch == "\t" or " " <= ch <= "~" for ch in value):
        raise InvalidHeaderEncoding(value)
    return value


def extract_subdomain(request: HTTPRequest, base_label: str) -> Optional[str]:
    """
    Classify a request by the leftmost label of its Host header.

    Args:
        request: The incoming request.
        base_label: Label that means "no subdomain".

    Returns:
        None when the leftmost label equals base_label, otherwise the
        leftmost label itself.

    Raises:
        MissingHost, InvalidHeaderEncoding, EmptyHost.
    """
    host = decode_host(request)
    if not host:
        raise EmptyHost()

    label = host.split(".", 1)[0]
    return None if label == base_label else label

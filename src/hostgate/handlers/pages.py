"""
Route handlers.

Each takes the request and returns a finished response. They are
placeholders: a real deployment would render the site here, or forward
api.* traffic to the API service. The signature is the only contract
the router relies on.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


DEFAULT_BODY = "Default router\n"
API_BODY = "API router\n"


def default_page(request: HTTPRequest) -> HTTPResponse:
    """Root site: the bare base domain and www."""
    return ok(DEFAULT_BODY)


def api_page(request: HTTPRequest) -> HTTPResponse:
    """api.<base domain>."""
    return ok(API_BODY)

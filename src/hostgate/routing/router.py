"""
=============================================================================
SUBDOMAIN ROUTER
=============================================================================

One classification step per request:

    ┌──────────────┐    ┌──────────────────────┐    ┌──────────────────┐
    │ HTTPRequest  │──► │ extract_subdomain()  │──► │ decision         │
    └──────────────┘    └──────────────────────┘    └────────┬─────────┘
                                                             │
              ┌──────────────────────┬───────────────────────┼─────────────┐
              ▼                      ▼                       ▼             │
       None / "www"               "api"               anything else        │
       default handler         API handler         404, inline, no handler │
                                                                           │
                       HostError (no usable Host) ─► propagates ◄──────────┘

dispatch() is the pure routing decision and lets HostError escape.
handle() is what the server calls: dispatch() plus the mapping of
HostError to a 400 response.

The router keeps no per-request state. A single instance is shared by
every connection thread.

=============================================================================
"""

import logging
from typing import Callable, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, text_response
from ..http.status_codes import HTTPStatus
from ..handlers.pages import default_page, api_page
from .host import HostError, extract_subdomain


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]

NOT_FOUND_BODY = "Page not found | Invalid subdomain.\n"

DEFAULT_SUBDOMAINS = frozenset({None, "www"})
API_SUBDOMAIN = "api"


def error_response(error: HostError) -> HTTPResponse:
    """
    Client-facing response for a Host header we could not use.

    Only the fixed reason goes back to the client, never the raw value.
    """
    return text_response(error.status_code, f"Bad Request | {error.reason}\n")


class SubdomainRouter:
    """
    Routes requests by subdomain to one of two handlers or a 404.

    Usage:
        router = SubdomainRouter(config.base_domain)
        response = router.handle(request)

    Both handlers can be swapped at construction time, e.g. to forward
    api.* to an upstream service, without touching the routing decision.
    """

    def __init__(
        self,
        base_label: str,
        default_handler: Handler = default_page,
        api_handler: Handler = api_page,
    ):
        self.base_label = base_label
        self.default_handler = default_handler
        self.api_handler = api_handler

    def __repr__(self) -> str:
        return f"<SubdomainRouter base_label={self.base_label!r}>"

    def resolve(self, subdomain: Optional[str]) -> Optional[Handler]:
        """
        Handler for a decision, or None for an unknown subdomain.

        Total over every possible decision value.
        """
        if subdomain in DEFAULT_SUBDOMAINS:
            return self.default_handler
        if subdomain == API_SUBDOMAIN:
            return self.api_handler
        return None

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route one request.

        Raises:
            HostError: The Host header is missing, empty or not ASCII.
        """
        subdomain = extract_subdomain(request, self.base_label)
        handler = self.resolve(subdomain)

        if handler is None:
            logger.debug(f"No route for subdomain {subdomain!r}")
            return text_response(HTTPStatus.NOT_FOUND, NOT_FOUND_BODY)

        return handler(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """dispatch(), with HostError turned into a 400 response."""
        try:
            return self.dispatch(request)
        except HostError as e:
            logger.info(f"Rejected request from {request.client_address[0]}: {e}")
            return error_response(e)

"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wraps the router with cross-cutting behaviour (today: access
logging) without the router knowing about it.

    handler = pipeline.wrap(router.handle)

    ┌─────────────────────────────────────────────┐
    │  first middleware added (outermost)         │
    │  ┌───────────────────────────────────────┐  │
    │  │  ...                                  │  │
    │  │  ┌─────────────────────────────────┐  │  │
    │  │  │  router.handle                  │  │  │
    │  │  └─────────────────────────────────┘  │  │
    │  └───────────────────────────────────────┘  │
    └─────────────────────────────────────────────┘

Requests flow inward in the order middleware was added; responses flow
back out in reverse.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

# The next middleware, or the router at the end of the chain
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

    Subclasses implement __call__ and must either call next(request) or
    return a response of their own:

        class ServerTiming(Middleware):
            def __call__(self, request, next):
                start = time.perf_counter()
                response = next(request)
                elapsed = (time.perf_counter() - start) * 1000
                response.headers["Server-Timing"] = f"app;dur={elapsed:.1f}"
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Process one request."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered list of middleware that can wrap a final handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware. The first one added is the outermost."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the handler chain.

        Wrapping goes in reverse so that for [A, B] the result is
        A(B(handler)).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped


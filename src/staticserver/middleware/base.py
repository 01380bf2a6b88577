"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Cross-cutting concerns (access logging, CORS) wrap the static handler
without the handler knowing about them. Each middleware receives the
request and a `next` callable; it may answer on its own (short-circuit)
or call next() and adjust the response on the way out.

    pipeline.add(LoggingMiddleware())     # outermost: sees every request
    pipeline.add(CORSMiddleware(...))     # may answer OPTIONS itself
    handler = pipeline.wrap(static_handler)

        request ──► Logging ──► CORS ──► StaticFileHandler
                                  │            │
        response ◄── Logging ◄── CORS ◄────────┘
                                  │
                      OPTIONS ────┘ 204, never reaches the handler

=============================================================================
DESIGN PATTERN: CHAIN OF RESPONSIBILITY
=============================================================================

Each link either handles the request or passes it along. Wrapping is
done once at startup: wrap() folds the list into nested closures, so a
request costs one function call per middleware and no list walking.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

# The next link in the chain: request in, response plan out.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class AddHeader(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Served-By", "edge-1")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Process the request, calling next(request) unless short-circuiting."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware list; first added is outermost."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Fold the middleware around `handler`.

        [A, B, C] + handler  →  A(B(C(handler)))

        Wrapping runs in reverse so the first-added middleware is the
        outermost closure.
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

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)

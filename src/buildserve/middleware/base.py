"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the async middleware protocol and the pipeline that chains
middleware around a final handler (Chain of Responsibility).

=============================================================================
ASYNC CHAIN
=============================================================================

Each middleware is a coroutine that receives the request plus ``next``,
the rest of the chain. It can answer directly (short-circuit) or await
``next(request)`` to let something further down try:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   LoggingMiddleware ──► BuildOutputMiddleware ──► final handler      │
    │                               │                    (404)             │
    │                               │                                      │
    │                 answers 200/301/304/400/500 itself,                  │
    │                 or awaits next(request) when the path                │
    │                 does not exist in the build output                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Being coroutines, middleware may suspend (the build output handler waits
for the current build to settle) without tying up the event loop; other
connections keep being served meanwhile.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware or final handler: request in, awaitable response out.
NextHandler = Callable[[HTTPRequest], Awaitable[HTTPResponse]]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    =========================================================================
    THE MIDDLEWARE CONTRACT
    =========================================================================

        class MyMiddleware(Middleware):
            async def __call__(self, request, next):
                if not acceptable(request):
                    return bad_request()          # short-circuit

                response = await next(request)    # continue the chain
                response.headers["X-Seen"] = "1"
                return response

    =========================================================================
    """

    @abstractmethod
    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request, optionally delegating to ``next``.

        Args:
            request: The incoming HTTP request
            next: The rest of the chain

        Returns:
            HTTP response (from next() or produced here)
        """

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

    First added is outermost:

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        pipeline.add(BuildOutputMiddleware(watcher))

        handler = pipeline.wrap(fallback)
        response = await handler(request)

        Logging → BuildOutput → fallback
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware (innermost so far). Returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a final handler with all middleware in the pipeline.

        Given [MW1, MW2] and handler, wrapping in reverse order yields
        MW1 → MW2 → handler.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        # Closure binding this middleware to the rest of the chain
        async def wrapped(request: HTTPRequest) -> HTTPResponse:
            return await middleware(request, next_handler)

        return wrapped


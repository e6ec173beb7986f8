"""
=============================================================================
MIDDLEWARE
=============================================================================

Async middleware protocol, the pipeline that chains it, and the access
logger. The build output handler itself lives in ``buildserve.handlers``
but implements the same Middleware interface.

    from buildserve.middleware import MiddlewarePipeline, LoggingMiddleware
    from buildserve.handlers import BuildOutputMiddleware

    pipeline = MiddlewarePipeline()
    pipeline.add(LoggingMiddleware())
    pipeline.add(BuildOutputMiddleware(watcher))
    handler = pipeline.wrap(fallback)

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]

"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One line per request on the ``buildserve.access`` logger.

    TEXT (default):
        127.0.0.1 - - [17/Oct/2026:10:04:12 +0000] "GET /app.js?v=2" 304 - 1.84ms

    JSON:
        {"id": "3f9c2a1b", "client": "127.0.0.1", "method": "GET", ...}

The size column is the Content-Length actually announced ("-" for none),
so a 304 or HEAD reads differently from a zero-byte file.

Duration includes time spent waiting for the current build to settle,
so a slow line right after saving a source file usually means the
request was parked behind a rebuild, not that the disk was slow.

Server errors (every page while a build is failing) are logged one
level higher than the rest so they stand out in a quiet terminal.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, asdict
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("buildserve.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    id: str
    client: str
    method: str
    target: str
    status: int
    size: Optional[int]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        size = "-" if self.size is None else self.size
        return (
            f'{self.client} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status} {size} '
            f'{self.duration_ms:.2f}ms'
        )


def _announced_size(response: HTTPResponse) -> Optional[int]:
    if "Content-Length" in response.headers:
        return int(response.headers["Content-Length"])
    return len(response.body) if response.body else None


class LoggingMiddleware(Middleware):
    """
    Access log middleware. Add it FIRST so that requests answered by any
    later middleware are logged too.

    Usage:
        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            include_request_id: Echo the log line's id in X-Request-ID.
            log_level: Level for ordinary lines; 5xx lines go one level up.
            skip_paths: Paths answered without a log line (a live-reload
                        endpoint polled every second, say).
        """
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = frozenset(skip_paths or ())

    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = await next(request)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.target} raised "
                f"{type(e).__name__}: {e} after {elapsed:.2f}ms"
            )
            raise

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            id=request_id,
            client=request.client_address[0] or "-",
            method=request.method,
            target=request.target,
            status=int(response.status),
            size=_announced_size(response),
            duration_ms=(time.perf_counter() - started) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = self.log_level
        if entry.status >= 500:
            level = min(level + 10, logging.CRITICAL)

        message = json.dumps(entry.to_dict()) if self.log_format == "json" else entry.to_text()
        logger.log(level, message)

        return response

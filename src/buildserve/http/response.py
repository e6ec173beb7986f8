"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

=============================================================================
RESPONSES THE BUILD OUTPUT HANDLER PRODUCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │  FILE            200  Last-Modified, Cache-Control, Content-Length, │
    │                       Content-Type, body = file bytes               │
    │                                                                      │
    │  NOT MODIFIED    304  Last-Modified, no body                        │
    │                                                                      │
    │  LISTING         200  Cache-Control, text/html body                 │
    │                                                                      │
    │  REDIRECT        301  Location, Cache-Control                       │
    │                                                                      │
    │  UNSAFE PATH     400  no body at all                                │
    │                                                                      │
    │  BUILD FAILED    500  Content-Type: text/html, error page body      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every cacheable response uses the same Cache-Control value:

    Cache-Control: private, max-age=0, must-revalidate
                   ───┬─── ────┬───── ───────┬───────
                      │        │             │
           not for shared   stale at    must ask the server
               caches       once        (If-Modified-Since)

The output tree is rewritten on every rebuild, so the browser may keep a
copy but must revalidate it on every use.

=============================================================================
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from .status_codes import HTTPStatus


# Always revalidate: output changes underfoot on every build
NO_CACHE = "private, max-age=0, must-revalidate"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready for serialization.

        Handler returns          to_bytes()              Transport
        HTTPResponse    ─────►   serializes    ─────►    writes
                                                         raw bytes
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 304 Not Modified"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self, server_name: str = "buildserve") -> bytes:
        """
        Serialize the response to bytes.

        Content-Length, Date and Server are added when missing. A handler
        that already set Content-Length (from a stat) keeps its value.
        204 and 304 responses never carry one.
        """
        response_headers = dict(self.headers)
        bodiless = self.status in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)

        if "Content-Length" not in response_headers and not bodiless:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Last-Modified", last_modified)
            .no_cache()
            .body(content)
            .build())

    Each method returns ``self`` except build().
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    # =========================================================================
    # STATUS / HEADERS
    # =========================================================================

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a raw body (strings are encoded as UTF-8)."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def html(self, html: str, content_type: str = "text/html; charset=utf-8") -> "ResponseBuilder":
        """
        Set an HTML body along with its Content-Type.

        Lone surrogates (undecodable file names) are encoded as "?".
        """
        self._body = html.encode("utf-8", errors="replace")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    # =========================================================================
    # REDIRECTS / CACHING / CONNECTION
    # =========================================================================

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """
        301 Moved Permanently when ``permanent``, 302 Found otherwise.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def no_cache(self) -> "ResponseBuilder":
        """
        Cache-Control: private, max-age=0, must-revalidate

        The browser may store the response but has to revalidate it on
        every use, so a rebuild is never masked by a stale copy.
        """
        self._headers["Cache-Control"] = NO_CACHE
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 15 Jan 2026 12:30:45 GMT

    Sub-second precision is dropped, so two mtimes within the same second
    format identically. Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def not_found(message: str = "Not Found") -> HTTPResponse:
    """404 with a small JSON error body. End of the handler chain."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": message}).build()


def bad_request(message: Optional[str] = None) -> HTTPResponse:
    """
    400 Bad Request.

    Without a message the body is empty; the build output handler rejects
    unsafe paths this way so nothing about the filesystem leaks.
    """
    builder = ResponseBuilder().status(HTTPStatus.BAD_REQUEST)
    if message is not None:
        builder.json({"error": message})
    return builder.build()


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return (ResponseBuilder()
        .status(HTTPStatus.INTERNAL_SERVER_ERROR)
        .json({"error": message})
        .build())


def error_response(status: int, message: str) -> HTTPResponse:
    """JSON error response that also asks the client to close the connection."""
    return (ResponseBuilder()
        .status(HTTPStatus(status))
        .json({"error": message})
        .close_connection()
        .build())

"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of RFC 7231 status codes this server actually emits.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 STATUS CODES USED BY BUILDSERVE                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   200 OK                   File bytes or a directory listing        │
    │   301 Moved Permanently    Directory URL missing its trailing /     │
    │   304 Not Modified         If-Modified-Since matched Last-Modified  │
    │   400 Bad Request          Unsafe or undecodable request path       │
    │   404 Not Found            Nothing in the pipeline matched          │
    │   500 Internal Error       The build failed (diagnostic page)       │
    │                                                                      │
    │   The rest (405, 408, 413, 505) are only produced by the request    │
    │   parser and connection loop of the bundled dev server.             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with reason phrases.

    Being an IntEnum, members compare equal to plain integers:

        >>> HTTPStatus.NOT_MODIFIED == 304
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    # 2xx SUCCESS
    OK = 200
    NO_CONTENT = 204

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301     # Directory → directory/
    FOUND = 302
    NOT_MODIFIED = 304          # Cached copy is still valid

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400           # Null byte, root escape, bad percent-encoding
    FORBIDDEN = 403
    NOT_FOUND = 404             # End of the handler chain
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500  # Build failure page / handler crash
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line (``HTTP/1.1 200 OK``)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}

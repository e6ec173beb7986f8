"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects.

=============================================================================
WHY THE TARGET STAYS RAW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST LINE → HTTPRequest                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /docs/My%20File.txt?v=2 HTTP/1.1                              │
    │    ─┬─ ───────────┬─────────── ────┬───                              │
    │     │             │                │                                 │
    │   method       target           version                              │
    │                   │                                                  │
    │        kept exactly as received (percent-encoded)                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The build output handler decides for itself how to decode the path and
what counts as unsafe (null bytes, escaping the output root). It also
needs the original target to echo it into directory listings and to
build trailing-slash redirects that preserve the query string. So the
parser does NOT decode or reject ".." here; it only splits and validates
the request line and headers.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from urllib.parse import urlsplit


class HTTPParseError(Exception):
    """
    Raised when an HTTP request cannot be parsed.

    Carries the status code the connection loop should answer with.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         GET, HEAD, POST, ... (never inspected by the
                        build output handler)

        target:         Request-target exactly as sent, e.g.
                        "/docs/a%20b/?x=1"

        version:        "HTTP/1.1" or "HTTP/1.0"

        headers:        Header dict with LOWERCASE names

        body:           Raw body bytes (Content-Length bounded)

        client_address: (ip, port) of the peer, for access logs

    =========================================================================
    """

    method: str
    target: str = "/"
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def path(self) -> str:
        """The path component of the target, still percent-encoded."""
        return split_target(self.target)[0]

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if this connection should be kept alive.

        HTTP/1.1 keeps alive unless "Connection: close" is sent.
        HTTP/1.0 closes unless "Connection: keep-alive" is sent.
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a header value (case-insensitive lookup).

        Example:
            request.get_header("If-Modified-Since")
        """
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSING ALGORITHM
    ==========================================================================

        1. Reject oversized input (413)
        2. Split headers from body at \\r\\n\\r\\n
        3. Parse the request line (method, target, version)
        4. Parse header lines into a lowercase dict
        5. Trim the body to Content-Length

    ==========================================================================
    """

    VALID_METHODS = {
        "GET",
        "HEAD",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "OPTIONS",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        # ─────────────────────────────────────────────────────────────────
        # SIZE LIMIT
        # ─────────────────────────────────────────────────────────────────
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        # ─────────────────────────────────────────────────────────────────
        # HEADER / BODY SPLIT
        # ─────────────────────────────────────────────────────────────────
        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        if not lines or not lines[0]:
            raise HTTPParseError("Empty request")

        method, target, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # ─────────────────────────────────────────────────────────────────
        # BODY
        # ─────────────────────────────────────────────────────────────────
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            target=target,
            version=version,
            headers=headers,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Parse "METHOD SP REQUEST-TARGET SP HTTP-VERSION".

        Raises:
            HTTPParseError: 400 for a malformed line, 405 for an unknown
                method, 505 for anything other than HTTP/1.0 or HTTP/1.1.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        # Origin-form only; absolute-form targets are reduced to path+query
        if not target.startswith("/"):
            parts = urlsplit(target)
            if not parts.scheme:
                raise HTTPParseError(f"Invalid request target: {target}")
            target = parts.path or "/"
            if parts.query:
                target += "?" + parts.query

        return method, target, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict keyed by lowercase name.

        Repeated headers are joined with ", " (RFC 7230 §3.2.2).
        Obsolete line folding continues the previous header.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed header lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def split_target(target: str) -> Tuple[str, Optional[str]]:
    """
    Split a request-target into (path, query).

    Done by hand rather than with urlsplit() so that a target such as
    "//example.com/x" stays a path instead of becoming a network location.
    ``query`` is None when the target has no "?" at all.
    """
    target = target.split("#", 1)[0]
    path, sep, query = target.partition("?")
    return path or "/", (query if sep else None)

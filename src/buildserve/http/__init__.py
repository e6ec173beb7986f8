"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Request parsing, response building, status codes and MIME lookup.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │   raw bytes → HTTPRequest, target kept percent-encoded              │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE BUILDER (response.py)                                      │
    │   HTTPResponse, ResponseBuilder, format_http_date, NO_CACHE         │
    ├─────────────────────────────────────────────────────────────────────┤
    │ STATUS CODES (status_codes.py)                                      │
    │   HTTPStatus IntEnum with reason phrases                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │ MIME TYPES (mime_types.py)                                          │
    │   extension → type, type → charset                                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, split_target
from .response import (
    HTTPResponse,
    ResponseBuilder,
    NO_CACHE,
    format_http_date,
    not_found,
    bad_request,
    internal_error,
    error_response,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_charset, get_content_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "split_target",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "NO_CACHE",
    "format_http_date",
    "not_found",
    "bad_request",
    "internal_error",
    "error_response",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "get_charset",
    "get_content_type",
]

"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to MIME types, and MIME types to the charset that
should be advertised alongside them in the Content-Type header.

    ┌────────────────────────────────────────────────────────────────────┐
    │                 CONTENT-TYPE = TYPE [+ CHARSET]                     │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   app.js      → application/javascript; charset=UTF-8               │
    │   index.html  → text/html; charset=UTF-8                            │
    │   data.json   → application/json; charset=UTF-8                     │
    │   logo.png    → image/png                 (binary: no charset)      │
    │   blob.xyz    → application/octet-stream  (unknown: default)        │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

Build pipelines emit mostly text assets (JS bundles, CSS, source maps,
HTML), so the charset rule matters as much as the type table itself:
everything under text/ plus JavaScript and JSON is declared UTF-8.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions including the dot.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT / SCRIPT TYPES
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".json": "application/json",
    ".map": "application/json",    # Source maps
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".hbs": "text/x-handlebars-template",

    # -------------------------------------------------------------------------
    # IMAGE TYPES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # -------------------------------------------------------------------------
    # FONT TYPES
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",

    # -------------------------------------------------------------------------
    # MEDIA TYPES
    # -------------------------------------------------------------------------
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # -------------------------------------------------------------------------
    # DATA / ARCHIVE TYPES
    # -------------------------------------------------------------------------
    ".wasm": "application/wasm",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# Non text/* types that are still text on the wire
_UTF8_APPLICATION_TYPES = {
    "application/javascript",
    "application/json",
}


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("/out/assets/app.js")
        'application/javascript'

        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def get_charset(mime_type: str) -> Optional[str]:
    """
    Get the charset associated with a MIME type, or None for binary types.

    Examples:
        >>> get_charset("text/css")
        'UTF-8'

        >>> get_charset("image/png") is None
        True
    """
    if mime_type.startswith("text/") or mime_type in _UTF8_APPLICATION_TYPES:
        return "UTF-8"
    return None


def get_content_type(path: Union[str, Path]) -> str:
    """
    Get the full Content-Type header value for a file.

    Examples:
        >>> get_content_type("app.js")
        'application/javascript; charset=UTF-8'

        >>> get_content_type("image.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    charset = get_charset(mime_type)
    if charset:
        return f"{mime_type}; charset={charset}"
    return mime_type

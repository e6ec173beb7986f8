"""
=============================================================================
PAGE TEMPLATES
=============================================================================

The two HTML pages the build output handler renders itself. Each is a
plain ``render(context) -> str`` callable, so a project can inject its
own renderer with the same context shape.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ERROR PAGE  render_error_page(context)                              │
    │                                                                      │
    │   context = {                                                        │
    │       "stack": "Traceback ...",       trace of the failed build      │
    │       "live_reload_path": "/lr.js",   or None                        │
    │       "payload": {...},               opaque builder diagnostics     │
    │   }                                                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │ DIRECTORY LISTING  render_directory_listing(context)                │
    │                                                                      │
    │   context = {                                                        │
    │       "url": "/docs/",                                               │
    │       "files": [{"href": "a/", "type": "dir"},                       │
    │                 {"href": "b.txt", "type": "txt"}],                   │
    │       "live_reload_path": None,                                      │
    │   }                                                                  │
    └─────────────────────────────────────────────────────────────────────┘

Every interpolated value is HTML-escaped: file names and build output
come from the filesystem and from compilers, not from us.

=============================================================================
"""

import json
from html import escape
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote


Template = Callable[[Dict[str, Any]], str]


_STYLE = """
    body { font-family: monospace; padding: 20px; }
    h1 { border-bottom: 1px solid #ccc; padding-bottom: 10px; }
    ul { list-style: none; padding: 0; }
    li { padding: 3px 0; }
    a { text-decoration: none; color: #0066cc; }
    a:hover { text-decoration: underline; }
    .type { color: #888; display: inline-block; width: 4em; }
    pre { background: #f6f6f6; padding: 12px; overflow-x: auto; }
    .error h1 { color: #b00020; }
"""


def _display_name(name: str) -> str:
    """A file name as text, with undecodable bytes shown as U+FFFD."""
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def _live_reload_tag(live_reload_path: Optional[str]) -> str:
    if not live_reload_path:
        return ""
    return f'<script src="{escape(live_reload_path)}"></script>'


def _format_payload(payload: Any) -> str:
    """Pretty JSON when the payload allows it, repr() otherwise."""
    try:
        return json.dumps(payload, indent=2, sort_keys=True)
    except (TypeError, ValueError):
        return repr(payload)


def render_error_page(context: Dict[str, Any]) -> str:
    """Render the "build failed" page."""
    stack = context.get("stack") or ""
    payload = context.get("payload")

    payload_section = ""
    if payload is not None:
        payload_section = (
            "<h2>Details</h2>\n"
            f"<pre>{escape(_format_payload(payload))}</pre>\n"
        )

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Build Error</title>
<style>{_STYLE}</style>
</head>
<body class="error">
<h1>Build Error</h1>
<pre>{escape(stack)}</pre>
{payload_section}{_live_reload_tag(context.get("live_reload_path"))}
</body>
</html>
"""


def render_directory_listing(context: Dict[str, Any]) -> str:
    """Render an auto-index page for a directory without index.html."""
    url = context.get("url") or "/"

    entries = []
    for entry in context.get("files", []):
        # Names that aren't valid UTF-8 arrive surrogate-escaped from os.listdir
        name = entry["href"]
        href = quote(name.encode("utf-8", "surrogateescape"))
        entries.append(
            f'<li><span class="type">{escape(_display_name(entry["type"]))}</span>'
            f'<a href="{escape(href)}">{escape(_display_name(name))}</a></li>'
        )

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Index of {escape(url)}</title>
<style>{_STYLE}</style>
</head>
<body>
<h1>Index of {escape(url)}</h1>
<ul>
{chr(10).join(entries)}
</ul>
{_live_reload_tag(context.get("live_reload_path"))}
</body>
</html>
"""

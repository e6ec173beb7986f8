"""
=============================================================================
HANDLERS MODULE
=============================================================================

Request handlers that produce responses on their own rather than only
decorating the ones further down the chain.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ BuildOutputMiddleware (build_output.py)                             │
    │   Waits for the current build, then serves files, index.html,       │
    │   directory listings or the build error page from its output.       │
    │   Anything it doesn't own goes to next(request).                    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .build_output import BuildOutputMiddleware, serve_build_output

__all__ = [
    "BuildOutputMiddleware",
    "serve_build_output",
]

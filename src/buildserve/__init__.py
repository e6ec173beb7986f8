"""
=============================================================================
BUILDSERVE - Serve a Build Pipeline's Output While You Edit
=============================================================================

A development server for generated sites. Every request waits for the
current build to finish before it touches the output directory, so the
browser never sees a half-written tree, and a failed build shows its
error in the browser instead of the last good output.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    buildserve/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m buildserve)
    ├── server.py            # DevServer (asyncio streams)
    ├── config.py            # ServeOptions, ServerConfig
    ├── build.py             # Watcher, Builder, BuildError
    ├── builders.py          # StaticBuilder, CommandBuilder
    ├── watch.py             # Source tree polling
    ├── templates.py         # Error page and directory listing
    ├── http/                # HTTP protocol components
    │   ├── request.py       # HTTP request parsing
    │   ├── response.py      # HTTP response building
    │   ├── status_codes.py  # HTTP status enums
    │   └── mime_types.py    # MIME type detection
    ├── middleware/          # Middleware components
    │   ├── base.py          # Middleware, MiddlewarePipeline
    │   └── logging.py       # Access logging
    └── handlers/
        └── build_output.py  # The build output handler

=============================================================================
QUICK START
=============================================================================

    from buildserve import DevServer, ServerConfig, Watcher, CommandBuilder

    watcher = Watcher(CommandBuilder("npm run build", "dist"))
    DevServer(watcher, ServerConfig(port=4200), source_paths=["src"]).run()

Or from the shell:

    python -m buildserve dist --build-cmd "npm run build" --watch src

=============================================================================
"""

from .build import Builder, BuildError, BuildNotStartedError, Watcher
from .builders import CommandBuilder, StaticBuilder
from .config import ServeOptions, ServerConfig
from .handlers import BuildOutputMiddleware, serve_build_output
from .server import DevServer

__version__ = "1.0.0"

__all__ = [
    "Builder",
    "BuildError",
    "BuildNotStartedError",
    "Watcher",
    "CommandBuilder",
    "StaticBuilder",
    "ServeOptions",
    "ServerConfig",
    "BuildOutputMiddleware",
    "serve_build_output",
    "DevServer",
    "__version__",
]

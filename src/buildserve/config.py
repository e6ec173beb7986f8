"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses, one per layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ServeOptions    how the build output handler behaves               │
    │                   - auto_index        (directory listings on/off)    │
    │                   - live_reload_path  (script URL for the pages)     │
    │                                                                      │
    │   ServerConfig    how the bundled dev server runs                    │
    │                   - host, port, keep-alive, request size limit       │
    │                   - source polling interval                          │
    │                   - logging level and format                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Priority (highest to lowest): command-line arguments, environment
variables (``from_env()``), dataclass defaults.

    BUILDSERVE_HOST=0.0.0.0 BUILDSERVE_AUTO_INDEX=0 python -m buildserve dist

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


@dataclass
class ServeOptions:
    """
    Options recognised by the build output handler.

    auto_index:
        Render a listing for directories that have no index.html.
        When False such directories are passed on to the next handler.

    live_reload_path:
        URL of a live-reload client script. Injected into both the
        directory listing and the build error page so the browser
        refreshes itself once the next build lands.
    """

    auto_index: bool = True
    live_reload_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServeOptions":
        """
        BUILDSERVE_AUTO_INDEX        "0"/"false"/"no"/"off" disables listings
        BUILDSERVE_LIVE_RELOAD_PATH  live-reload script URL
        """
        return cls(
            auto_index=_env_flag("BUILDSERVE_AUTO_INDEX", True),
            live_reload_path=os.getenv("BUILDSERVE_LIVE_RELOAD_PATH") or None,
        )


@dataclass
class ServerConfig:
    """
    Configuration for the bundled development server.

    =========================================================================
    DEVELOPMENT ONLY
    =========================================================================

    The defaults bind to localhost. The server exists to preview a build
    output directory while editing sources; it has not been hardened for
    anything else.

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 4200

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024
    """Requests to a static preview server are tiny; 1 MB is plenty."""

    # ─────────────────────────────────────────────────────────────────────
    # WATCHING
    # ─────────────────────────────────────────────────────────────────────

    poll_interval: float = 0.5
    """Seconds between source tree scans when --watch is used."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = "buildserve"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        BUILDSERVE_HOST           bind address (default: 127.0.0.1)
        BUILDSERVE_PORT           port (default: 4200)
        BUILDSERVE_POLL_INTERVAL  source polling interval in seconds
        BUILDSERVE_LOG_LEVEL      DEBUG / INFO / WARNING / ERROR
        """
        return cls(
            host=os.getenv("BUILDSERVE_HOST", "127.0.0.1"),
            port=int(os.getenv("BUILDSERVE_PORT", "4200")),
            poll_interval=float(os.getenv("BUILDSERVE_POLL_INTERVAL", "0.5")),
            log_level=os.getenv("BUILDSERVE_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Fail fast on values that can never work."""
        # Port 0 asks the OS for an ephemeral port (used by tests)
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format!r}")

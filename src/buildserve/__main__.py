"""
=============================================================================
BUILDSERVE CLI ENTRY POINT
=============================================================================

    # Serve an existing directory (no build step)
    python -m buildserve ./dist

    # Run a build, serve its output, rebuild when src/ changes
    python -m buildserve ./dist --build-cmd "npm run build" --watch src

    # Directories without index.html fall through to 404
    python -m buildserve ./_site --build-cmd "make site" --no-auto-index

Environment variables (BUILDSERVE_HOST, BUILDSERVE_PORT, ...) provide the
defaults; command-line arguments override them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .build import Watcher
from .builders import CommandBuilder, StaticBuilder
from .config import ServeOptions, ServerConfig
from .server import DevServer


def build_parser(env_config: ServerConfig, env_options: ServeOptions) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildserve",
        description="Serve a build pipeline's output directory for local development",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m buildserve dist                                  # Serve as-is
  python -m buildserve dist --build-cmd "npm run build"      # Build first
  python -m buildserve dist --build-cmd "make" --watch src   # Rebuild on change
        """
    )

    parser.add_argument(
        "output_dir",
        help="Directory the build writes to (and that gets served)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # BUILD ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--build-cmd", "-b",
        default=None,
        help="Shell command that (re)builds OUTPUT_DIR"
    )

    parser.add_argument(
        "--watch", "-w",
        action="append",
        default=[],
        metavar="DIR",
        help="Source directory to poll for changes (repeatable)"
    )

    parser.add_argument(
        "--poll-interval",
        type=float,
        default=env_config.poll_interval,
        help=f"Seconds between source scans (default: {env_config.poll_interval})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=env_config.host,
        help=f"Host to bind to (default: {env_config.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=env_config.port,
        help=f"Port to listen on (default: {env_config.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # HANDLER ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--no-auto-index",
        dest="auto_index",
        action="store_false",
        default=env_options.auto_index,
        help="Don't list directories that have no index.html"
    )

    parser.add_argument(
        "--live-reload-path",
        default=env_options.live_reload_path,
        metavar="URL",
        help="Live-reload script to inject into generated pages"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=env_config.log_level.upper(),
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=env_config.log_format,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"buildserve {__version__}"
    )

    return parser


def create_server(args: argparse.Namespace) -> DevServer:
    """Translate parsed arguments into a ready-to-run DevServer."""
    if args.build_cmd:
        builder = CommandBuilder(args.build_cmd, args.output_dir)
    else:
        builder = StaticBuilder(args.output_dir)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        poll_interval=args.poll_interval,
        log_level=args.log_level,
        log_format=args.log_format,
    )
    options = ServeOptions(
        auto_index=args.auto_index,
        live_reload_path=args.live_reload_path,
    )

    return DevServer(Watcher(builder), config, options, source_paths=args.watch)


def main(argv=None):
    parser = build_parser(ServerConfig.from_env(), ServeOptions.from_env())
    args = parser.parse_args(argv)

    try:
        server = create_server(args)
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

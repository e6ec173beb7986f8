"""
=============================================================================
DEVELOPMENT SERVER
=============================================================================

Ties a Watcher, the build output handler and an asyncio socket server
together into something you can point a browser at.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          DevServer                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SourceWatcher ──change──► Watcher.rebuild() ──► current_build      │
    │   (polling, optional)                                 │              │
    │                                                       │ awaited by   │
    │                                                       ▼              │
    │   asyncio.start_server                                               │
    │        │                                                             │
    │        ▼                                                             │
    │   _handle_connection  (one coroutine per TCP connection)             │
    │        │                                                             │
    │        ▼                                                             │
    │   LoggingMiddleware → BuildOutputMiddleware → [use()...] → 404       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY ASYNCIO AND NOT A THREAD POOL?
=============================================================================

Every request waits for the current build before it is answered. With a
fixed pool of worker threads, a slow build parks every worker and new
connections queue up behind it. A coroutine waiting on a future costs
nothing, so the server keeps accepting and answering (with the error
page, or with other middleware) however long the build takes.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. READ      headers up to CRLFCRLF, then Content-Length body bytes
    2. PARSE     RequestParser → HTTPRequest (or 4xx + close)
    3. DISPATCH  middleware chain; an escaping exception becomes a 500
    4. HEADERS   Connection / Keep-Alive
    5. SEND      HEAD responses go out without their body
    6. REPEAT    while the client keeps the connection alive

=============================================================================
"""

import asyncio
import logging
import re
from typing import Iterable, Optional, Tuple

from .build import Watcher
from .config import ServeOptions, ServerConfig
from .handlers import BuildOutputMiddleware
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus,
    not_found, internal_error, error_response,
)
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware
from .watch import SourceWatcher


logger = logging.getLogger(__name__)


_CONTENT_LENGTH = re.compile(rb"\r\ncontent-length:[ \t]*(\d+)", re.IGNORECASE)


class DevServer:
    """
    Development HTTP server for a build output directory.

    Usage:
        watcher = Watcher(CommandBuilder("npm run build", "dist"))
        server = DevServer(watcher, ServerConfig(port=4200), source_paths=["src"])
        server.run()                  # blocks until Ctrl+C

    Or, inside a running event loop:
        await server.start()
        ...
        await server.close()
    """

    def __init__(
        self,
        watcher: Watcher,
        config: Optional[ServerConfig] = None,
        options: Optional[ServeOptions] = None,
        source_paths: Optional[Iterable[str]] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.watcher = watcher
        self.options = options or ServeOptions()

        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))
        self._middleware.add(BuildOutputMiddleware(watcher, self.options))

        self._source_watcher: Optional[SourceWatcher] = None
        if source_paths:
            self._source_watcher = SourceWatcher(
                watcher, source_paths, interval=self.config.poll_interval
            )

        self._handler = None
        self._server: Optional[asyncio.AbstractServer] = None
        self._connections: set = set()

    def use(self, middleware: Middleware) -> "DevServer":
        """
        Add middleware after the build output handler.

        It sees only requests the build output handler passed on: paths
        missing from the output, and directories when auto_index is off.
        """
        self._middleware.add(middleware)
        return self

    @property
    def port(self) -> int:
        """The bound port (differs from config.port when that is 0)."""
        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self.config.port

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start the initial build, the source watcher and the listener."""
        self._handler = self._middleware.wrap(self._fallback)

        if self.watcher.current_build is None:
            self.watcher.start()

        if self._source_watcher is not None:
            self._source_watcher.start()

        self._server = await asyncio.start_server(
            self._handle_connection,
            self.config.host,
            self.config.port,
            limit=self.config.max_request_size,
        )

        logger.info(
            f"Serving {self.watcher.output_path} "
            f"at http://{self.config.host}:{self.port}/"
        )

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        try:
            await self._server.serve_forever()
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop watching, stop listening, drop open connections, cancel the build."""
        if self._source_watcher is not None:
            await self._source_watcher.stop()

        if self._server is not None:
            self._server.close()
            for writer in list(self._connections):
                writer.close()
            await self._server.wait_closed()
            self._server = None

        await self.watcher.close()
        logger.info("Server stopped")

    def run(self) -> None:
        """Configure logging and serve until interrupted (blocking)."""
        self._setup_logging()
        try:
            asyncio.run(self.serve_forever())
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("buildserve").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    async def _fallback(self, request: HTTPRequest) -> HTTPResponse:
        return not_found()

    async def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        try:
            return await self._handler(request)
        except Exception as e:
            logger.exception(f"Handler error: {e}")
            return internal_error()

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """
        Serve one TCP connection until it closes.

        The first request gets keep_alive_timeout seconds to arrive, as
        does every following one; an idle kept-alive connection is closed
        quietly, a client that never sends its first request gets a 408.
        """
        peer = writer.get_extra_info("peername") or ("", 0)
        client_address: Tuple[str, int] = (peer[0], peer[1])
        self._connections.add(writer)
        first = True

        try:
            while True:
                # ─────────────────────────────────────────────────────────
                # READ + PARSE
                # ─────────────────────────────────────────────────────────
                try:
                    raw_request = await asyncio.wait_for(
                        self._read_request(reader),
                        timeout=self.config.keep_alive_timeout,
                    )
                    if raw_request is None:
                        break
                    request = self._parser.parse(raw_request, client_address)

                except asyncio.TimeoutError:
                    if first:
                        await self._send(writer, error_response(
                            HTTPStatus.REQUEST_TIMEOUT, "Request timeout"
                        ))
                    break

                except HTTPParseError as e:
                    logger.warning(f"Malformed request from {client_address[0]}: {e}")
                    await self._send(writer, error_response(e.status_code, str(e)))
                    break

                # ─────────────────────────────────────────────────────────
                # DISPATCH
                # ─────────────────────────────────────────────────────────
                response = await self._dispatch(request)

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive",
                        f"timeout={int(self.config.keep_alive_timeout)}",
                    )
                else:
                    response.headers["Connection"] = "close"

                await self._send(writer, response, head=request.method == "HEAD")

                if not keep_alive or response.headers.get("Connection") == "close":
                    break
                first = False

        except ConnectionError as e:
            logger.debug(f"Connection from {client_address[0]} dropped: {e}")

        except Exception as e:
            logger.exception(f"Connection error from {client_address[0]}: {e}")

        finally:
            self._connections.discard(writer)
            writer.close()

    async def _read_request(self, reader: asyncio.StreamReader) -> Optional[bytes]:
        """
        Read one request (head plus body) off the stream.

        Returns None when the client closed the connection cleanly
        between requests.

        Raises:
            HTTPParseError: Truncated request, or larger than the limit.
        """
        try:
            head = await reader.readuntil(b"\r\n\r\n")
        except asyncio.IncompleteReadError as e:
            if not e.partial:
                return None
            raise HTTPParseError("Incomplete request: connection closed")
        except asyncio.LimitOverrunError:
            raise HTTPParseError("Request headers too large", status_code=413)

        match = _CONTENT_LENGTH.search(head)
        content_length = int(match.group(1)) if match else 0
        if len(head) + content_length > self.config.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(head) + content_length} bytes",
                status_code=413,
            )

        if content_length:
            try:
                head += await reader.readexactly(content_length)
            except asyncio.IncompleteReadError:
                raise HTTPParseError("Incomplete body: connection closed")

        return head

    async def _send(
        self,
        writer: asyncio.StreamWriter,
        response: HTTPResponse,
        head: bool = False,
    ) -> None:
        data = response.to_bytes(self.config.server_name)
        if head and response.body:
            data = data[:-len(response.body)]
        writer.write(data)
        await writer.drain()

"""
=============================================================================
BUILD OUTPUT HANDLER
=============================================================================

Serves the output directory of a build pipeline, but only once the
current build has settled, and shows the build error instead of stale
files when it failed.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. BUILD GATE       await watcher.current_build                    │
    │          │                                                           │
    │          ├── failed ──────────────────────► 500 error page           │
    │          ▼                                                           │
    │   2. PATH RESOLVER    decode, join to output root, confine           │
    │          │                                                           │
    │          ├── NUL / escape / bad encoding ─► 400 (empty body)         │
    │          ├── stat fails ──────────────────► next(request)            │
    │          ▼                                                           │
    │   3. DIRECTORY POLICY (directories only)                             │
    │          │                                                           │
    │          ├── has index.html ──────────────► serve dir/index.html     │
    │          ├── auto_index off ──────────────► next(request)            │
    │          ├── no trailing slash ───────────► 301 to url + "/"         │
    │          └── otherwise ───────────────────► 200 listing              │
    │          ▼                                                           │
    │   4. RESPONSE WRITER                                                 │
    │          │                                                           │
    │          ├── If-Modified-Since matches ───► 304                      │
    │          └── otherwise ───────────────────► 200 file bytes           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY WAIT FOR THE BUILD?
=============================================================================

The build rewrites the output tree in place. Serving while it runs can
hand the browser half-written bundles, or an old index.html pointing at
assets that were just deleted. Waiting on the build future means every
response comes from one complete build. Waiting is a coroutine
suspension, so other connections keep being served meanwhile.

Once the build has settled, all filesystem work is synchronous. Files
are read fully and closed before the response is returned: on Windows a
file that is open for reading cannot be deleted, and the next build
would fail to clean its output. A build that starts between our stat and
our read can still swap the file; that race is accepted.

=============================================================================
CONDITIONAL REQUESTS
=============================================================================

Last-Modified is treated as an opaque tag, the way nginx does: browsers
echo it back verbatim in If-Modified-Since, so an exact string match
means "same file". No date parsing, no ordering comparison. A rebuild
that rewrites a file bumps its mtime and so changes the tag.

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why 400 for '../' instead of 403 or 404?"
A: "A path that decodes to something outside the served root is a
   malformed request for this handler, not a missing or forbidden
   resource. Answering with an empty 400 also leaks nothing about what
   exists outside the root."

Q: "Why pass missing files on instead of returning 404?"
A: "The handler can't tell 'not produced by this build' from 'doesn't
   exist'. The host may have other routes (an API proxy, a live-reload
   endpoint) that should get a chance first."

=============================================================================
"""

import asyncio
import logging
import os
import stat
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import unquote

from ..build import BuildError, BuildNotStartedError, Watcher
from ..config import ServeOptions
from ..http.mime_types import get_content_type
from ..http.request import HTTPRequest, split_target
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    bad_request, format_http_date,
)
from ..middleware.base import Middleware, NextHandler
from ..templates import Template, render_error_page, render_directory_listing


logger = logging.getLogger(__name__)


INDEX_FILE = "index.html"


class BuildOutputMiddleware(Middleware):
    """
    Middleware serving a watcher's output directory.

    =========================================================================
    USAGE
    =========================================================================

        watcher = Watcher(CommandBuilder("make site", "_site"))
        watcher.start()

        pipeline = MiddlewarePipeline()
        pipeline.add(BuildOutputMiddleware(
            watcher,
            ServeOptions(auto_index=True, live_reload_path="/livereload.js"),
        ))
        handler = pipeline.wrap(fallback)

    Development use only: it has not been reviewed for exposure to an
    untrusted network.

    =========================================================================
    """

    def __init__(
        self,
        watcher: Watcher,
        options: Optional[ServeOptions] = None,
        error_template: Optional[Template] = None,
        directory_template: Optional[Template] = None,
    ):
        """
        Args:
            watcher: Owner of ``current_build`` and ``output_path``.
                     ``watcher.start()`` must be called before the first
                     request arrives.

            options: auto_index / live_reload_path. Defaults to
                     ServeOptions().

            error_template: render(context) for the build error page.

            directory_template: render(context) for directory listings.
        """
        self.watcher = watcher
        self.options = options or ServeOptions()
        self.error_template = error_template or render_error_page
        self.directory_template = directory_template or render_directory_listing

        # No trailing separator, except for a filesystem root like "/"
        self.output_path = os.path.normpath(os.path.abspath(watcher.output_path))
        if self.output_path.endswith(os.sep):
            self._root_prefix = self.output_path
        else:
            self._root_prefix = self.output_path + os.sep

    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        # ─────────────────────────────────────────────────────────────────
        # BUILD GATE
        # ─────────────────────────────────────────────────────────────────
        # Read the current build now, not at construction: each rebuild
        # replaces the future.
        build = self.watcher.current_build
        if build is None:
            raise BuildNotStartedError("Waiting for initial build to start")

        try:
            # shield(): a client hanging up must not cancel the shared build
            await asyncio.shield(build)
        except BuildError as error:
            logger.debug(f"Build failed, serving error page for {request.target}")
            return self._build_error_response(error)

        return await self._serve(request, next)

    # =========================================================================
    # PATH RESOLVER
    # =========================================================================

    def resolve_path(self, url_path: str) -> Optional[str]:
        """
        Map a percent-encoded URL path to a filesystem path under the root.

        The join is textual, like ``path.join``: the decoded path is
        appended to the root and normalized, keeping a trailing separator
        so the directory policy can tell "/docs" from "/docs/".

        Returns:
            The absolute path, or None if the URL path is unsafe (contains
            a NUL, escapes the root) or is not valid UTF-8 once decoded.
        """
        try:
            decoded = _unquote_strict(url_path)
        except UnicodeDecodeError:
            return None

        filename = os.path.normpath(self.output_path + os.sep + decoded)
        if decoded.endswith("/") and not filename.endswith(os.sep):
            filename += os.sep

        if "\0" in filename:
            return None

        # Root itself, or something strictly below it. Comparing against
        # root + sep also rejects siblings like /out2 for a root of /out.
        if filename != self.output_path and not filename.startswith(self._root_prefix):
            return None

        return filename

    async def _serve(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        url_path, query = split_target(request.target)

        filename = self.resolve_path(url_path)
        if filename is None:
            logger.warning(f"Rejected unsafe request path: {request.target!r}")
            return bad_request()

        try:
            st = os.stat(filename)
        except OSError:
            logger.debug(f"Not in build output, passing on: {request.target}")
            return await next(request)

        # ─────────────────────────────────────────────────────────────────
        # DIRECTORY POLICY
        # ─────────────────────────────────────────────────────────────────
        if stat.S_ISDIR(st.st_mode):
            index_path = os.path.join(filename, INDEX_FILE)

            if os.path.isfile(index_path):
                filename = index_path
                st = os.stat(filename)

            elif not self.options.auto_index:
                logger.debug(f"Directory listing disabled, passing on: {request.target}")
                return await next(request)

            elif not filename.endswith(os.sep):
                return self._trailing_slash_redirect(url_path, query)

            else:
                return self._directory_listing(request, filename)

        return self._serve_file(request, filename, st)

    # =========================================================================
    # DIRECTORY RESPONSES
    # =========================================================================

    def _trailing_slash_redirect(self, url_path: str, query: Optional[str]) -> HTTPResponse:
        # Leading slashes collapsed so "//host/dir" can't become an
        # off-site, protocol-relative Location.
        location = "/" + url_path.lstrip("/") + "/"
        if query is not None:
            location += "?" + query

        return (ResponseBuilder()
            .redirect(location, permanent=True)
            .no_cache()
            .build())

    def _directory_listing(self, request: HTTPRequest, dirname: str) -> HTTPResponse:
        files = []
        for child in sorted(os.listdir(dirname)):
            is_dir = os.path.isdir(os.path.join(dirname, child))
            files.append({
                "href": child + "/" if is_dir else child,
                "type": "dir" if is_dir else os.path.splitext(child)[1][1:].lower(),
            })

        context = {
            "url": request.target,
            "files": files,
            "live_reload_path": self.options.live_reload_path,
        }

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .no_cache()
            .html(self.directory_template(context))
            .build())

    # =========================================================================
    # RESPONSE WRITER
    # =========================================================================

    def _serve_file(self, request: HTTPRequest, filename: str, st: os.stat_result) -> HTTPResponse:
        last_modified = format_http_date(
            datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)
        )

        if request.get_header("if-modified-since") == last_modified:
            return (ResponseBuilder()
                .status(HTTPStatus.NOT_MODIFIED)
                .header("Last-Modified", last_modified)
                .build())

        content_type = get_content_type(filename)

        # Read fully (and close) before responding; see module docstring
        with open(filename, "rb") as f:
            content = f.read()

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Last-Modified", last_modified)
            .no_cache()
            .header("Content-Length", str(st.st_size))
            .content_type(content_type)
            .body(content)
            .build())

    # =========================================================================
    # ERROR RENDERER
    # =========================================================================

    def _build_error_response(self, error: BuildError) -> HTTPResponse:
        context = {
            "stack": error.stack,
            "live_reload_path": self.options.live_reload_path,
            "payload": error.payload,
        }

        return (ResponseBuilder()
            .status(HTTPStatus.INTERNAL_SERVER_ERROR)
            .html(self.error_template(context), content_type="text/html")
            .build())


def _unquote_strict(url_path: str) -> str:
    return unquote(url_path, errors="strict")


def serve_build_output(
    watcher: Watcher,
    error_template: Optional[Template] = None,
    directory_template: Optional[Template] = None,
    **options,
) -> BuildOutputMiddleware:
    """
    Create a build output handler.

    Keyword options are those of ServeOptions:

        serve_build_output(watcher, auto_index=False)
        serve_build_output(watcher, live_reload_path="/livereload.js")
    """
    return BuildOutputMiddleware(
        watcher,
        ServeOptions(**options),
        error_template=error_template,
        directory_template=directory_template,
    )

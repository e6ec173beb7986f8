"""
pytest configuration and fixtures.
"""

import asyncio
import os
from typing import Callable, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from buildserve.build import Builder, BuildError, Watcher
from buildserve.builders import StaticBuilder
from buildserve.config import ServeOptions
from buildserve.handlers import BuildOutputMiddleware
from buildserve.http import HTTPRequest, HTTPResponse, ResponseBuilder, HTTPStatus


APP_JS = b"console.log('hello from the build!!!');\n"
assert len(APP_JS) == 40


class FailingBuilder(Builder):
    """Builder whose every build fails with a fixed stack and payload."""

    def __init__(self, output_path: str, stack: str = "SyntaxError: unexpected token\n    at app.ts:3:14"):
        self.output_path = output_path
        self.stack = stack
        self.payload = {"file": "app.ts", "line": 3}

    async def build(self) -> None:
        raise BuildError("compile failed", payload=self.payload, stack=self.stack)


class GatedBuilder(Builder):
    """Builder that only finishes once the test releases it."""

    def __init__(self, output_path: str):
        self.output_path = output_path
        self.release: Optional[asyncio.Event] = None
        self.builds = 0

    async def build(self) -> None:
        self.builds += 1
        if self.release is None:
            self.release = asyncio.Event()
        await self.release.wait()
        self.release = None


async def passthrough(request: HTTPRequest) -> HTTPResponse:
    """Stands in for the rest of the chain; marks that it was reached."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .header("X-Passed-Through", "1")
        .build())


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """
    A build output tree:

        out/
        ├── index.html
        ├── app.js            (40 bytes)
        ├── style.css
        ├── blog/index.html
        ├── docs/
        │   ├── b.txt
        │   └── a/
        └── empty/
    """
    out = tmp_path / "out"
    out.mkdir()
    (out / "index.html").write_text("<h1>home</h1>")
    (out / "app.js").write_bytes(APP_JS)
    (out / "style.css").write_text("body { color: red; }")

    (out / "blog").mkdir()
    (out / "blog" / "index.html").write_text("<h1>blog</h1>")

    (out / "docs").mkdir()
    (out / "docs" / "b.txt").write_text("b")
    (out / "docs" / "a").mkdir()

    (out / "empty").mkdir()

    # Sibling that shares the root's name as a prefix
    (tmp_path / "out2").mkdir()
    (tmp_path / "out2" / "secret.txt").write_text("secret")

    return out


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """Factory for GET requests: make_request("/app.js", {"if-modified-since": ...})."""
    def factory(target: str, headers: Optional[dict] = None, method: str = "GET") -> HTTPRequest:
        return HTTPRequest(
            method=method,
            target=target,
            headers={k.lower(): v for k, v in (headers or {}).items()},
            client_address=("127.0.0.1", 50000),
        )
    return factory


@pytest.fixture
def serve(output_dir: Path, make_request):
    """
    Run one request through a BuildOutputMiddleware over ``output_dir``
    after a settled build.

        response = serve("/docs/", auto_index=False)
        response = serve("/app.js", failed=True)
    """
    def run(
        target: str,
        headers: Optional[dict] = None,
        failed: bool = False,
        **options,
    ) -> HTTPResponse:
        async def go():
            if failed:
                builder = FailingBuilder(str(output_dir))
            else:
                builder = StaticBuilder(str(output_dir))
            watcher = Watcher(builder)
            watcher.start()
            handler = BuildOutputMiddleware(watcher, ServeOptions(**options))
            return await handler(make_request(target, headers), passthrough)

        return asyncio.run(go())

    return run


def is_passthrough(response: HTTPResponse) -> bool:
    return response.headers.get("X-Passed-Through") == "1"


def set_mtime(path: os.PathLike, timestamp: float) -> None:
    os.utime(path, (timestamp, timestamp))

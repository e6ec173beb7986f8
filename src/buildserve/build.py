"""
=============================================================================
BUILD STATE
=============================================================================

The handle the build output handler waits on before touching the disk.

=============================================================================
THE CURRENT BUILD
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     Watcher.current_build                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   None ──start()──► #1 pending ──► #1 done (tree stable)             │
    │                                        │                             │
    │                           source change│rebuild()                    │
    │                                        ▼                             │
    │                                    #2 pending ──► #2 failed          │
    │                                                   (BuildError)       │
    │                                                                      │
    │   A request reads current_build when it arrives and awaits THAT      │
    │   future. A build started a moment later gets its own future;        │
    │   requests already waiting keep waiting on the one they read.        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Builds never overlap: build #2 waits for #1 to settle before running,
but ``current_build`` points at #2 immediately, so new requests skip
the soon-to-be-stale output of #1.

The handle is an explicit object passed to the handler, never a module
global, so any number of independent watchers can coexist (one per test,
one per served project).

=============================================================================
"""

import asyncio
import logging
import time
import traceback
from abc import ABC, abstractmethod
from typing import Any, Optional


logger = logging.getLogger(__name__)


class BuildError(Exception):
    """
    A failed build.

    Attributes:
        stack: Human-readable trace shown on the error page. Defaults to
               the formatted traceback of this exception (or of the
               exception it wraps), falling back to the message.
        payload: Builder-specific diagnostic data. Passed to the error
                 template untouched; never interpreted by the server.
    """

    def __init__(self, message: str, payload: Any = None, stack: Optional[str] = None):
        super().__init__(message)
        self.payload = payload
        self._stack = stack

    @property
    def stack(self) -> str:
        if self._stack is not None:
            return self._stack
        if self.__traceback__ is not None:
            return "".join(
                traceback.format_exception(type(self), self, self.__traceback__)
            )
        return f"{type(self).__name__}: {self}"

    @classmethod
    def wrap(cls, error: BaseException) -> "BuildError":
        """Turn an arbitrary builder exception into a BuildError."""
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        return cls(f"{type(error).__name__}: {error}", stack=stack)


class BuildNotStartedError(RuntimeError):
    """A request arrived before the first build was started."""


class Builder(ABC):
    """
    Produces the output tree.

    Subclasses set ``output_path`` (the directory that gets served) and
    implement ``build()``, raising BuildError on failure.
    """

    output_path: str

    @abstractmethod
    async def build(self) -> None:
        """Rebuild the output tree in place."""


class Watcher:
    """
    Owns the "current build" future for one builder.

    Usage:
        watcher = Watcher(CommandBuilder("npm run build", "dist"))
        watcher.start()                       # build #1
        ...
        watcher.rebuild()                     # on every source change

        handler = BuildOutputMiddleware(watcher)
    """

    def __init__(self, builder: Builder):
        self.builder = builder
        self.current_build: Optional["asyncio.Future[None]"] = None
        self._build_count = 0

    @property
    def output_path(self) -> str:
        return self.builder.output_path

    @property
    def build_count(self) -> int:
        """Number of builds started so far."""
        return self._build_count

    def start(self) -> "asyncio.Future[None]":
        """
        Start the initial build. Must run inside an event loop.

        Raises:
            RuntimeError: If the watcher was already started.
        """
        if self.current_build is not None:
            raise RuntimeError("Watcher already started")
        return self.rebuild()

    def rebuild(self) -> "asyncio.Future[None]":
        """
        Start a new build and make it the current one.

        Returns the new build's future; it resolves to None on success and
        raises BuildError on failure.
        """
        previous = self.current_build
        self._build_count += 1
        number = self._build_count

        task = asyncio.get_running_loop().create_task(
            self._run_build(number, previous),
            name=f"build-{number}",
        )
        task.add_done_callback(self._on_build_done)
        self.current_build = task
        return task

    async def close(self) -> None:
        """Cancel a build that is still running."""
        build = self.current_build
        if build is not None and not build.done():
            build.cancel()
            await asyncio.wait([build])

    async def _run_build(
        self,
        number: int,
        previous: Optional["asyncio.Future[None]"],
    ) -> None:
        if previous is not None and not previous.done():
            logger.debug(f"Build #{number} queued behind the running build")
            await asyncio.wait([previous])

        logger.info(f"Build #{number} started")
        start_time = time.perf_counter()

        try:
            await self.builder.build()
        except BuildError as e:
            logger.error(f"Build #{number} failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Build #{number} failed: {type(e).__name__}: {e}")
            raise BuildError.wrap(e) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Build #{number} succeeded in {duration_ms:.0f}ms")

    @staticmethod
    def _on_build_done(task: "asyncio.Future[None]") -> None:
        # Mark the exception as retrieved; failures are already logged and
        # a build nobody requested a page for is not an asyncio error.
        if not task.cancelled():
            task.exception()

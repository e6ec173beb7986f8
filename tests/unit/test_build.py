"""
Unit tests for build state and the bundled builders.
"""

import asyncio
import sys

import pytest

from buildserve.build import Builder, BuildError, Watcher
from buildserve.builders import CommandBuilder, StaticBuilder


class RecordingBuilder(Builder):
    """Records build start/end order; optionally fails."""

    def __init__(self, output_path, error=None, delay=0.01):
        self.output_path = output_path
        self.error = error
        self.delay = delay
        self.events = []

    async def build(self):
        number = len([e for e in self.events if e[0] == "start"]) + 1
        self.events.append(("start", number))
        await asyncio.sleep(self.delay)
        self.events.append(("end", number))
        if self.error is not None:
            raise self.error


class TestBuildError:
    """Tests for BuildError."""

    def test_explicit_stack(self):
        """An explicit stack is returned unchanged."""
        error = BuildError("failed", payload={"a": 1}, stack="line 1\nline 2")

        assert error.stack == "line 1\nline 2"
        assert error.payload == {"a": 1}
        assert str(error) == "failed"

    def test_stack_without_traceback(self):
        """A never-raised error falls back to 'Type: message'."""
        assert BuildError("nope").stack == "BuildError: nope"

    def test_stack_from_traceback(self):
        """A raised error formats its own traceback."""
        try:
            raise BuildError("compile failed")
        except BuildError as e:
            error = e

        assert "Traceback" in error.stack
        assert "compile failed" in error.stack

    def test_wrap(self):
        """Arbitrary exceptions become BuildErrors carrying their traceback."""
        try:
            {}["missing"]
        except KeyError as e:
            wrapped = BuildError.wrap(e)

        assert isinstance(wrapped, BuildError)
        assert str(wrapped) == "KeyError: 'missing'"
        assert "KeyError" in wrapped.stack
        assert wrapped.payload is None


class TestWatcher:
    """Tests for Watcher."""

    def test_no_build_before_start(self, tmp_path):
        """current_build is None until start()."""
        watcher = Watcher(StaticBuilder(str(tmp_path)))

        assert watcher.current_build is None
        assert watcher.build_count == 0
        assert watcher.output_path == str(tmp_path)

    def test_start_twice_raises(self, tmp_path):
        """The initial build can only be started once."""
        async def go():
            watcher = Watcher(StaticBuilder(str(tmp_path)))
            watcher.start()
            with pytest.raises(RuntimeError):
                watcher.start()
            await watcher.current_build

        asyncio.run(go())

    def test_successful_build_resolves_to_none(self, tmp_path):
        """A successful build future resolves with no value."""
        async def go():
            watcher = Watcher(StaticBuilder(str(tmp_path)))
            return await watcher.start()

        assert asyncio.run(go()) is None

    def test_rebuild_replaces_current_build(self, tmp_path):
        """Each rebuild gets a new future and becomes current immediately."""
        async def go():
            watcher = Watcher(RecordingBuilder(str(tmp_path)))
            first = watcher.start()
            second = watcher.rebuild()

            assert watcher.current_build is second
            assert first is not second
            await second
            return watcher

        watcher = asyncio.run(go())
        assert watcher.build_count == 2

    def test_builds_never_overlap(self, tmp_path):
        """A rebuild waits for the running build to finish first."""
        builder = RecordingBuilder(str(tmp_path))

        async def go():
            watcher = Watcher(builder)
            watcher.start()
            watcher.rebuild()
            await watcher.rebuild()

        asyncio.run(go())

        assert builder.events == [
            ("start", 1), ("end", 1),
            ("start", 2), ("end", 2),
            ("start", 3), ("end", 3),
        ]

    def test_build_error_propagates(self, tmp_path):
        """A BuildError from the builder rejects the future as is."""
        error = BuildError("bad", stack="custom stack")

        async def go():
            watcher = Watcher(RecordingBuilder(str(tmp_path), error=error))
            await watcher.start()

        with pytest.raises(BuildError) as exc_info:
            asyncio.run(go())

        assert exc_info.value is error

    def test_other_errors_are_wrapped(self, tmp_path):
        """Unexpected builder exceptions surface as BuildError."""
        async def go():
            watcher = Watcher(RecordingBuilder(str(tmp_path), error=ValueError("bad config")))
            await watcher.start()

        with pytest.raises(BuildError) as exc_info:
            asyncio.run(go())

        assert "ValueError: bad config" in exc_info.value.stack
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_failed_build_does_not_block_the_next(self, tmp_path):
        """A failure is followed by a clean rebuild once the builder recovers."""
        builder = RecordingBuilder(str(tmp_path), error=BuildError("first"))

        async def go():
            watcher = Watcher(builder)
            first = watcher.start()
            await asyncio.wait([first])
            builder.error = None
            await watcher.rebuild()
            return first

        first = asyncio.run(go())
        assert isinstance(first.exception(), BuildError)

    def test_close_cancels_running_build(self, tmp_path):
        """close() cancels a build that hasn't finished."""
        async def go():
            watcher = Watcher(RecordingBuilder(str(tmp_path), delay=10))
            build = watcher.start()
            await asyncio.sleep(0.01)
            await watcher.close()
            return build

        assert asyncio.run(go()).cancelled()


class TestStaticBuilder:
    """Tests for StaticBuilder."""

    def test_existing_directory(self, tmp_path):
        """An existing directory is a successful build."""
        builder = StaticBuilder(str(tmp_path))

        assert asyncio.run(builder.build()) is None

    def test_missing_directory(self, tmp_path):
        """A missing output directory fails the build."""
        builder = StaticBuilder(str(tmp_path / "missing"))

        with pytest.raises(BuildError) as exc_info:
            asyncio.run(builder.build())

        assert "does not exist" in str(exc_info.value)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")
class TestCommandBuilder:
    """Tests for CommandBuilder."""

    def test_successful_command(self, tmp_path):
        """A zero exit status is a successful build."""
        out = tmp_path / "out"
        builder = CommandBuilder(f"mkdir -p {out} && echo built > {out}/index.html", str(out))

        asyncio.run(builder.build())

        assert (out / "index.html").read_text() == "built\n"

    def test_runs_in_cwd(self, tmp_path):
        """The command runs in the given working directory."""
        builder = CommandBuilder("mkdir -p dist && touch dist/ok", "dist", cwd=str(tmp_path))

        asyncio.run(builder.build())

        assert (tmp_path / "dist" / "ok").exists()
        assert builder.output_path == str(tmp_path / "dist")

    def test_failing_command(self, tmp_path):
        """A non-zero exit becomes a BuildError with the combined output."""
        builder = CommandBuilder("echo compiling; echo 'error: oops' 1>&2; exit 3", str(tmp_path))

        with pytest.raises(BuildError) as exc_info:
            asyncio.run(builder.build())

        error = exc_info.value
        assert error.payload["returncode"] == 3
        assert error.payload["command"] == builder.command
        assert "compiling" in error.payload["output"]
        assert "error: oops" in error.payload["output"]
        assert error.stack.startswith(f"$ {builder.command}\n")
        assert error.stack.endswith("exit status 3")

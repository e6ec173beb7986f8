"""
Unit tests for source tree polling.
"""

import asyncio
import os
import threading
import time

from buildserve.build import Watcher
from buildserve.builders import StaticBuilder
from buildserve.watch import SourceWatcher, tree_signature


def bump_mtime(path, seconds=10):
    st = os.stat(path)
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


class TestTreeSignature:
    """Tests for tree_signature."""

    def test_stable_without_changes(self, tmp_path):
        """Two scans of an untouched tree agree."""
        (tmp_path / "a.txt").write_text("a")

        assert tree_signature([tmp_path]) == tree_signature([tmp_path])

    def test_changes_on_new_file(self, tmp_path):
        """Adding a file changes the signature."""
        before = tree_signature([tmp_path])
        (tmp_path / "new.txt").write_text("n")

        assert tree_signature([tmp_path]) != before

    def test_changes_on_modification(self, tmp_path):
        """A changed mtime changes the signature."""
        source = tmp_path / "a.txt"
        source.write_text("a")
        before = tree_signature([tmp_path])

        bump_mtime(source)

        assert tree_signature([tmp_path]) != before

    def test_changes_on_delete_in_subdirectory(self, tmp_path):
        """Nested files count too."""
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "x.js").write_text("x")
        before = tree_signature([tmp_path])

        (tmp_path / "sub" / "x.js").unlink()

        assert tree_signature([tmp_path]) != before

    def test_ignored_directory(self, tmp_path):
        """Changes inside an ignored directory (the output) are invisible."""
        out = tmp_path / "dist"
        out.mkdir()
        before = tree_signature([tmp_path], ignore=[out])

        (out / "bundle.js").write_text("b")

        assert tree_signature([tmp_path], ignore=[out]) == before


class TestSourceWatcher:
    """Tests for SourceWatcher."""

    def test_rebuilds_on_change(self, tmp_path):
        """A source change starts a new build."""
        src = tmp_path / "src"
        src.mkdir()
        out = tmp_path / "dist"
        out.mkdir()

        async def go():
            watcher = Watcher(StaticBuilder(str(out)))
            await watcher.start()

            source_watcher = SourceWatcher(watcher, [str(src)], interval=0.01)
            source_watcher.start()
            await asyncio.sleep(0.05)

            (src / "page.md").write_text("# hi")
            for _ in range(100):
                if watcher.build_count > 1:
                    break
                await asyncio.sleep(0.01)

            await source_watcher.stop()
            await watcher.current_build
            return watcher.build_count

        assert asyncio.run(go()) == 2

    def test_output_changes_do_not_rebuild(self, tmp_path):
        """Writing to the output inside the watched tree doesn't loop."""
        out = tmp_path / "dist"
        out.mkdir()

        async def go():
            watcher = Watcher(StaticBuilder(str(out)))
            await watcher.start()

            source_watcher = SourceWatcher(watcher, [str(tmp_path)], interval=0.01)
            source_watcher.start()
            await asyncio.sleep(0.05)

            (out / "bundle.js").write_text("b")
            await asyncio.sleep(0.1)

            await source_watcher.stop()
            return watcher.build_count

        assert asyncio.run(go()) == 1

    def test_stop_without_start(self, tmp_path):
        """stop() on a watcher that never started is a no-op."""
        watcher = Watcher(StaticBuilder(str(tmp_path)))

        asyncio.run(SourceWatcher(watcher, [str(tmp_path)]).stop())

    def test_scan_runs_off_the_event_loop(self, tmp_path, monkeypatch):
        """A slow tree scan doesn't stall other coroutines."""
        scan_threads = []

        def slow_signature(paths, ignore=()):
            scan_threads.append(threading.get_ident())
            time.sleep(0.2)
            return "unchanged"

        monkeypatch.setattr("buildserve.watch.tree_signature", slow_signature)

        async def go():
            watcher = Watcher(StaticBuilder(str(tmp_path)))
            await watcher.start()

            source_watcher = SourceWatcher(watcher, [str(tmp_path)], interval=0.01)
            source_watcher.start()

            loop = asyncio.get_running_loop()
            worst = 0.0
            for _ in range(30):
                started = loop.time()
                await asyncio.sleep(0.005)
                worst = max(worst, loop.time() - started)

            await source_watcher.stop()
            return worst

        worst = asyncio.run(go())

        assert scan_threads
        assert threading.get_ident() not in scan_threads
        assert worst < 0.1

"""Source tree polling.

Computes a digest over stat metadata of every file under the watched
source directories and triggers a rebuild whenever it changes.
"""

import asyncio
import hashlib
import logging
import os
from typing import Iterable, Optional

from .build import Watcher


logger = logging.getLogger(__name__)


def _update_digest(digest, token: str) -> None:
    """Append a token plus separator byte to a hash digest."""
    digest.update(token.encode("utf-8", errors="surrogateescape"))
    digest.update(b"\0")


def tree_signature(paths: Iterable[str], ignore: Iterable[str] = ()) -> str:
    """Digest names, sizes and mtimes of everything under ``paths``.

    Paths listed in ``ignore`` (typically the output directory when it
    lives inside the source tree) are skipped, otherwise every build
    would trigger the next one.
    """
    ignored = {os.path.abspath(path) for path in ignore}
    digest = hashlib.blake2b(digest_size=20)

    for root in sorted(os.path.abspath(path) for path in paths):
        _update_digest(digest, f"root:{root}")
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(
                name for name in dirnames
                if os.path.join(dirpath, name) not in ignored
            )
            _update_digest(digest, f"dir:{dirpath}")
            for name in sorted(filenames):
                full_path = os.path.join(dirpath, name)
                try:
                    st = os.stat(full_path)
                except OSError:
                    _update_digest(digest, f"file:{full_path}:missing")
                    continue
                _update_digest(digest, f"file:{full_path}:{st.st_mtime_ns}:{st.st_size}")

    return digest.hexdigest()


class SourceWatcher:
    """Poll source directories and call ``watcher.rebuild()`` on change."""

    def __init__(self, watcher: Watcher, paths: Iterable[str], interval: float = 0.5):
        self.watcher = watcher
        self.paths = [os.path.abspath(path) for path in paths]
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def _signature(self) -> str:
        return tree_signature(self.paths, ignore=[self.watcher.output_path])

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._poll(), name="source-watcher"
            )

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            await asyncio.wait([self._task])
            self._task = None

    async def _poll(self) -> None:
        # The walk blocks; keep it off the event loop
        signature = await asyncio.to_thread(self._signature)
        logger.info(f"Watching {', '.join(self.paths)}")

        while True:
            await asyncio.sleep(self.interval)
            current = await asyncio.to_thread(self._signature)
            if current != signature:
                signature = current
                logger.info("Source change detected, rebuilding")
                self.watcher.rebuild()

"""
Builders that produce the served output tree.

StaticBuilder serves a directory that something else keeps up to date.
CommandBuilder runs a shell command (``npm run build``, ``make site``, ...)
and turns a non-zero exit status into a BuildError whose stack is the
command's combined output.
"""

import asyncio
import logging
import os
from typing import Optional

from .build import Builder, BuildError


logger = logging.getLogger(__name__)


class StaticBuilder(Builder):
    """Treat an existing directory as an always-successful build."""

    def __init__(self, output_path: str):
        self.output_path = os.path.abspath(output_path)

    async def build(self) -> None:
        if not os.path.isdir(self.output_path):
            raise BuildError(f"Output directory does not exist: {self.output_path}")


class CommandBuilder(Builder):
    """
    Run ``command`` through the shell and serve ``output_path`` afterwards.

    On failure the BuildError payload is::

        {"command": "npm run build", "returncode": 2, "output": "..."}
    """

    def __init__(self, command: str, output_path: str, cwd: Optional[str] = None):
        self.command = command
        self.cwd = cwd
        # Relative output paths are relative to where the command runs
        self.output_path = os.path.abspath(os.path.join(cwd or "", output_path))

    async def build(self) -> None:
        logger.debug(f"Running build command: {self.command}")

        process = await asyncio.create_subprocess_shell(
            self.command,
            cwd=self.cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        stdout, _ = await process.communicate()
        output = stdout.decode("utf-8", errors="replace")

        if process.returncode != 0:
            raise BuildError(
                f"Build command exited with status {process.returncode}",
                payload={
                    "command": self.command,
                    "returncode": process.returncode,
                    "output": output,
                },
                stack=(
                    f"$ {self.command}\n{output}"
                    f"\nexit status {process.returncode}"
                ),
            )

        if output.strip():
            logger.debug(f"Build output:\n{output.rstrip()}")

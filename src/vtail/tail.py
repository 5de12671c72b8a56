"""Follow a file through a ``tail -F`` subprocess.

The feed reads the subprocess in a background task and buffers completed
lines; :meth:`TailFeed.drain` hands them over without blocking, so the
viewer's frame loop never waits on the file.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import subprocess

logger = logging.getLogger(__name__)

_READ_CHUNK = 65536


class TailError(RuntimeError):
    """The tail subprocess could not be started."""


class LineSplitter:
    """Accumulate decoded chunks and emit completed, non-empty lines."""

    def __init__(self) -> None:
        self._partial = ""

    def feed(self, chunk: str) -> list[str]:
        parts = (self._partial + chunk).split("\n")
        self._partial = parts.pop()
        return [part.rstrip("\r") for part in parts if part.rstrip("\r")]

    def flush(self) -> list[str]:
        rest, self._partial = self._partial.rstrip("\r"), ""
        return [rest] if rest else []


class TailFeed:
    """Background reader over ``tail -F -n <lines> <path>``."""

    def __init__(self, path: str, tail_lines: int = 100, command: str = "tail") -> None:
        self.path = path
        self.tail_lines = tail_lines
        self.command = command
        self._process: asyncio.subprocess.Process | None = None
        self._reader: asyncio.Task[None] | None = None
        self._pending: list[str] = []
        self._splitter = LineSplitter()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.command,
                "-F",
                "-n",
                str(self.tail_lines),
                self.path,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise TailError(f"Failed to start {self.command}: {e}") from e

        logger.info("Started %s (pid %d) on %s", self.command, self._process.pid, self.path)
        self._reader = asyncio.create_task(self._read_loop())

    async def _read_loop(self) -> None:
        assert self._process is not None and self._process.stdout is not None
        while True:
            chunk = await self._process.stdout.read(_READ_CHUNK)
            if not chunk:
                break
            self._pending.extend(self._splitter.feed(self._decoder.decode(chunk)))
        self._pending.extend(self._splitter.feed(self._decoder.decode(b"", final=True)))
        self._pending.extend(self._splitter.flush())
        logger.info("%s output closed", self.command)

    def drain(self) -> list[str]:
        """Return and forget every completed line received so far."""
        lines, self._pending = self._pending, []
        return lines

    async def stop(self) -> None:
        """Terminate and reap the subprocess. Safe to call more than once."""
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None

        if self._process is not None:
            if self._process.returncode is None:
                try:
                    self._process.terminate()
                except ProcessLookupError:
                    pass
                await self._process.wait()
            logger.info("Stopped %s (exit %s)", self.command, self._process.returncode)
            self._process = None

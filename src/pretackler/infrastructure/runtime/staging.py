"""Staged, atomically published output for one streaming completion attempt."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import BinaryIO

from pydantic import ValidationError

from pretackler.domain.completion_models import StreamChunk
from pretackler.domain.errors import StagingError

_DATA_PREFIX = "data:"
_DONE_SENTINEL = "[DONE]"
_STAGING_SUFFIX = ".partial"

logger = logging.getLogger(__name__)

DeltaCallback = Callable[[int], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class StreamFrame:
    """Decoded content of one `data:` line."""

    deltas: tuple[str, ...] = ()
    done: bool = False


def parse_frame(line: bytes) -> StreamFrame | None:
    """Decode one newline-delimited frame.

    Returns None for lines that carry nothing: blanks, comments, non-data
    fields, and malformed payloads (which are logged and skipped).
    """

    text = line.decode("utf-8", errors="replace").strip()
    if not text or not text.startswith(_DATA_PREFIX):
        return None

    payload = text[len(_DATA_PREFIX) :].strip()
    if payload == _DONE_SENTINEL:
        return StreamFrame(done=True)

    try:
        chunk = StreamChunk.model_validate_json(payload)
    except ValidationError as exc:
        logger.warning(
            "Skipping malformed stream frame (%s error(s)): %.200s",
            exc.error_count(),
            payload,
        )
        return None
    return StreamFrame(deltas=tuple(chunk.contents()))


def staging_path_for(destination: Path) -> Path:
    """Return a unique hidden staging path beside `destination`."""

    return destination.with_name(
        f".{destination.name}.{os.getpid()}.{time.time_ns()}{_STAGING_SUFFIX}"
    )


class StreamingTransaction:
    """Own one attempt's output: stage, append deltas, then commit or discard.

    The destination path only ever appears through `os.replace` of a fully
    written staging file. Using the transaction as an async context manager
    discards the staging file on every exit path that did not commit.
    """

    def __init__(
        self,
        destination: Path,
        staging_path: Path,
        handle: BinaryIO,
        on_delta: DeltaCallback | None = None,
    ) -> None:
        self._destination = destination
        self._staging_path = staging_path
        self._handle = handle
        self._on_delta = on_delta
        self._buffer = bytearray()
        self._finished = False
        self._input_exhausted = False
        self._committed = False
        self._discarded = False
        self._bytes_written = 0

    @classmethod
    def open(
        cls,
        destination: Path,
        on_delta: DeltaCallback | None = None,
    ) -> "StreamingTransaction":
        """Create a fresh staging file beside `destination`."""

        staging_path = staging_path_for(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            handle = staging_path.open("wb")
        except OSError as exc:
            raise StagingError(f"Cannot create staging file {staging_path}: {exc}") from exc
        return cls(destination, staging_path, handle, on_delta)

    @property
    def destination(self) -> Path:
        return self._destination

    @property
    def staging_path(self) -> Path:
        return self._staging_path

    @property
    def finished(self) -> bool:
        """Whether the terminal sentinel has been received."""

        return self._finished

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    async def append(self, raw: bytes) -> bool:
        """Feed raw body bytes; return True once the sentinel was reached."""

        if self._finished:
            return True

        self._buffer.extend(raw)
        while (newline := self._buffer.find(b"\n")) >= 0:
            line = bytes(self._buffer[: newline + 1])
            del self._buffer[: newline + 1]
            if await self._apply(line):
                self._finished = True
                self._buffer.clear()
                return True
        return False

    async def finish_input(self) -> bool:
        """Process a trailing unterminated frame and mark input exhausted."""

        if not self._finished and self._buffer:
            line = bytes(self._buffer)
            self._buffer.clear()
            if await self._apply(line):
                self._finished = True
        self._input_exhausted = True
        return self._finished

    def commit(self) -> None:
        """Flush, fsync, and atomically rename the staging file onto the destination."""

        if self._committed:
            return
        if self._discarded:
            raise StagingError(f"Staging output for {self._destination} was already discarded.")
        if not (self._finished or self._input_exhausted):
            raise StagingError(
                f"Cannot commit {self._destination}: stream has not finished."
            )

        try:
            self._handle.flush()
            os.fsync(self._handle.fileno())
            self._handle.close()
            os.replace(self._staging_path, self._destination)
        except OSError as exc:
            self.discard()
            raise StagingError(f"Cannot publish {self._destination}: {exc}") from exc
        self._committed = True

    def discard(self) -> None:
        """Close and remove the staging file unless it was committed."""

        if self._committed or self._discarded:
            return
        self._discarded = True
        try:
            if not self._handle.closed:
                self._handle.close()
            self._staging_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove staging file %s: %s", self._staging_path, exc)

    async def __aenter__(self) -> "StreamingTransaction":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.discard()

    async def _apply(self, line: bytes) -> bool:
        frame = parse_frame(line)
        if frame is None:
            return False
        for delta in frame.deltas:
            await self._write(delta)
        return frame.done

    async def _write(self, text: str) -> None:
        data = text.encode("utf-8")
        if self._on_delta is not None:
            await self._on_delta(len(data))
        try:
            self._handle.write(data)
            self._handle.flush()
        except OSError as exc:
            raise StagingError(f"Cannot write staging file {self._staging_path}: {exc}") from exc
        self._bytes_written += len(data)


__all__ = [
    "DeltaCallback",
    "StreamFrame",
    "StreamingTransaction",
    "parse_frame",
    "staging_path_for",
]

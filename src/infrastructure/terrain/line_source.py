"""Buffered line readers over plain, bzip2 and gzip quadrangle files.

All three backends share one line-assembly routine and differ only in how
the stream is opened, how the decode buffer is refilled, and which library
exceptions mean the data is corrupt.

Outcomes of read_line():
- bytes: a line (or a length-capped fragment of one)
- None: clean end of stream
- DecodeError raised: the decompressor rejected the data
"""

from __future__ import annotations

import bz2
import gzip
import logging
import zlib
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType
from typing import BinaryIO, ClassVar

from domain.terrain.errors import DecodeError

logger = logging.getLogger(__name__)

# Callers read quadrangle lines with this capacity: at most 18 bytes per call.
DEFAULT_LINE_LENGTH = 19


class BufferedLineSource(ABC):
    """fgets-style reader holding one decode buffer, a cursor and an empty flag."""

    buffer_size: ClassVar[int] = 65536
    decode_errors: ClassVar[tuple[type[BaseException], ...]] = ()
    extension: ClassVar[str] = ""

    def __init__(self, stream: BinaryIO, name: str = "") -> None:
        self._stream = stream
        self.name = name
        self._buffer = b""
        self._pointer = 0
        self._empty = True
        self._eof = False

    @classmethod
    def open(cls, path: Path | str) -> "BufferedLineSource":
        """Open a file for this backend.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(path)
        stream = cls._open_stream(path)
        logger.debug("Opened %s with %s", path.name, cls.__name__)
        return cls(stream, name=path.name)

    @classmethod
    @abstractmethod
    def _open_stream(cls, path: Path) -> BinaryIO: ...

    def _refill(self) -> bytes:
        """Fetch the next chunk with exactly one read/decompress call."""
        return self._stream.read1(self.buffer_size)

    def _fill(self) -> bool:
        try:
            chunk = self._refill()
        except self.decode_errors as e:
            raise DecodeError(f"Failed to decode {self.name}: {e}") from e
        self._buffer = chunk
        self._pointer = 0
        self._empty = not chunk
        if not chunk:
            self._eof = True
        return bool(chunk)

    def read_line(self, length: int = DEFAULT_LINE_LENGTH) -> bytes | None:
        """Return at most ``length - 1`` bytes, stopping after a newline.

        Raises:
            ValueError: If length is below 2 or above the buffer size
            DecodeError: If the backend fails to decode the stream
        """
        if length < 2 or length > self.buffer_size:
            raise ValueError(
                f"Line length must be in [2, {self.buffer_size}], got {length}"
            )

        out = bytearray()
        limit = length - 1
        while len(out) < limit:
            if self._empty and (self._eof or not self._fill()):
                break

            end = min(len(self._buffer), self._pointer + limit - len(out))
            newline = self._buffer.find(b"\n", self._pointer, end)
            if newline != -1:
                end = newline + 1
            out += self._buffer[self._pointer : end]
            self._pointer = end
            if self._pointer >= len(self._buffer):
                self._empty = True
            if newline != -1:
                break

        if not out:
            return None
        return bytes(out)

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> "BufferedLineSource":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class PlainLineSource(BufferedLineSource):
    """Uncompressed ``.sdf`` files."""

    extension = ".sdf"

    @classmethod
    def _open_stream(cls, path: Path) -> BinaryIO:
        return open(path, "rb")


class Bzip2LineSource(BufferedLineSource):
    """``.sdf.bz2`` files; corrupt or truncated streams raise DecodeError."""

    buffer_size = 65536
    decode_errors = (OSError, EOFError, ValueError)
    extension = ".sdf.bz2"

    @classmethod
    def _open_stream(cls, path: Path) -> BinaryIO:
        if not path.exists():
            raise FileNotFoundError(str(path))
        return bz2.open(path, "rb")


class GzipLineSource(BufferedLineSource):
    """``.sdf.gz`` files; corrupt or truncated streams raise DecodeError."""

    buffer_size = 32766
    decode_errors = (gzip.BadGzipFile, zlib.error, EOFError)
    extension = ".sdf.gz"

    @classmethod
    def _open_stream(cls, path: Path) -> BinaryIO:
        if not path.exists():
            raise FileNotFoundError(str(path))
        return gzip.open(path, "rb")


# Fallback order used by the quadrangle loader.
LINE_SOURCES: tuple[type[BufferedLineSource], ...] = (
    PlainLineSource,
    Bzip2LineSource,
    GzipLineSource,
)

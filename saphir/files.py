"""Files served to clients: readers, streaming and on-the-fly compression."""

from __future__ import annotations

import io
import mimetypes
import os
import zlib
from collections.abc import Callable, Iterator
from enum import IntEnum
from pathlib import Path
from typing import Any, BinaryIO, Protocol

import brotli

from .errors import OtherError

MAX_BUFFER = 65534

TEXT_HTML_UTF_8 = "text/html; charset=utf-8"
TEXT_PLAIN_UTF_8 = "text/plain; charset=utf-8"


class SaphirFile(Protocol):
    """A seekable readable source with file information."""

    path: Path

    @property
    def mime(self) -> str | None: ...

    @property
    def size(self) -> int: ...

    def read(self, size: int = -1) -> bytes: ...

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int: ...

    def close(self) -> None: ...


def guess_mime(path: str | os.PathLike[str]) -> str:
    """Guess the MIME type from the path; directories fall back to HTML."""
    guessed, _ = mimetypes.guess_type(os.fspath(path))
    if guessed:
        return guessed
    return TEXT_HTML_UTF_8 if Path(path).is_dir() else TEXT_PLAIN_UTF_8


class Compression(IntEnum):
    """Content encodings, ordered by preference."""

    RAW = 0
    DEFLATE = 1
    GZIP = 2
    BROTLI = 3

    @classmethod
    def parse(cls, text: str) -> Compression:
        """Parse an ``Accept-Encoding`` token."""
        names = {
            "deflate": cls.DEFLATE,
            "gzip": cls.GZIP,
            "br": cls.BROTLI,
            "identity": cls.RAW,
            "*": cls.RAW,
        }
        try:
            return names[text]
        except KeyError:
            raise OtherError("Encoding not supported") from None

    def __str__(self) -> str:
        return {
            Compression.DEFLATE: "deflate",
            Compression.GZIP: "gzip",
            Compression.BROTLI: "br",
        }.get(self, "")


class _ContextManaged:
    """Closes the object on leaving a ``with`` block."""

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class File(_ContextManaged):
    """A file on disk."""

    def __init__(self, handle: BinaryIO, path: Path, mime: str | None = None) -> None:
        self._handle = handle
        self.path = path
        self._mime = mime

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> File:
        """Open ``path`` for reading; raises ``OSError`` if it cannot be opened."""
        file_path = Path(path)
        return cls(file_path.open("rb"), file_path)

    @property
    def mime(self) -> str | None:
        return self._mime

    @property
    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def read(self, size: int = -1) -> bytes:
        return self._handle.read(size)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._handle.seek(offset, whence)

    def close(self) -> None:
        self._handle.close()


class FileCursor(_ContextManaged):
    """File contents held in memory."""

    def __init__(self, data: bytes, mime: str | None, path: str | os.PathLike[str]) -> None:
        self._handle = io.BytesIO(data)
        self._size = len(data)
        self._mime = mime
        self.path = Path(path)

    @property
    def mime(self) -> str | None:
        return self._mime

    @property
    def size(self) -> int:
        return self._size

    def read(self, size: int = -1) -> bytes:
        return self._handle.read(size)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._handle.seek(offset, whence)

    def close(self) -> None:
        self._handle.close()


class FileStream:
    """Iterates over a file's contents in chunks, optionally limited to a range."""

    def __init__(self, inner: SaphirFile) -> None:
        self._inner = inner
        self._range_len: int | None = None

    def set_range(self, range_: tuple[int, int]) -> None:
        """Restrict the stream to the inclusive byte span ``range_``."""
        start, end = range_
        self._inner.seek(start)
        self._range_len = end - start + 1

    @property
    def size(self) -> int:
        return self._inner.size

    @property
    def path(self) -> Path:
        return self._inner.path

    @property
    def mime(self) -> str | None:
        return self._inner.mime

    def __iter__(self) -> Iterator[bytes]:
        if self._range_len is not None:
            yield from self._ranged(self._range_len)
        else:
            yield from self._buffered()

    def _ranged(self, length: int) -> Iterator[bytes]:
        collected = bytearray()
        while len(collected) < length:
            data = self._inner.read(length - len(collected))
            if not data:
                break
            collected += data
        if collected:
            yield bytes(collected[:length])

    def _buffered(self) -> Iterator[bytes]:
        chunk = bytearray()
        while data := self._inner.read(MAX_BUFFER):
            chunk += data
            if len(chunk) >= MAX_BUFFER:
                yield bytes(chunk)
                chunk.clear()
        if chunk:
            yield bytes(chunk)

    def close(self) -> None:
        self._inner.close()

    def __enter__(self) -> FileStream:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _encoder(compression: Compression) -> tuple[Callable[[bytes], bytes], Callable[[], bytes]]:
    if compression is Compression.GZIP:
        gz = zlib.compressobj(6, zlib.DEFLATED, 16 + zlib.MAX_WBITS)
        return gz.compress, gz.flush
    if compression is Compression.DEFLATE:
        raw = zlib.compressobj(6, zlib.DEFLATED, -zlib.MAX_WBITS)
        return raw.compress, raw.flush
    if compression is Compression.BROTLI:
        br = brotli.Compressor(quality=6, lgwin=22)
        return br.process, br.finish
    return (lambda data: data), (lambda: b"")


def compress_file(file: Any, compression: Compression) -> bytes:
    """Read ``file`` to the end and return its contents encoded as ``compression``."""
    feed, finish = _encoder(compression)
    parts = []
    while data := file.read(MAX_BUFFER):
        parts.append(feed(data))
    parts.append(finish())
    return b"".join(parts)
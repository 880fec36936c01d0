"""In-memory cache of served files, raw and compressed."""

from __future__ import annotations

import errno
import os
import threading
from pathlib import Path
from typing import Any

from .errors import SaphirIoError
from .files import Compression, File, FileCursor, FileStream, compress_file

CacheKey = tuple[str, Compression]


def _key(path: str | os.PathLike[str], compression: Compression) -> CacheKey:
    return (os.fspath(path), Compression(compression))


class FileCache:
    """Keeps file contents in memory, keyed by path and encoding.

    Files larger than ``max_file_size`` are never cached, and nothing is cached
    once the total would exceed ``max_capacity``.
    """

    def __init__(self, max_file_size: int, max_capacity: int) -> None:
        self.max_file_size = max_file_size
        self.max_capacity = max_capacity
        self._entries: dict[CacheKey, bytes] = {}
        self._size = 0
        self._lock = threading.Lock()

    def _lookup(self, key: CacheKey) -> bytes | None:
        with self._lock:
            return self._entries.get(key)

    def get(self, path: str | os.PathLike[str], compression: Compression) -> CachedFile | None:
        """A reader over the cached entry, or ``None`` if it is not cached."""
        key = _key(path, compression)
        data = self._lookup(key)
        if data is None:
            return None
        return CachedFile(self, key, len(data))

    def insert(self, path: str | os.PathLike[str], compression: Compression, data: bytes) -> None:
        """Store ``data`` for the path and encoding; its length counts toward the size."""
        key = _key(path, compression)
        with self._lock:
            self._size += len(data)
            self._entries[key] = bytes(data)

    def size(self) -> int:
        """Total number of bytes inserted so far."""
        with self._lock:
            return self._size

    def open_file(self, path: str | os.PathLike[str], compression: Compression) -> FileStream:
        """Stream the file encoded as ``compression``, caching it when it fits."""
        cached = self.get(path, compression)
        if cached is not None:
            return FileStream(cached)

        source: Any = self.get(path, Compression.RAW)
        try:
            if source is None:
                source = File.open(path)
            with source:
                file_size = source.size
                mime = source.mime
                data = compress_file(source, compression)
        except OSError as exc:
            raise SaphirIoError(exc) from exc

        cursor = FileCursor(data, mime, path)
        if file_size + self.size() <= self.max_capacity and file_size <= self.max_file_size:
            return FileStream(FileCacher(path, compression, cursor, self))
        return FileStream(cursor)

    def open_file_with_range(
        self, path: str | os.PathLike[str], range_: tuple[int, int]
    ) -> FileStream:
        """Stream the inclusive byte span ``range_`` of the raw file."""
        try:
            cached = self.get(path, Compression.RAW)
            stream = FileStream(cached if cached is not None else File.open(path))
            stream.set_range(range_)
        except OSError as exc:
            raise SaphirIoError(exc) from exc
        return stream


class CachedFile:
    """A seekable reader over an entry of a :class:`FileCache`."""

    def __init__(self, cache: FileCache, key: CacheKey, size: int) -> None:
        self._cache = cache
        self._key = key
        self._size = size
        self._position = 0
        self.path = Path(key[0])

    @property
    def mime(self) -> str | None:
        return None

    @property
    def size(self) -> int:
        return self._size

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all remaining when negative)."""
        data = self._cache._lookup(self._key)
        if data is None:
            raise BrokenPipeError(errno.EPIPE, "cached file is no longer available")
        end = len(data) if size is None or size < 0 else self._position + size
        chunk = data[self._position:end]
        self._position += len(chunk)
        return chunk

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the read position; positions before the start are rejected."""
        if whence == os.SEEK_SET:
            if not 0 <= offset < self._size:
                raise OSError(errno.EINVAL, "invalid seek position")
            self._position = offset
        elif whence == os.SEEK_CUR:
            if offset + self._position < 0:
                raise OSError(errno.EINVAL, "invalid seek position")
            self._position += offset
        elif whence == os.SEEK_END:
            if self._size + offset < 0:
                raise OSError(errno.EINVAL, "invalid seek position")
            self._position = self._size + offset
        else:
            raise OSError(errno.EINVAL, "invalid whence")
        return self._position

    def close(self) -> None:
        """Nothing to release; the entry stays in the cache."""

    def __enter__(self) -> CachedFile:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class FileCacher:
    """Passes reads through and stores what was read in the cache on close."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        compression: Compression,
        inner: Any,
        cache: FileCache,
    ) -> None:
        self._path = path
        self._compression = compression
        self._inner = inner
        self._cache = cache
        self._buffer = bytearray()
        self._saved = False

    @property
    def path(self) -> Path:
        return self._inner.path

    @property
    def mime(self) -> str | None:
        return self._inner.mime

    @property
    def size(self) -> int:
        return self._inner.size

    def read(self, size: int = -1) -> bytes:
        data = self._inner.read(size)
        self._buffer += data
        return data

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._inner.seek(offset, whence)

    def close(self) -> None:
        """Save what was read into the cache (once) and close the inner reader."""
        if self._saved:
            return
        self._saved = True
        self._cache.insert(self._path, self._compression, bytes(self._buffer))
        self._buffer = bytearray()
        self._inner.close()

    def __enter__(self) -> FileCacher:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
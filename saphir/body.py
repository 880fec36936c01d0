"""Request and response bodies, loaded lazily from a stream of chunks."""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import Any, Union
from urllib.parse import parse_qsl

from .errors import BodyAlreadyTaken, CustomError, FormError, JsonError, SaphirError, from_exception

Chunks = Union[AsyncIterable[bytes], Iterable[bytes]]


async def _iterate(chunks: Chunks) -> AsyncIterator[bytes]:
    if hasattr(chunks, "__aiter__"):
        async for chunk in chunks:
            yield chunk
    else:
        for chunk in chunks:
            yield chunk


async def load_chunks(chunks: Chunks, limit: int | None = None) -> bytes:
    """Collect chunks into bytes.

    Reading stops at the first chunk that brings the total to ``limit`` or
    beyond; that chunk is kept whole. A limit of 0 reads nothing.
    """
    if limit == 0:
        return b""
    buffer = bytearray()
    try:
        async for chunk in _iterate(chunks):
            buffer += chunk
            if limit is not None and len(buffer) >= limit:
                break
    except SaphirError:
        raise
    except Exception as exc:
        raise from_exception(exc) from exc
    return bytes(buffer)


class Body:
    """A body held in memory or streamed as chunks.

    A body made with no source has been taken: reading it raises
    :class:`BodyAlreadyTaken`. Once loaded, the contents stay in memory and can
    be read again.
    """

    def __init__(self, source: bytes | Chunks | None = None, *, limit: int | None = None) -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = bytes(source)
        self._inner: bytes | Chunks | None = source
        self.limit = limit

    @classmethod
    def empty(cls) -> Body:
        """A body with no content."""
        return cls(b"")

    @classmethod
    def from_bytes(cls, data: bytes) -> Body:
        """A body holding ``data`` in memory."""
        return cls(bytes(data))

    @property
    def is_taken(self) -> bool:
        return self._inner is None

    def take(self) -> Body:
        """Move the contents into a new body, leaving this one taken."""
        taken = Body(limit=self.limit)
        taken._inner = self._inner
        self._inner = None
        return taken

    async def load(self) -> bytes:
        """Read the whole body (up to the limit) and keep it in memory."""
        inner = self._inner
        if inner is None:
            raise BodyAlreadyTaken()
        if self.limit == 0:
            data = b""
        elif isinstance(inner, bytes):
            data = inner
        else:
            self._inner = None
            data = await load_chunks(inner, self.limit)
        self._inner = data
        return data

    async def bytes(self) -> bytes:
        """The body as bytes."""
        return await self.load()

    async def text(self) -> str:
        """The body decoded as UTF-8."""
        data = await self.load()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CustomError(exc) from exc

    async def json(self) -> Any:
        """The body parsed as JSON."""
        data = await self.load()
        try:
            return json.loads(data)
        except ValueError as exc:
            raise JsonError(exc) from exc

    async def form(self) -> dict[str, str]:
        """The body parsed as ``application/x-www-form-urlencoded`` data."""
        data = await self.load()
        try:
            text = data.decode("utf-8")
            pairs = parse_qsl(text, keep_blank_values=True, strict_parsing=True, errors="strict")
        except ValueError as exc:
            raise FormError(exc) from exc
        return dict(pairs)

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks()

    async def _chunks(self) -> AsyncIterator[bytes]:
        inner = self._inner
        if inner is None:
            raise BodyAlreadyTaken()
        if isinstance(inner, bytes):
            if inner:
                yield inner
            return
        self._inner = None
        try:
            async for chunk in _iterate(inner):
                yield chunk
        except SaphirError:
            raise
        except Exception as exc:
            raise from_exception(exc) from exc
        self._inner = b""
"""The HTTP ``Content-Range`` response header."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import OtherError

_U64_MAX = 2**64 - 1
_U64_RE = re.compile(r"\+?[0-9]+")


def _parse_u64(text: str, message: str) -> int:
    if not _U64_RE.fullmatch(text):
        raise OtherError(message)
    value = int(text)
    if value > _U64_MAX:
        raise OtherError(message)
    return value


@dataclass(frozen=True)
class BytesContentRange:
    """A ``bytes`` Content-Range.

    ``range`` is the inclusive ``(first, last)`` pair, ``None`` when the request
    could not be satisfied; ``instance_length`` is ``None`` when unknown.
    """

    range: tuple[int, int] | None
    instance_length: int | None

    def __str__(self) -> str:
        span = "*" if self.range is None else f"{self.range[0]}-{self.range[1]}"
        length = "*" if self.instance_length is None else str(self.instance_length)
        return f"bytes {span}/{length}"


@dataclass(frozen=True)
class UnregisteredContentRange:
    """A Content-Range whose unit is not ``bytes``."""

    unit: str
    resp: str

    def __str__(self) -> str:
        return f"{self.unit} {self.resp}"


def parse_content_range(text: str) -> BytesContentRange | UnregisteredContentRange:
    """Parse a Content-Range header value."""
    unit, sep, resp = text.partition(" ")
    if not sep:
        raise OtherError("Range missing or incomplete")
    if unit != "bytes":
        return UnregisteredContentRange(unit, resp)

    span, sep, length = resp.partition("/")
    if not sep:
        raise OtherError("Could not parse Content-Range")

    instance_length = None if length == "*" else _parse_u64(length, "Could not parse Content-Range")

    if span == "*":
        return BytesContentRange(None, instance_length)

    first_text, sep, last_text = span.partition("-")
    if not sep:
        raise OtherError("Could not parse bytes in range")
    first = _parse_u64(first_text, "Could not parse byte in range")
    last = _parse_u64(last_text, "Could not parse byte in range")
    if last < first:
        raise OtherError("Byte order incorrect")
    return BytesContentRange((first, last), instance_length)
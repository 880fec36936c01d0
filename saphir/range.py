"""The HTTP ``Range`` request header."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .errors import OtherError

_U64_MAX = 2**64 - 1
_U64_RE = re.compile(r"\+?[0-9]+")


def _parse_u64(text: str) -> int:
    if not _U64_RE.fullmatch(text):
        raise OtherError("Could not parse bytes")
    value = int(text)
    if value > _U64_MAX:
        raise OtherError("Could not parse bytes")
    return value


class ByteRangeSpec(ABC):
    """One byte range within a ``bytes`` Range header."""

    @abstractmethod
    def to_satisfiable_range(self, full_length: int) -> tuple[int, int] | None:
        """Normalize into an inclusive ``(first, last)`` within ``full_length``.

        Returns ``None`` when the range cannot be satisfied.
        """


@dataclass(frozen=True)
class FromTo(ByteRangeSpec):
    """Bytes ``start`` through ``end`` (``"x-y"``)."""

    start: int
    end: int

    def to_satisfiable_range(self, full_length: int) -> tuple[int, int] | None:
        if full_length == 0:
            return None
        if self.start < full_length and self.start <= self.end:
            return (self.start, min(self.end, full_length - 1))
        return None

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class AllFrom(ByteRangeSpec):
    """Every byte from ``start`` on (``"x-"``)."""

    start: int

    def to_satisfiable_range(self, full_length: int) -> tuple[int, int] | None:
        if full_length == 0 or self.start >= full_length:
            return None
        return (self.start, full_length - 1)

    def __str__(self) -> str:
        return f"{self.start}-"


@dataclass(frozen=True)
class Last(ByteRangeSpec):
    """The last ``length`` bytes (``"-x"``)."""

    length: int

    def to_satisfiable_range(self, full_length: int) -> tuple[int, int] | None:
        if full_length == 0 or self.length == 0:
            return None
        if self.length > full_length:
            return (0, full_length - 1)
        return (full_length - self.length, full_length - 1)

    def __str__(self) -> str:
        return f"-{self.length}"


@dataclass(frozen=True)
class BytesRange:
    """A ``bytes=`` Range header holding one or more specs."""

    specs: tuple[ByteRangeSpec, ...]

    def __str__(self) -> str:
        return "bytes=" + ",".join(str(spec) for spec in self.specs)


@dataclass(frozen=True)
class UnregisteredRange:
    """A Range header with a unit other than ``bytes``."""

    unit: str
    value: str

    def __str__(self) -> str:
        return f"{self.unit}={self.value}"


def parse_byte_range_spec(text: str) -> ByteRangeSpec:
    """Parse one spec such as ``"1-100"``, ``"200-"`` or ``"-50"``."""
    start, sep, end = text.partition("-")
    if not sep:
        raise OtherError("ByteRange is missing or incomplete")
    if start == "":
        return Last(_parse_u64(end))
    if end == "":
        return AllFrom(_parse_u64(start))
    try:
        first, last = _parse_u64(start), _parse_u64(end)
    except OtherError:
        raise OtherError("Could not parse bytes") from None
    if first > last:
        raise OtherError("Could not parse bytes")
    return FromTo(first, last)


def _specs_from_comma_delimited(text: str) -> list[ByteRangeSpec]:
    specs = []
    for item in (part.strip() for part in text.split(",")):
        if not item:
            continue
        try:
            specs.append(parse_byte_range_spec(item))
        except OtherError:
            continue
    return specs


def parse_range(text: str) -> BytesRange | UnregisteredRange:
    """Parse a Range header value; invalid entries in a byte set are skipped."""
    unit, sep, rest = text.partition("=")
    if sep and unit == "bytes":
        specs = _specs_from_comma_delimited(rest)
        if not specs:
            raise OtherError("Range is empty")
        return BytesRange(tuple(specs))
    if sep and unit and rest:
        return UnregisteredRange(unit, rest)
    raise OtherError("Bad Format")
"""Entity tags and timestamps used for HTTP validation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def _strip_repeated_prefix(text: str, prefix: str) -> str:
    while prefix and text.startswith(prefix):
        text = text[len(prefix):]
    return text


@dataclass(frozen=True)
class EntityTag:
    """An HTTP entity tag, strong unless ``weak`` is set."""

    tag: str
    weak: bool = False

    @classmethod
    def parse(cls, text: str) -> EntityTag:
        """Parse a header value such as ``"abc"`` or ``W/"abc"``."""
        if text.startswith("W/"):
            return cls(_strip_repeated_prefix(text, 'W/"').rstrip('"'), weak=True)
        return cls(text.lstrip('"').rstrip('"'))

    def weak_eq(self, other: EntityTag) -> bool:
        """Weak comparison: the opaque tags are equal."""
        return self.tag == other.tag

    def strong_eq(self, other: EntityTag) -> bool:
        """Strong comparison: both tags are strong and equal."""
        return not self.weak and not other.weak and self.tag == other.tag

    def __str__(self) -> str:
        return f'W/"{self.tag}"' if self.weak else f'"{self.tag}"'


def timestamp(moment: datetime | float | int) -> int:
    """Whole seconds since the Unix epoch; moments before it count as 0.

    Naive datetimes are taken to be UTC.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        seconds = moment.timestamp()
    else:
        seconds = float(moment)
    return max(0, int(seconds))
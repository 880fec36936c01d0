"""Handling of HTTP range requests (``Range`` / ``If-Range``)."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from .content_range import BytesContentRange, UnregisteredContentRange
from .etag import EntityTag, timestamp
from .range import BytesRange, UnregisteredRange

RANGE = "Range"
IF_RANGE = "If-Range"


def _header(headers: Mapping[str, Any] | None, name: str) -> Any:
    if not headers:
        return None
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    return next((v for k, v in headers.items() if k.lower() == lowered), None)


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode("ascii")
        except UnicodeDecodeError:
            return None
    if all(ch == "\t" or " " <= ch <= "~" for ch in value):
        return value
    return None


def _parse_rfc2822(text: str) -> datetime | None:
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_range_fresh(
    headers: Mapping[str, Any] | None,
    etag: EntityTag,
    last_modified: datetime | float,
) -> bool:
    """True if the ``If-Range`` validator (if any) still matches the resource.

    Without a ``Range`` header the check does not apply and ``False`` is
    returned. Entity tags are compared strongly; dates must match to the second.
    """
    if _header(headers, RANGE) is None:
        return False
    if_range = _as_text(_header(headers, IF_RANGE))
    if if_range is not None:
        if if_range.startswith('"') or if_range.startswith('W/"'):
            return etag.strong_eq(EntityTag.parse(if_range))
        date = _parse_rfc2822(if_range)
        if date is not None:
            return timestamp(last_modified) == timestamp(date)
    return True


def satisfiable_content_range(
    range_: BytesRange | UnregisteredRange,
    instance_length: int,
) -> BytesContentRange | None:
    """The Content-Range answering ``range_``, or ``None`` if it is unsatisfiable.

    Only a single satisfiable byte range yields a result; other units and
    multiple ranges are treated as unsatisfiable.
    """
    if not isinstance(range_, BytesRange) or len(range_.specs) != 1:
        return None
    span = range_.specs[0].to_satisfiable_range(instance_length)
    if span is None:
        return None
    return BytesContentRange(span, instance_length)


def extract_range(
    content_range: BytesContentRange | UnregisteredContentRange,
) -> tuple[int, int] | None:
    """The inclusive byte span of a ``bytes`` Content-Range, if it has one."""
    if isinstance(content_range, BytesContentRange):
        return content_range.range
    return None
"""Evaluation of HTTP conditional request headers."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any

from .errors import OtherError
from .etag import EntityTag, timestamp

IF_MATCH = "If-Match"
IF_NONE_MATCH = "If-None-Match"
IF_UNMODIFIED_SINCE = "If-Unmodified-Since"

_RFC850_FORMAT = "%A, %d-%b-%y %H:%M:%S %Z"
_ASCTIME_FORMAT = "%a %b %d %H:%M:%S %Y"


def _raw_header(headers: Mapping[str, Any] | None, name: str) -> Any:
    if not headers:
        return None
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def _header_text(value: Any) -> str | None:
    """The header value as text, or ``None`` if it is not visible ASCII."""
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


def _since_header(headers: Mapping[str, Any] | None, name: str) -> datetime | None:
    text = _header_text(_raw_header(headers, name))
    if text is None:
        return None
    try:
        return parse_http_date(text)
    except OtherError:
        return None


def check_if_match(etag: EntityTag, if_match: str) -> bool:
    """Validate ``If-Match`` with the strong comparison."""
    return if_match.strip() == "*" or any(
        etag.strong_eq(EntityTag.parse(item.strip())) for item in if_match.split(",")
    )


def check_if_none_match(etag: EntityTag, if_none_match: str) -> bool:
    """Validate ``If-None-Match`` with the weak comparison."""
    return if_none_match.strip() != "*" and all(
        not etag.weak_eq(EntityTag.parse(item.strip())) for item in if_none_match.split(",")
    )


def check_if_unmodified_since(last_modified: datetime | float, since: datetime | float) -> bool:
    """True if the resource was not modified after ``since`` (second precision)."""
    return timestamp(last_modified) <= timestamp(since)


def check_if_modified_since(last_modified: datetime | float, since: datetime | float) -> bool:
    """True if the resource was modified after ``since`` (second precision)."""
    return not check_if_unmodified_since(last_modified, since)


def _is_get_or_head(method: str) -> bool:
    return method in ("GET", "HEAD")


def is_precondition_failed(
    method: str,
    headers: Mapping[str, Any] | None,
    etag: EntityTag,
    last_modified: datetime | float,
) -> bool:
    """True if any precondition of the request fails (status 412)."""
    has_if_none_match = _raw_header(headers, IF_NONE_MATCH) is not None
    none_match_blocks = has_if_none_match and not _is_get_or_head(method)

    if_match = _raw_header(headers, IF_MATCH)
    if if_match is not None:
        if not check_if_match(etag, _header_text(if_match) or ""):
            return True
        if none_match_blocks:
            return True

    since = _since_header(headers, IF_UNMODIFIED_SINCE)
    if since is not None:
        if not check_if_unmodified_since(last_modified, since):
            return True
        if none_match_blocks:
            return True

    return none_match_blocks


def is_fresh(
    headers: Mapping[str, Any] | None,
    etag: EntityTag,
    last_modified: datetime | float,
) -> bool:
    """True if the client's cached copy is still valid; ``If-None-Match`` wins."""
    if_none_match = _header_text(_raw_header(headers, IF_NONE_MATCH))
    if if_none_match is not None:
        return not check_if_none_match(etag, if_none_match)
    since = _since_header(headers, IF_UNMODIFIED_SINCE)
    if since is not None:
        return not check_if_modified_since(last_modified, since)
    return False


def _as_utc(moment: datetime | float | int) -> datetime:
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)
    return datetime.fromtimestamp(float(moment), timezone.utc)


def format_http_date(moment: datetime | float | int) -> str:
    """Format a moment as an IMF-fixdate, e.g. ``Sun, 06 Nov 1994 08:49:37 GMT``."""
    return format_datetime(_as_utc(moment).replace(microsecond=0), usegmt=True)


def parse_http_date(text: str) -> datetime:
    """Parse an RFC 2822, RFC 850 or asctime date into an aware datetime."""
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is None:
        for fmt in (_RFC850_FORMAT, _ASCTIME_FORMAT):
            try:
                parsed = datetime.strptime(text.strip(), fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        raise OtherError("Cannot parse date from header")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
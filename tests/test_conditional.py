from datetime import datetime, timedelta, timezone

import pytest

from saphir.conditional import (
    check_if_match,
    check_if_modified_since,
    check_if_none_match,
    check_if_unmodified_since,
    format_http_date,
    is_fresh,
    is_precondition_failed,
    parse_http_date,
)
from saphir.errors import OtherError
from saphir.etag import EntityTag


def _init():
    return EntityTag("hello"), datetime.now(timezone.utc)


# match / none match

def test_match_any():
    etag = EntityTag("")
    assert check_if_match(etag, "*")
    assert not check_if_none_match(etag, "*")


def test_match_one():
    etag = EntityTag("2")
    tags = ",".join(str(EntityTag(t)) for t in ("0", "1", "2"))
    assert check_if_match(etag, tags)
    assert not check_if_none_match(etag, tags)


def test_match_none():
    etag = EntityTag("0")
    tags = str(EntityTag("1"))
    assert not check_if_match(etag, tags)
    assert check_if_none_match(etag, tags)


def test_weak_tag_fails_if_match_but_counts_for_none_match():
    etag = EntityTag("x")
    weak = str(EntityTag("x", weak=True))
    assert not check_if_match(etag, weak)
    assert not check_if_none_match(etag, weak)


# modified / unmodified since

def test_since_now():
    now = datetime.now(timezone.utc)
    last_modified = now
    assert not check_if_modified_since(last_modified, now)
    assert check_if_unmodified_since(last_modified, now)


def test_since_after_one_sec():
    now = datetime.now(timezone.utc)
    last_modified = now
    modified = now + timedelta(seconds=1)
    assert not check_if_modified_since(last_modified, modified)
    assert check_if_unmodified_since(last_modified, modified)


def test_since_one_sec_ago():
    now = datetime.now(timezone.utc)
    last_modified = now
    modified = now - timedelta(seconds=1)
    assert check_if_modified_since(last_modified, modified)
    assert not check_if_unmodified_since(last_modified, modified)


# freshness

def test_fresh_no_precondition_header_fields():
    etag, date = _init()
    assert not is_fresh({}, etag, date)


def test_fresh_if_none_match_precedes_if_modified_since():
    etag, date = _init()
    headers = {
        "If-None-Match": str(etag),
        "If-Modified-Since": format_http_date(date + timedelta(seconds=1)),
    }
    assert is_fresh(headers, etag, date)


def test_fresh_header_names_are_case_insensitive():
    etag, date = _init()
    assert is_fresh({"if-none-match": str(etag)}, etag, date)


# preconditions

def test_ok_without_any_precondition():
    etag, date = _init()
    assert not is_precondition_failed("GET", {}, etag, date)


def test_failed_with_if_match_not_passes():
    etag, date = _init()
    headers = {"If-Match": str(EntityTag(""))}
    assert is_precondition_failed("GET", headers, etag, date)


def test_with_if_match_passes_get():
    etag, date = _init()
    headers = {
        "If-Match": str(EntityTag("hello")),
        "If-None-Match": str(EntityTag("world")),
    }
    assert not is_precondition_failed("GET", headers, etag, date)


def test_with_if_match_fails_post():
    etag, date = _init()
    headers = {
        "If-Match": str(EntityTag("hello")),
        "If-None-Match": str(EntityTag("world")),
    }
    assert is_precondition_failed("POST", headers, etag, date)


def test_failed_with_if_unmodified_since_not_passes():
    etag, date = _init()
    headers = {"If-Unmodified-Since": format_http_date(date - timedelta(seconds=1))}
    assert is_precondition_failed("GET", headers, etag, date)


def test_with_if_unmodified_since_passes_get():
    etag, date = _init()
    headers = {
        "If-Unmodified-Since": format_http_date(date),
        "If-None-Match": str(EntityTag("nonematch")),
    }
    assert not is_precondition_failed("GET", headers, etag, date)


def test_with_if_unmodified_since_fails_post():
    etag, date = _init()
    headers = {
        "If-Unmodified-Since": format_http_date(date),
        "If-None-Match": str(EntityTag("nonematch")),
    }
    assert is_precondition_failed("POST", headers, etag, date)


# dates

def test_format_http_date_pinned():
    moment = datetime(1994, 11, 6, 8, 49, 37, tzinfo=timezone.utc)
    assert format_http_date(moment) == "Sun, 06 Nov 1994 08:49:37 GMT"


def test_http_date_round_trip():
    moment = datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
    assert parse_http_date(format_http_date(moment)) == moment


def test_parse_all_three_formats_agree():
    expected = datetime(1994, 11, 6, 8, 49, 37, tzinfo=timezone.utc)
    assert parse_http_date("Sun, 06 Nov 1994 08:49:37 GMT") == expected
    assert parse_http_date("Sunday, 06-Nov-94 08:49:37 GMT") == expected
    assert parse_http_date("Sun Nov  6 08:49:37 1994") == expected


def test_parse_invalid_date():
    with pytest.raises(OtherError):
        parse_http_date("not a date")


def test_unparseable_since_header_is_ignored():
    etag, date = _init()
    headers = {"If-Unmodified-Since": "garbage"}
    assert not is_precondition_failed("GET", headers, etag, date)
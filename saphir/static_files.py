"""Serving static files from a directory, with caching, ranges and validation."""

from __future__ import annotations

import inspect
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import unquote_to_bytes

from .cache import FileCache
from .conditional import format_http_date, is_fresh, is_precondition_failed
from .errors import OtherError
from .etag import EntityTag, timestamp
from .files import Compression, FileStream, guess_mime
from .range import BytesRange, UnregisteredRange, parse_range
from .range_requests import extract_range, is_range_fresh, satisfiable_content_range

DEFAULT_CACHE_MAX_FILE_SIZE = 2_097_152
DEFAULT_CACHE_MAX_CAPACITY = 536_870_912
DEFAULT_MAX_AGE = 0
DEFAULT_INDEX_FILES = ("index.html", "index.htm")
DEFAULT_TRY_FILES = ("$uri", "$uri/")

NotFoundHandler = Callable[[str, str, Mapping[str, Any]], Any]


@dataclass
class StaticResponse:
    """The outcome of serving a request: status, headers and an optional body."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: FileStream | None = None


def is_hidden(path: str | os.PathLike[str]) -> bool:
    """True if the last component of ``path`` starts with a dot."""
    name = Path(path).name
    if name in ("", ".."):
        return False
    return name.startswith(".")


def _header(headers: Mapping[str, Any] | None, name: str) -> str | None:
    if not headers:
        return None
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        value = next((v for k, v in headers.items() if k.lower() == lowered), None)
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


def _accepted_compression(headers: Mapping[str, Any] | None) -> Compression:
    value = _header(headers, "Accept-Encoding")
    if value is None:
        return Compression.RAW
    choices = []
    for token in value.split(","):
        try:
            choices.append(Compression.parse(token.strip()))
        except OtherError:
            choices.append(Compression.RAW)
    return max(choices, default=Compression.RAW)


def _requested_range(headers: Mapping[str, Any] | None) -> BytesRange | UnregisteredRange | None:
    value = _header(headers, "Range")
    if value is None:
        return None
    try:
        return parse_range(value)
    except OtherError:
        return None


class FileMiddleware:
    """Serves files under ``www_path`` for request paths under ``base_path``."""

    def __init__(
        self,
        base_path: str | os.PathLike[str],
        www_path: str | os.PathLike[str],
        *,
        index_files: list[str] | None = None,
        try_files: list[str] | None = None,
        cache: FileCache | None = None,
        file_not_found_handler: NotFoundHandler | None = None,
        max_age: int = DEFAULT_MAX_AGE,
    ) -> None:
        self.base_path = Path(base_path)
        self.www_path = Path(www_path)
        self.index_files = list(DEFAULT_INDEX_FILES if index_files is None else index_files)
        self.try_files = list(DEFAULT_TRY_FILES if try_files is None else try_files)
        self.cache = cache or FileCache(DEFAULT_CACHE_MAX_FILE_SIZE, DEFAULT_CACHE_MAX_CAPACITY)
        self.file_not_found_handler = file_not_found_handler
        self.max_age = max_age

    def _file_path_from_path(self, text: str) -> Path:
        relative = Path(unquote_to_bytes(text[1:]).decode("utf-8"))
        if relative.is_relative_to(self.base_path):
            relative = relative.relative_to(self.base_path)
        return self.www_path / relative

    def _resolve(self, request_path: str) -> tuple[Path | None, int | None]:
        for entry in self.try_files:
            if len(entry) == 4 and entry.startswith("="):
                code_text = entry[1:]
                if not (code_text.isascii() and code_text.isdigit()) or int(code_text) > 65535:
                    raise ValueError(f"Invalid token provided to try_files: {entry}")
                return None, int(code_text)

            candidate = entry.replace("$uri", request_path)
            wants_dir = candidate.endswith("/")
            try:
                target = self._file_path_from_path(candidate)
            except UnicodeDecodeError:
                continue
            if is_hidden(target):
                continue
            if wants_dir:
                if target.is_dir():
                    for index in self.index_files:
                        index_path = target / index
                        if index_path.is_file():
                            return index_path, None
            elif target.is_file():
                return target, None
        return None, None

    async def serve(
        self,
        method: str,
        path: str,
        headers: Mapping[str, Any] | None = None,
    ) -> StaticResponse:
        """Answer a request for ``path`` made with ``method`` and ``headers``."""
        headers = headers or {}
        is_head = method.upper() == "HEAD"

        file_path, response_code = self._resolve(path)
        if file_path is None:
            if self.file_not_found_handler is not None:
                result = self.file_not_found_handler(method, path, headers)
                if inspect.isawaitable(result):
                    result = await result
                return result
            return StaticResponse(status=response_code or 404)

        if not file_path.is_relative_to(self.www_path):
            return StaticResponse(status=401)

        stat = file_path.stat()
        last_modified = stat.st_mtime
        size = stat.st_size
        etag = EntityTag(f"{timestamp(last_modified)}-{size}")

        if is_precondition_failed(method.upper(), headers, etag, last_modified):
            return StaticResponse(status=412)

        if is_fresh(headers, etag, last_modified):
            return StaticResponse(status=304, headers={"Last-Modified": format_http_date(last_modified)})

        response = StaticResponse()
        compression = _accepted_compression(headers)
        is_partial = False

        requested = _requested_range(headers)
        if requested is not None:
            content_range = satisfiable_content_range(requested, size)
            if is_range_fresh(headers, etag, last_modified) and content_range is not None:
                span = extract_range(content_range)
                if span is not None and not is_head:
                    response.body = self.cache.open_file_with_range(file_path, span)
                    size = span[1] - span[0] + 1
                response.headers["Content-Range"] = str(content_range)
                response.status = 206
                is_partial = True

        if not is_partial and not is_head:
            stream = self.cache.open_file(file_path, compression)
            size = stream.size
            response.body = stream

        if compression is not Compression.RAW:
            response.headers["Content-Encoding"] = str(compression)

        response.headers.update(
            {
                "Accept-Ranges": "bytes",
                "Content-Type": guess_mime(file_path),
                "Content-Length": str(size),
                "Cache-Control": f"public, max-age={self.max_age}",
                "ETag": str(etag),
            }
        )
        return response


class FileMiddlewareBuilder:
    """Configures a :class:`FileMiddleware` step by step."""

    def __init__(self, base_path: str | os.PathLike[str], www_path: str | os.PathLike[str]) -> None:
        self._base_path = Path(base_path)
        self._www_path = Path(www_path)
        self._index_files: list[str] | None = None
        self._try_files: list[str] | None = None
        self._max_file_size: int | None = None
        self._max_capacity: int | None = None
        self._file_not_found_handler: NotFoundHandler | None = None
        self._max_age = DEFAULT_MAX_AGE

    def max_file_size(self, size: int) -> FileMiddlewareBuilder:
        """Largest single file kept in the in-memory cache (default 2MB)."""
        self._max_file_size = size
        return self

    def max_capacity(self, size: int) -> FileMiddlewareBuilder:
        """Total capacity of the in-memory cache (default 512MB)."""
        self._max_capacity = size
        return self

    def max_age(self, max_age: int) -> FileMiddlewareBuilder:
        """Value of ``max-age`` in the ``Cache-Control`` header (default 0)."""
        self._max_age = max_age
        return self

    def index_files(self, index_files: str) -> FileMiddlewareBuilder:
        """Space-separated index files tried in order for a directory."""
        self._index_files = [name.strip() for name in index_files.split(" ")]
        return self

    def no_directory_index(self) -> FileMiddlewareBuilder:
        """Never look up an index file for a directory."""
        self._index_files = []
        return self

    def try_files(self, try_files: str) -> FileMiddlewareBuilder:
        """Space-separated candidates using ``$uri``; ``=NNN`` ends with that status."""
        self._try_files = [name.strip() for name in try_files.split(" ")]
        return self

    def file_not_found_handler(self, handler: NotFoundHandler) -> FileMiddlewareBuilder:
        """Call ``handler(method, path, headers)`` when no file is found."""
        self._file_not_found_handler = handler
        return self

    def build(self) -> FileMiddleware:
        """Create the configured middleware."""
        cache = FileCache(
            DEFAULT_CACHE_MAX_FILE_SIZE if self._max_file_size is None else self._max_file_size,
            DEFAULT_CACHE_MAX_CAPACITY if self._max_capacity is None else self._max_capacity,
        )
        return FileMiddleware(
            self._base_path,
            self._www_path,
            index_files=self._index_files,
            try_files=self._try_files,
            cache=cache,
            file_not_found_handler=self._file_not_found_handler,
            max_age=self._max_age,
        )
import gzip

import pytest

from saphir.static_files import FileMiddlewareBuilder, StaticResponse, is_hidden

CONTENT = b"Hello, static world!\n" * 10


@pytest.fixture
def site(tmp_path):
    (tmp_path / "hello.txt").write_bytes(CONTENT)
    (tmp_path / "hello world.txt").write_bytes(b"spaced")
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "index.html").write_text("<h1>docs</h1>")
    (docs / "home.html").write_text("<h1>home</h1>")
    (tmp_path / ".hidden").write_text("nope")
    return tmp_path


def _middleware(root, configure=lambda b: b):
    return configure(FileMiddlewareBuilder("op", str(root))).build()


def _body(response):
    with response.body as stream:
        return b"".join(stream)


@pytest.mark.asyncio
async def test_serves_file(site):
    response = await _middleware(site).serve("GET", "/op/hello.txt")
    stat = (site / "hello.txt").stat()
    assert response.status == 200
    assert _body(response) == CONTENT
    assert response.headers["Content-Length"] == str(len(CONTENT))
    assert response.headers["Accept-Ranges"] == "bytes"
    assert response.headers["Cache-Control"] == "public, max-age=0"
    assert response.headers["ETag"] == f'"{int(stat.st_mtime)}-{len(CONTENT)}"'
    assert response.headers["Content-Type"].startswith("text/plain")
    assert "Content-Encoding" not in response.headers


@pytest.mark.asyncio
async def test_percent_encoded_path(site):
    response = await _middleware(site).serve("GET", "/op/hello%20world.txt")
    assert _body(response) == b"spaced"


@pytest.mark.asyncio
async def test_directory_index(site):
    response = await _middleware(site).serve("GET", "/op/docs")
    assert response.status == 200
    assert _body(response) == b"<h1>docs</h1>"
    assert response.headers["Content-Type"].startswith("text/html")


@pytest.mark.asyncio
async def test_custom_index_files(site):
    middleware = _middleware(site, lambda b: b.index_files("home.html"))
    response = await middleware.serve("GET", "/op/docs/")
    assert _body(response) == b"<h1>home</h1>"


@pytest.mark.asyncio
async def test_no_directory_index(site):
    middleware = _middleware(site, lambda b: b.no_directory_index())
    response = await middleware.serve("GET", "/op/docs/")
    assert response.status == 404
    assert response.body is None


@pytest.mark.asyncio
async def test_missing_and_hidden_files_are_not_found(site):
    middleware = _middleware(site)
    assert (await middleware.serve("GET", "/op/missing.txt")).status == 404
    assert (await middleware.serve("GET", "/op/.hidden")).status == 404


@pytest.mark.asyncio
async def test_try_files_status_token(site):
    middleware = _middleware(site, lambda b: b.try_files("$uri =418"))
    assert (await middleware.serve("GET", "/op/missing.txt")).status == 418
    assert (await middleware.serve("GET", "/op/hello.txt")).status == 200


@pytest.mark.asyncio
async def test_invalid_try_files_token(site):
    middleware = _middleware(site, lambda b: b.try_files("=abc"))
    with pytest.raises(ValueError):
        await middleware.serve("GET", "/op/hello.txt")


@pytest.mark.asyncio
async def test_not_found_handler(site):
    calls = []

    async def handler(method, path, headers):
        calls.append((method, path))
        return StaticResponse(status=410)

    middleware = _middleware(site, lambda b: b.file_not_found_handler(handler))
    response = await middleware.serve("GET", "/op/gone.txt")
    assert response.status == 410
    assert calls == [("GET", "/op/gone.txt")]


@pytest.mark.asyncio
async def test_head_has_no_body(site):
    response = await _middleware(site).serve("HEAD", "/op/hello.txt")
    assert response.status == 200
    assert response.body is None
    assert response.headers["Content-Length"] == str(len(CONTENT))


@pytest.mark.asyncio
async def test_fresh_request_is_not_modified(site):
    middleware = _middleware(site)
    first = await middleware.serve("GET", "/op/hello.txt")
    _body(first)
    second = await middleware.serve("GET", "/op/hello.txt", {"If-None-Match": first.headers["ETag"]})
    assert second.status == 304
    assert second.body is None
    assert second.headers["Last-Modified"].endswith("GMT")


@pytest.mark.asyncio
async def test_failed_precondition(site):
    response = await _middleware(site).serve("GET", "/op/hello.txt", {"If-Match": '"nope"'})
    assert response.status == 412


@pytest.mark.asyncio
async def test_range_request(site):
    response = await _middleware(site).serve("GET", "/op/hello.txt", {"Range": "bytes=0-4"})
    assert response.status == 206
    assert _body(response) == CONTENT[:5]
    assert response.headers["Content-Range"] == f"bytes 0-4/{len(CONTENT)}"
    assert response.headers["Content-Length"] == "5"


@pytest.mark.asyncio
async def test_unsatisfiable_range_serves_whole_file(site):
    response = await _middleware(site).serve("GET", "/op/hello.txt", {"range": "bytes=5000-"})
    assert response.status == 200
    assert _body(response) == CONTENT


@pytest.mark.asyncio
async def test_gzip_encoding_and_cache(site):
    middleware = _middleware(site)
    response = await middleware.serve("GET", "/op/hello.txt", {"Accept-Encoding": "deflate, gzip"})
    assert response.headers["Content-Encoding"] == "gzip"
    data = _body(response)
    assert gzip.decompress(data) == CONTENT
    assert response.headers["Content-Length"] == str(len(data))
    assert middleware.cache.size() == len(data)

    again = await middleware.serve("GET", "/op/hello.txt", {"Accept-Encoding": "gzip"})
    assert gzip.decompress(_body(again)) == CONTENT


@pytest.mark.asyncio
async def test_max_age(site):
    middleware = _middleware(site, lambda b: b.max_age(60))
    response = await middleware.serve("GET", "/op/hello.txt")
    _body(response)
    assert response.headers["Cache-Control"] == "public, max-age=60"


@pytest.mark.asyncio
async def test_too_large_files_are_not_cached(site):
    middleware = _middleware(site, lambda b: b.max_file_size(10))
    response = await middleware.serve("GET", "/op/hello.txt")
    assert _body(response) == CONTENT
    assert middleware.cache.size() == 0


def test_is_hidden():
    assert is_hidden(".env") is True
    assert is_hidden("dir/.config") is True
    assert is_hidden("dir/file.txt") is False
    assert is_hidden("dir/..") is False
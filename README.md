# saphir

saphir provides async building blocks for HTTP servers. It does not contain a server. It gives you the pieces that sit around request handling:

- **Static files** (`saphir.static_files`). `FileMiddleware` is configured through `FileMiddlewareBuilder` and has these features:
  - `try_files` candidates that use `$uri`, plus `=NNN` status tokens.
  - Index files for directories.
  - Hidden files are skipped.
  - ETags and conditional requests (`If-Match`, `If-None-Match`, `If-Unmodified-Since`).
  - Single byte-range requests.
  - gzip, deflate or brotli encoding, picked from `Accept-Encoding`.
  - An in-memory `FileCache`.
- **Header helpers**:
  - `saphir.range`: `parse_range`, `parse_byte_range_spec`, and the types `FromTo`, `AllFrom`, `Last`, `BytesRange` and `UnregisteredRange`.
  - `saphir.content_range`: `parse_content_range`, `BytesContentRange` and `UnregisteredContentRange`.
  - `saphir.etag`: `EntityTag` and `timestamp`.
  - `saphir.conditional`: `is_precondition_failed`, `is_fresh`, `format_http_date` and `parse_http_date`.
  - `saphir.range_requests`: `is_range_fresh`, `satisfiable_content_range` and `extract_range`.
- **Files** (`saphir.files`):
  - The readers `File` and `FileCursor`.
  - `FileStream`, which yields a file in chunks, either whole or limited to one byte span.
  - `Compression`, `compress_file` and `guess_mime`.
- **Request bodies** (`saphir.body`). `Body` wraps bytes or a sync/async iterable of chunks. It is loaded once, up to an optional `limit`, and is then kept in memory. The async methods `bytes()`, `text()`, `json()` and `form()` decode it. Reading a body that was taken raises `BodyAlreadyTaken`.
- **Guards and controllers**:
  - `saphir.guards`: `GuardBuilder`, `GuardChain`, `GuardRejected` and `call_handler`.
  - `saphir.controller`: `Controller`, `Endpoint` and `EndpointsBuilder`.
- **Per-request context** (`saphir.http_context`). `HttpContext`, `State`, `Phase`, `RouteId`, `HandlerMetadata` and `OperationId`. `HttpContext.for_request` reuses a valid `Operation-Id` header.
- **Errors** (`saphir.errors`). Framework errors subclass `SaphirError`. Each one carries the HTTP `status` it maps to. `from_exception` converts any other exception into one.

## Installation

```
pip install saphir
```

## Serving static files

```python
import asyncio
from saphir.static_files import FileMiddlewareBuilder

middleware = (
    FileMiddlewareBuilder("static", "./public")
    .max_age(3600)
    .index_files("index.html index.htm")
    .build()
)

async def main():
    response = await middleware.serve("GET", "/static/index.html", {"Accept-Encoding": "gzip"})
    print(response.status, response.headers)
    if response.body is not None:
        with response.body as stream:
            for chunk in stream:
                ...

asyncio.run(main())
```

`serve` returns a `StaticResponse` with these fields:

- `status`
- `headers`
- `body`: a `FileStream`, or `None` for `HEAD` requests and for error or `304` answers.

A file that fits the cache limits is stored in the `FileCache` when its stream is closed.

By default, a request that matches no file gets a `404` response. If you pass a callable to `file_not_found_handler(handler)`, it is called instead as `handler(method, path, headers)`. It may be sync or async, and whatever it returns is returned by `serve`.

## Parsing range headers

```python
from saphir.range import parse_range
from saphir.range_requests import satisfiable_content_range

requested = parse_range("bytes=0-99")
content_range = satisfiable_content_range(requested, 1000)
print(content_range)  # bytes 0-99/1000
```

## Guards

```python
from saphir.guards import GuardBuilder, GuardRejected

async def needs_token(request):
    if request.get("token") != "token":
        raise GuardRejected(403)
    return request

chain = GuardBuilder().apply(needs_token).build()
# await chain.validate(request) returns the (possibly replaced) request
```

A guard is either a callable or an object with a `validate` method. It may be sync or async. The guard applied last runs first.

## Controllers

```python
from saphir.controller import Controller, EndpointsBuilder

class Health(Controller):
    BASE_PATH = "/health"

    async def ping(self, request):
        return 200

    def handlers(self):
        return EndpointsBuilder().add("GET", "/ping", Health.ping).build()
```

`Endpoint.handle(controller, request)` first runs the endpoint's guards, then calls the handler with the controller and the request.

## What it does not do

saphir has no listener, no router and no middleware chain:

- Nothing accepts connections.
- Nothing matches a request path to an `Endpoint`.
- Nothing drives an `HttpContext` through middlewares.
- There is no command to start a server.

`HttpContext.router` is kept only as an opaque value. You wire these pieces into your own server and call `FileMiddleware.serve`, `Endpoint.handle` or `GuardChain.validate` yourself.

## Running the tests

```
pip install -e ".[test]"
pytest
```
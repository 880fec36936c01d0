"""Errors raised throughout the request stack, each carrying its HTTP status."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

_log = logging.getLogger("saphir")


class SaphirError(Exception):
    """Base of every error raised by the framework.

    ``status`` is the HTTP status the error turns into when it is sent back as a
    response; ``None`` means the attached responder decides.
    """

    status: int | None = 500
    level: int = logging.WARNING

    def _describe(self) -> str | None:
        return None

    def log(self, operation_id: Any = None) -> None:
        """Log the error, prefixed with the operation id when one is given."""
        message = self._describe()
        if message is None:
            return
        prefix = f"[Operation id: {operation_id}] " if operation_id is not None else ""
        _log.log(self.level, "%s%s", prefix, message)


class InternalError(SaphirError):
    """An error inherent to the framework's own machinery."""

    def __init__(self, detail: Any = "stack") -> None:
        super().__init__(str(detail))
        self.detail = detail

    def _describe(self) -> str:
        return f"Saphir encountered an internal error that was returned as a responder: {self.detail!r}"


class SaphirIoError(SaphirError):
    """An I/O failure."""

    def __init__(self, error: OSError) -> None:
        super().__init__(str(error))
        self.error = error

    def _describe(self) -> str:
        return f"Saphir encountered an Io error that was returned as a responder: {self.error!r}"


class BodyAlreadyTaken(SaphirError):
    """The body was taken already and cannot be read again."""

    def __init__(self) -> None:
        super().__init__("BodyAlreadyTaken")

    def _describe(self) -> str:
        return "A controller handler attempted to take the request body more than one time"


class RequestMovedBeforeHandler(SaphirError):
    """A middleware moved the request without ending request processing."""

    def __init__(self) -> None:
        super().__init__("RequestMovedBeforeHandler")

    def _describe(self) -> str:
        return (
            "A request was moved out of its context by a middleware, "
            "but the middleware did not stop request processing"
        )


class ResponseMoved(SaphirError):
    """The response was moved before being sent to the client."""

    def __init__(self) -> None:
        super().__init__("ResponseMoved")

    def _describe(self) -> str:
        return "A response was moved before being sent to the client"


class CustomError(SaphirError):
    """Wraps any other exception."""

    def __init__(self, error: BaseException) -> None:
        super().__init__(str(error))
        self.error = error

    def _describe(self) -> str:
        return f"A custom error was returned as a responder: {self.error!r}"


class ResponderError(SaphirError):
    """Carries a responder that produces the error response itself."""

    status = None

    def __init__(self, responder: Any) -> None:
        super().__init__("Responder")
        self.responder = responder


class OtherError(SaphirError):
    """An error described only by a message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def _describe(self) -> str:
        return f"Saphir encountered an Unknown error that was returned as a responder: {self.message!r}"


class JsonError(SaphirError):
    """JSON data could not be (de)serialized."""

    status = 400
    level = logging.DEBUG

    def __init__(self, error: Any) -> None:
        super().__init__(str(error))
        self.error = error

    def _describe(self) -> str:
        return f"Unable to de/serialize json type: {self.error!r}"


class FormError(SaphirError):
    """Form data could not be deserialized (or serialized)."""

    status = 400
    level = logging.DEBUG

    def __init__(self, error: Any, serializing: bool = False) -> None:
        super().__init__(str(error))
        self.error = error
        self.serializing = serializing

    def _describe(self) -> str:
        verb = "serialize" if self.serializing else "deserialize"
        return f"Unable to {verb} form type: {self.error!r}"


class MissingParameter(SaphirError):
    """A required query or path parameter is absent."""

    status = 400
    level = logging.DEBUG

    def __init__(self, name: str, is_query: bool) -> None:
        super().__init__(name)
        self.name = name
        self.is_query = is_query

    def _describe(self) -> str:
        kind = "query" if self.is_query else "path"
        return f"Missing {kind} parameter {self.name}"


class InvalidParameter(SaphirError):
    """A query or path parameter could not be parsed."""

    status = 400
    level = logging.DEBUG

    def __init__(self, name: str, is_query: bool) -> None:
        super().__init__(name)
        self.name = name
        self.is_query = is_query

    def _describe(self) -> str:
        kind = "query" if self.is_query else "path"
        return f"Unable to parse {kind} parameter {self.name}"


class RequestTimeout(SaphirError):
    """The request took too long."""

    status = 408

    def __init__(self) -> None:
        super().__init__("RequestTimeout")

    def _describe(self) -> str:
        return "Request timed out"


class StackAlreadyInitialized(SaphirError):
    """The server stack was built twice."""

    def __init__(self) -> None:
        super().__init__("StackAlreadyInitialized")

    def _describe(self) -> str:
        return "Attempted to initialize stack twice"


def from_exception(exc: BaseException) -> SaphirError:
    """Convert any exception into the matching :class:`SaphirError`."""
    if isinstance(exc, SaphirError):
        return exc
    if isinstance(exc, json.JSONDecodeError):
        return JsonError(exc)
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return RequestTimeout()
    if isinstance(exc, OSError):
        return SaphirIoError(exc)
    return CustomError(exc)
"""The context linking a request to its response as it moves through the stack."""

from __future__ import annotations

import copy
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import RequestMovedBeforeHandler, ResponseMoved

OPERATION_ID_HEADER = "Operation-Id"


class Phase(Enum):
    """Where the context stands relative to the handler."""

    BEFORE = "before"
    AFTER = "after"
    EMPTY = "empty"


class State:
    """Holds the request before the handler runs and the response after it.

    The state is empty while the handler runs, or once its contents were taken.
    """

    def __init__(self, phase: Phase = Phase.EMPTY, value: Any = None) -> None:
        if phase is Phase.EMPTY:
            value = None
        self.phase = phase
        self.value = value

    @classmethod
    def before(cls, request: Any) -> State:
        return cls(Phase.BEFORE, request)

    @classmethod
    def after(cls, response: Any) -> State:
        return cls(Phase.AFTER, response)

    @property
    def is_empty(self) -> bool:
        return self.phase is Phase.EMPTY

    def take(self) -> State:
        """Move the contents into a new state, leaving this one empty."""
        taken = State(self.phase, self.value)
        self.phase, self.value = Phase.EMPTY, None
        return taken

    def take_request(self) -> Any | None:
        """Take the request, or return ``None`` if the state held none.

        Either way the state is left empty.
        """
        taken = self.take()
        return taken.value if taken.phase is Phase.BEFORE else None

    def take_response(self) -> Any | None:
        """Take the response, or return ``None`` if the state held none.

        Either way the state is left empty.
        """
        taken = self.take()
        return taken.value if taken.phase is Phase.AFTER else None

    def request(self) -> Any | None:
        """The request if the state is before the handler, else ``None``."""
        return self.value if self.phase is Phase.BEFORE else None

    def response(self) -> Any | None:
        """The response if the state is after the handler, else ``None``."""
        return self.value if self.phase is Phase.AFTER else None

    def require_request(self) -> Any:
        """The request; raises :class:`RequestMovedBeforeHandler` if there is none."""
        if self.phase is not Phase.BEFORE:
            raise RequestMovedBeforeHandler()
        return self.value

    def require_response(self) -> Any:
        """The response; raises :class:`ResponseMoved` if there is none."""
        if self.phase is not Phase.AFTER:
            raise ResponseMoved()
        return self.value

    def __repr__(self) -> str:
        return f"State({self.phase.name}, {self.value!r})"


@dataclass(frozen=True)
class RouteId:
    """Identifies the resolved route, or the error status when none resolved."""

    value: int = 404
    is_error: bool = True

    @classmethod
    def of(cls, route_id: int) -> RouteId:
        return cls(route_id, False)

    @classmethod
    def error(cls, status: int) -> RouteId:
        return cls(status, True)


@dataclass(frozen=True)
class HandlerMetadata:
    """Metadata of the handler resolved for a request."""

    route_id: RouteId = field(default_factory=RouteId)
    name: str | None = None

    @classmethod
    def not_found(cls) -> HandlerMetadata:
        return cls(RouteId.error(404), None)

    @classmethod
    def not_allowed(cls) -> HandlerMetadata:
        return cls(RouteId.error(405), None)


@dataclass(frozen=True, order=True)
class OperationId:
    """Identifies one operation, from an incoming request to its response."""

    uuid: uuid.UUID = field(default_factory=lambda: uuid.UUID(int=0))

    @classmethod
    def new(cls) -> OperationId:
        """A fresh random identifier."""
        return cls(uuid.uuid4())

    @classmethod
    def parse(cls, text: str) -> OperationId:
        """Parse a UUID string; raises ``ValueError`` when it is not one."""
        return cls(uuid.UUID(text))

    def to_int(self) -> int:
        """The identifier as a 128-bit integer."""
        return self.uuid.int

    def __str__(self) -> str:
        return str(self.uuid)

    def __repr__(self) -> str:
        return str(self.uuid)


def _header_text(headers: Mapping[str, Any] | None, name: str) -> str | None:
    if not headers:
        return None
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        value = next((v for k, v in headers.items() if k.lower() == lowered), None)
    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode("ascii")
        except UnicodeDecodeError:
            return None
    return value if isinstance(value, str) else None


class HttpContext:
    """The state of one request/response exchange as seen by middlewares."""

    def __init__(
        self,
        state: State | None = None,
        operation_id: OperationId | None = None,
        metadata: HandlerMetadata | None = None,
        router: Any = None,
    ) -> None:
        self.state = state if state is not None else State()
        self.operation_id = operation_id if operation_id is not None else OperationId.new()
        self.metadata = metadata if metadata is not None else HandlerMetadata()
        self.router = router

    @classmethod
    def for_request(
        cls,
        request: Any,
        headers: Mapping[str, Any] | None = None,
        metadata: HandlerMetadata | None = None,
        router: Any = None,
    ) -> HttpContext:
        """A context before the handler, reusing the request's ``Operation-Id`` if valid."""
        operation_id = None
        text = _header_text(headers, OPERATION_ID_HEADER)
        if text is not None:
            try:
                operation_id = OperationId.parse(text)
            except ValueError:
                operation_id = None
        if operation_id is None:
            operation_id = OperationId.new()
        if hasattr(request, "operation_id"):
            request.operation_id = operation_id
        return cls(State.before(request), operation_id, metadata, router)

    def clone_with_empty_state(self) -> HttpContext:
        """A copy sharing router, metadata and operation id, with an empty state."""
        return HttpContext(State(), self.operation_id, copy.copy(self.metadata), self.router)

    def before(self, request: Any) -> None:
        """Set the state to before the handler, holding ``request``."""
        self.state = State.before(request)

    def after(self, response: Any) -> None:
        """Set the state to after the handler, holding ``response``."""
        self.state = State.after(response)
"""Controllers group endpoints under a base path."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar

from .guards import GuardBuilder, GuardChain, call_handler


@dataclass(frozen=True)
class Endpoint:
    """One route of a controller: method, path, handler and its guards."""

    name: str | None
    method: str
    route: str
    handler: Callable[..., Any]
    guards: GuardChain = field(default_factory=GuardChain)

    async def handle(self, controller: Any, request: Any) -> Any:
        """Run the guards on ``request``, then the handler with the controller."""
        if not self.guards.is_end:
            request = await self.guards.validate(request)
        return await call_handler(self.handler, controller, request)


class Controller(ABC):
    """Handles requests under ``BASE_PATH`` through the endpoints it lists."""

    BASE_PATH: ClassVar[str] = "/"

    @abstractmethod
    def handlers(self) -> list[Endpoint]:
        """The endpoints this controller adds to the router."""


GuardConfig = Callable[[GuardBuilder], GuardBuilder]


class EndpointsBuilder:
    """Collects endpoints for :meth:`Controller.handlers`."""

    def __init__(self) -> None:
        self._endpoints: list[Endpoint] = []

    def _push(
        self,
        name: str | None,
        method: str,
        route: str,
        handler: Callable[..., Any],
        guards: GuardConfig | None,
    ) -> EndpointsBuilder:
        builder = GuardBuilder()
        if guards is not None:
            builder = guards(builder)
        self._endpoints.append(Endpoint(name, str(method).upper(), route, handler, builder.build()))
        return self

    def add(self, method: str, route: str, handler: Callable[..., Any]) -> EndpointsBuilder:
        """Add an endpoint."""
        return self._push(None, method, route, handler, None)

    def add_with_guards(
        self, method: str, route: str, handler: Callable[..., Any], guards: GuardConfig
    ) -> EndpointsBuilder:
        """Add an endpoint whose guards ``guards`` applies to a fresh builder."""
        return self._push(None, method, route, handler, guards)

    def add_with_name(
        self, name: str, method: str, route: str, handler: Callable[..., Any]
    ) -> EndpointsBuilder:
        """Add a named endpoint."""
        return self._push(name, method, route, handler, None)

    def add_with_guards_and_name(
        self,
        name: str,
        method: str,
        route: str,
        handler: Callable[..., Any],
        guards: GuardConfig,
    ) -> EndpointsBuilder:
        """Add a named, guarded endpoint."""
        return self._push(name, method, route, handler, guards)

    def build(self) -> list[Endpoint]:
        """The collected endpoints, in the order they were added."""
        return list(self._endpoints)
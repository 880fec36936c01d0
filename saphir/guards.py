"""Guards that vet a request before its handler runs, and handler invocation."""

from __future__ import annotations

import inspect
from typing import Any, Callable

from .errors import ResponderError


class GuardRejected(ResponderError):
    """Raised by a guard to stop processing; ``responder`` becomes the response."""


async def call_handler(handler: Callable[..., Any], *args: Any) -> Any:
    """Call ``handler`` with ``args``, awaiting the result if it is awaitable."""
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _validator(guard: Any) -> Callable[[Any], Any]:
    validate = getattr(guard, "validate", None)
    if callable(validate):
        return validate
    if callable(guard):
        return guard
    raise TypeError(f"{guard!r} is not a guard")


class GuardChain:
    """Guards run one after another, each receiving the request the previous returned."""

    def __init__(self, guards: tuple[Any, ...] = ()) -> None:
        self.guards = tuple(guards)

    @property
    def is_end(self) -> bool:
        """True if the chain holds no guard."""
        return not self.guards

    async def validate(self, request: Any) -> Any:
        """Pass ``request`` through every guard; a rejection raises :class:`GuardRejected`."""
        for guard in self.guards:
            request = await call_handler(_validator(guard), request)
        return request


class GuardBuilder:
    """Collects guards; the guard applied last runs first."""

    def __init__(self, guards: tuple[Any, ...] = ()) -> None:
        self._guards = tuple(guards)

    def apply(self, guard: Any) -> GuardBuilder:
        """A new builder with ``guard`` placed in front of the others."""
        _validator(guard)
        return GuardBuilder((guard, *self._guards))

    def build(self) -> GuardChain:
        """The chain of the applied guards."""
        return GuardChain(self._guards)
"""Compiled dispatch table.

Maps (controller, action) pairs to endpoints. Entries are registered
during setup and the table is compiled when the app freezes; after
that, lookups never touch user code until the endpoint is bound.

Names match case-insensitively: ``?controller=home&action=INDEX``
reaches ``HomeController.index``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from perch.controllers import Controller
from perch.errors import ConfigurationError, NotFound
from perch.http.request import Request
from perch.http.response import HttpResponse


@dataclass(frozen=True, slots=True)
class Endpoint:
    """One controller action.

    Class-based endpoints carry ``controller_class`` and are instantiated
    per request. Function endpoints carry the function in ``handler``.
    """

    controller: str
    action: str
    controller_class: type | None = None
    handler: Callable[..., Any] | None = None

    @property
    def qualname(self) -> str:
        if self.controller_class is not None:
            return f"{self.controller_class.__qualname__}.{self.action}"
        return getattr(self.handler, "__qualname__", repr(self.handler))

    def bind(self, request: Request, response: HttpResponse) -> Callable[..., Any]:
        """Return a callable for this request: a fresh controller's method,
        or the function itself."""
        if self.controller_class is None:
            assert self.handler is not None
            return self.handler
        instance = self.controller_class()
        if isinstance(instance, Controller):
            instance.request = request
            instance.response = response
        return getattr(instance, self.action)


def _key(controller: str, action: str) -> tuple[str, str]:
    return controller.lower(), action.lower()


class ActionTable:
    """Registry of endpoints keyed by lowercased (controller, action)."""

    __slots__ = ("_compiled", "_endpoints")

    def __init__(self) -> None:
        self._endpoints: dict[tuple[str, str], Endpoint] = {}
        self._compiled: bool = False

    def __len__(self) -> int:
        return len(self._endpoints)

    def add(self, endpoint: Endpoint) -> None:
        """Register *endpoint*.

        Raises ``ConfigurationError`` for duplicates, for an endpoint with
        nothing to call, or after ``compile()``.
        """
        if self._compiled:
            msg = "Cannot add endpoints to a compiled action table"
            raise ConfigurationError(msg)
        if endpoint.controller_class is None and not callable(endpoint.handler):
            msg = f"Action {endpoint.controller}.{endpoint.action} has no callable handler"
            raise ConfigurationError(msg)
        if endpoint.controller_class is not None and not callable(
            getattr(endpoint.controller_class, endpoint.action, None)
        ):
            msg = f"{endpoint.controller_class.__qualname__} has no action {endpoint.action!r}"
            raise ConfigurationError(msg)
        key = _key(endpoint.controller, endpoint.action)
        existing = self._endpoints.get(key)
        if existing is not None:
            msg = (
                f"Duplicate action {endpoint.controller}.{endpoint.action}: "
                f"{existing.qualname} and {endpoint.qualname}"
            )
            raise ConfigurationError(msg)
        self._endpoints[key] = endpoint

    def compile(self) -> None:
        """Seal the table."""
        self._compiled = True

    @property
    def endpoints(self) -> list[Endpoint]:
        """All endpoints, sorted by controller then action."""
        return [self._endpoints[key] for key in sorted(self._endpoints)]

    def lookup(self, controller: str, action: str) -> Endpoint:
        """Return the endpoint for the pair or raise ``NotFound``."""
        endpoint = self._endpoints.get(_key(controller, action))
        if endpoint is None:
            raise NotFound(f"No action {action!r} on controller {controller!r}")
        return endpoint

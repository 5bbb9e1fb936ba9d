"""Controller base class and action discovery.

A controller is a class whose public methods are actions. One instance
is created per request; the dispatcher attaches the request and response
before calling the action::

    @app.controller()
    class HomeController(Controller):
        def index(self):
            return self.view({"greeting": "hello"}, title="Home")

        def save(self, model):
            # model is the bound form on POST, None otherwise
            return self.status(204)

Subclassing ``Controller`` is optional. Any class with a no-argument
constructor works; the base class adds the result helpers.
"""

import inspect
from pathlib import Path
from typing import Any

from perch.http.request import Request
from perch.http.response import HttpResponse
from perch.results import ContentResult, HttpStatusCodeResult, ViewResult
from perch.views.context import ModelState, get_view_context

CONTROLLER_SUFFIX = "Controller"


class Controller:
    """Optional base class for controllers."""

    request: Request
    response: HttpResponse

    @property
    def model_state(self) -> ModelState:
        return get_view_context().model_state

    def view(
        self,
        model: Any = None,
        *,
        layout: str | None = None,
        title: str | None = None,
        view: str | Path | None = None,
        **view_data: Any,
    ) -> ViewResult:
        """Build a ``ViewResult``; extra keywords become view data."""
        return ViewResult(model=model, layout=layout, title=title, view_data=view_data, view=view)

    def status(self, status_code: int, description: str | None = None) -> HttpStatusCodeResult:
        return HttpStatusCodeResult(status_code, description)

    def content(self, value: Any) -> ContentResult:
        return ContentResult(value)


_RESERVED = frozenset(dir(Controller))


def controller_name(cls: type) -> str:
    """``HomeController`` -> ``Home``; other names are used unchanged."""
    name = cls.__name__
    if name.endswith(CONTROLLER_SUFFIX) and len(name) > len(CONTROLLER_SUFFIX):
        return name[: -len(CONTROLLER_SUFFIX)]
    return name


def controller_actions(cls: type) -> list[str]:
    """Names of the public methods of *cls* that are actions.

    Underscore-prefixed names, properties, and the ``Controller`` helpers
    are not actions.
    """
    reserved = _RESERVED if issubclass(cls, Controller) else frozenset()
    actions: list[str] = []
    for name in dir(cls):
        if name.startswith("_") or name in reserved:
            continue
        attr = inspect.getattr_static(cls, name)
        if isinstance(attr, (staticmethod, classmethod)):
            attr = attr.__func__
        if inspect.isfunction(attr):
            actions.append(name)
    return actions

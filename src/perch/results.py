"""Action result types.

Frozen dataclasses that controller actions return. The set is closed:
``ViewResult``, ``HttpStatusCodeResult`` and ``ContentResult``. Every
variant executes itself against the request's ``ActionContext``; any
other return value is wrapped in a ``ContentResult`` by
``as_action_result()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from perch.views.context import merge_view_data
from perch.views.pipeline import render_view

if TYPE_CHECKING:
    from perch.views.pipeline import ActionContext


@dataclass(frozen=True, slots=True)
class ViewResult:
    """Render a view with a model.

    Usage::

        return ViewResult(user, title="Profile", layout="main", view_data={"tab": "info"})

    *view* names the view explicitly; by default the controller/action
    convention picks it. *layout* and *title* only apply when non-empty.
    """

    model: Any = None
    layout: str | None = None
    title: str | None = None
    view_data: dict[str, Any] = field(default_factory=dict)
    view: str | Path | None = None

    def execute(self, context: ActionContext) -> None:
        vc = context.view_context
        if self.layout:
            vc.layout = self.layout
        if self.title:
            vc.title = self.title
        if self.view_data:
            vc.view_data = merge_view_data(vc.view_data, self.view_data)
        vc.result = self
        vc.action_result = self.model
        render_view(context, self.view)


@dataclass(frozen=True, slots=True)
class HttpStatusCodeResult:
    """Respond with a bare status code.

    The status description doubles as the body; without one the body
    is empty. No view is rendered.

    Usage::

        return HttpStatusCodeResult(404, "No such user")
    """

    status_code: int
    status_description: str | None = None

    def execute(self, context: ActionContext) -> None:
        vc = context.view_context
        vc.result = self
        vc.action_result = None
        response = context.response
        response.set_status_code(self.status_code)
        response.set_status_description(self.status_description)
        response.write(self.status_description or "")
        response.end()


@dataclass(frozen=True, slots=True)
class ContentResult:
    """A raw value: rendered by the conventional view if one exists,
    otherwise sent verbatim (strings) or as JSON (everything else)."""

    value: Any = None

    def execute(self, context: ActionContext) -> None:
        vc = context.view_context
        vc.result = self
        vc.action_result = self.value
        render_view(context)


type ActionResult = ViewResult | HttpStatusCodeResult | ContentResult


def as_action_result(value: Any) -> ActionResult:
    """Normalize whatever an action returned into an action result."""
    match value:
        case ViewResult() | HttpStatusCodeResult() | ContentResult():
            return value
        case _:
            return ContentResult(value)

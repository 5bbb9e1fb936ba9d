"""The render pipeline — view, layout, serialization, emit.

Runs once per dispatch, after the action result has placed its payload
in the view context:

1. resolve the view (explicit name or the controller/action convention)
   and render it with the payload, or pass the payload through untouched
   when no view exists;
2. wrap the content in the layout, if one was requested;
3. a string result is the body as-is; anything else is JSON-encoded and
   sent as ``application/json``;
4. write the body and end the response.
"""

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from perch.errors import SerializationError, ViewNotFound
from perch.http.request import Request
from perch.http.response import HttpResponse
from perch.views.context import ViewContext
from perch.views.render import ViewRenderer, mark_safe
from perch.views.resolve import ViewLocator

logger = logging.getLogger("perch.dispatch")

JSON_CONTENT_TYPE = "application/json"


@dataclass(slots=True)
class ActionContext:
    """Everything an executing action result may touch for one request.

    ``view_name`` is the view to render when the result names none: the
    conventional ``<views>/<controller>/<action>`` path.
    """

    request: Request
    response: HttpResponse
    view_context: ViewContext
    renderer: ViewRenderer
    locator: ViewLocator
    view_name: str | Path | None = None


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, SimpleNamespace):
        return vars(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def encode_json(value: Any) -> str:
    """Encode *value* compactly, raising ``SerializationError`` on failure."""
    try:
        return json.dumps(
            value, separators=(",", ":"), allow_nan=False, default=_json_default
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise SerializationError(type(exc).__name__, str(exc)) from exc


def render_view(context: ActionContext, view_name: str | Path | None = None) -> None:
    """Render the current payload and write it to the response."""
    vc = context.view_context
    name = view_name or context.view_name

    view_file = context.locator.find(name, vc.controller)
    vc.view_file = view_file
    if view_file is not None:
        logger.debug("Rendering view %s", view_file)
        vc.content = context.renderer.render(
            view_file,
            {
                "model": vc.action_result,
                "model_state": vc.model_state,
                "view": vc,
                "title": vc.title,
                "view_data": vc.view_data,
                "request": context.request,
            },
        )
    else:
        logger.debug("No view for %r, passing the payload through", name)
        vc.content = vc.action_result

    if vc.layout:
        layout_file = context.locator.find(vc.layout, vc.controller)
        if layout_file is None:
            raise ViewNotFound(vc.layout)
        # Layouts do not receive model_state. Only rendered view output is
        # trusted markup; a raw payload is escaped like any other value.
        content = mark_safe(vc.content) if view_file is not None else vc.content
        result = context.renderer.render(
            layout_file,
            {
                "model": vc.action_result,
                "content": content,
                "view": vc,
                "title": vc.title,
                "view_data": vc.view_data,
                "request": context.request,
            },
        )
    else:
        result = vc.content

    if isinstance(result, str):
        body = result
    else:
        body = encode_json(vc.action_result)
        context.response.set_content_type(JSON_CONTENT_TYPE)

    context.response.write(body)
    context.response.end()

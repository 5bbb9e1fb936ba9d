"""Dispatch — run one request through controller, action and views.

Resolves the ``controller``/``action`` pair, binds the request model,
invokes the action, and executes the action result against a fresh
``ActionContext``. The returned ``Response`` is immutable; sending it is
the handler's job.
"""

import logging
from contextvars import Token

from perch._internal.invoke import invoke
from perch.binding import build_action_kwargs, build_request_model
from perch.config import AppConfig
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import HttpResponse, Response
from perch.results import as_action_result
from perch.routing.table import ActionTable
from perch.views.context import ViewContext, view_context_var
from perch.views.pipeline import ActionContext
from perch.views.render import ViewRenderer
from perch.views.resolve import ViewLocator

logger = logging.getLogger("perch.dispatch")


def resolve_target(request: Request, config: AppConfig) -> tuple[str, str]:
    """The (controller, action) names a request asks for.

    Each name comes from the form body, then the query string, then the
    configured default. A key that is present wins even when empty.
    """
    names: list[str] = []
    for key, default in (
        ("controller", config.default_controller),
        ("action", config.default_action),
    ):
        if key in request.form_data:
            names.append(request.form_data[key])
        elif key in request.query_params:
            names.append(request.query_params[key])
        else:
            names.append(default)
    return names[0], names[1]


async def dispatch(
    request: Request,
    *,
    table: ActionTable,
    renderer: ViewRenderer,
    locator: ViewLocator,
    config: AppConfig,
) -> Response:
    """Process one request and return the finished response.

    Raises ``NotFound`` for an unknown controller/action, lets any other
    ``HTTPError`` from the action through, and propagates rendering
    failures (``ViewNotFound``, ``SerializationError``) to the caller.
    """
    controller, action = resolve_target(request, config)
    endpoint = table.lookup(controller, action)
    logger.debug(
        "%s %s -> %s.%s", request.method, request.path, endpoint.controller, endpoint.action
    )

    view_context = ViewContext(controller=endpoint.controller, action=endpoint.action)
    token: Token[ViewContext] = view_context_var.set(view_context)
    try:
        response = HttpResponse()
        context = ActionContext(
            request=request,
            response=response,
            view_context=view_context,
            renderer=renderer,
            locator=locator,
            view_name=locator.conventional_path(endpoint.controller, endpoint.action),
        )

        model = build_request_model(request, config)
        handler = endpoint.bind(request, response)
        try:
            value = await invoke(handler, **build_action_kwargs(handler, request, model))
        except HTTPError:
            raise
        except Exception as exc:
            logger.exception(
                "Action %s.%s failed", endpoint.controller, endpoint.action
            )
            view_context.model_state.exception = exc
            value = None
            if config.action_error_status is not None and not response.ended:
                response.set_status_code(config.action_error_status)

        if not response.ended:
            as_action_result(value).execute(context)
        # Actions may write and end the response themselves
        response.end()
        return response.to_response()
    finally:
        view_context_var.reset(token)

"""Error handling for perch requests.

Maps HTTPError exceptions and unexpected failures to Response objects,
using registered error handlers or plain-text defaults.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response

logger = logging.getLogger("perch.server")

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


def _request_line(request: Request) -> tuple[str, str]:
    return request.server("REQUEST_METHOD") or "-", request.path or "/"


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> Response:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc)
    args and may be sync or async. A returned string becomes the body.
    """
    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = await invoke(handler, request, exc)
    elif len(params) == 1:
        result = await invoke(handler, request)
    else:
        result = await invoke(handler)

    if isinstance(result, Response):
        return result
    return Response(body=str(result), content_type="text/html; charset=utf-8")


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Map an HTTPError to a Response using registered error handlers."""
    method, path = _request_line(request)
    logger.debug("%d %s %s: %s", exc.status, method, path, exc.detail)

    # Exact exception type, then status code
    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        # Keep the exception's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"

    resp = Response(body=detail, status=exc.status, content_type=TEXT_CONTENT_TYPE)
    for name, value in exc.headers:
        resp = resp.with_header(name, value)
    return resp


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    method, path = _request_line(request)
    logger.exception("500 %s %s", method, path)

    handler = error_handlers.get(500) or error_handlers.get(type(exc))
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        if response.status == 200:
            response = response.with_status(500)
        return response

    body = "Internal Server Error"
    if debug:
        body = f"{body}\n\n{type(exc).__name__}: {exc}"
    return Response(body=body, status=500, content_type=TEXT_CONTENT_TYPE)

"""ASGI handler — translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly. Reads the body,
builds the Request, runs the dispatcher, maps errors to responses, and
sends the Response back through ASGI send().
"""

from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch.config import AppConfig
from perch.errors import BadRequest, HTTPError, PayloadTooLarge
from perch.http.forms import FormData, is_form_content_type, parse_form_data
from perch.http.request import Request
from perch.routing.table import ActionTable
from perch.server.dispatch import dispatch
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.sender import send_response
from perch.views.render import ViewRenderer
from perch.views.resolve import ViewLocator

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


async def read_body(receive: Receive, *, limit: int) -> bytes:
    """Drain the ASGI body, raising ``PayloadTooLarge`` past *limit* bytes."""
    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message.get("type") == "http.disconnect":
            break
        body = message.get("body", b"")
        if body:
            size += len(body)
            if size > limit:
                raise PayloadTooLarge(limit)
            chunks.append(body)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


async def read_form(request: Request, receive: Receive, *, limit: int) -> FormData | None:
    """Parse a form body for POST/PUT/PATCH requests with a form content type."""
    if request.server("REQUEST_METHOD") not in _BODY_METHODS:
        return None
    content_type = request.content_type
    if not is_form_content_type(content_type):
        return None
    body = await read_body(receive, limit=limit)
    try:
        return parse_form_data(body, content_type)
    except ValueError as exc:
        raise BadRequest(f"Malformed form body: {exc}") from exc


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    table: ActionTable,
    renderer: ViewRenderer,
    locator: ViewLocator,
    config: AppConfig,
    error_handlers: dict[int | type, Callable[..., Any]],
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, document_root=config.document_root)

    try:
        form = await read_form(request, receive, limit=config.max_content_length)
        if form is not None:
            request = Request.from_asgi(scope, form=form, document_root=config.document_root)
        response = await dispatch(
            request,
            table=table,
            renderer=renderer,
            locator=locator,
            config=config,
        )
    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers, config.debug)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, config.debug)

    await send_response(response, send)

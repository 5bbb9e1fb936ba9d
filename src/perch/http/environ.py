"""ASGI scope -> server variables.

Controllers and views read request data through CGI-style server
variables (``REQUEST_METHOD``, ``REQUEST_URI``, ``HTTP_USER_AGENT``...).
This module is the only place that knows how an ASGI ``http`` scope
maps onto them.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

# Headers that CGI exposes without the HTTP_ prefix
_UNPREFIXED = {"content-type": "CONTENT_TYPE", "content-length": "CONTENT_LENGTH"}


def header_variable(name: str) -> str:
    """``user-agent`` -> ``HTTP_USER_AGENT``."""
    return "HTTP_" + name.upper().replace("-", "_")


def server_variables(
    scope: Mapping[str, Any],
    *,
    document_root: str | Path | None = None,
) -> dict[str, str]:
    """Build the server-variable mapping for one ASGI ``http`` scope.

    Repeated headers are joined with ``", "`` (``"; "`` for cookies). ``HTTPS`` is ``"on"`` only
    for ``https`` scopes. ``REQUEST_URI`` carries the path and query
    exactly as the client sent them.
    """
    path = scope.get("path", "/")
    raw_path = scope.get("raw_path") or path.encode("utf-8")
    if isinstance(raw_path, bytes):
        raw_path = raw_path.decode("latin-1")
    query_string = scope.get("query_string", b"")
    if isinstance(query_string, bytes):
        query_string = query_string.decode("latin-1")

    variables: dict[str, str] = {
        "REQUEST_METHOD": scope["method"],
        "REQUEST_URI": f"{raw_path}?{query_string}" if query_string else raw_path,
        "PATH_INFO": path,
        "QUERY_STRING": query_string,
        "SCRIPT_NAME": scope.get("root_path", ""),
        "SERVER_PROTOCOL": f"HTTP/{scope.get('http_version', '1.1')}",
    }

    if scope.get("scheme") == "https":
        variables["HTTPS"] = "on"

    server = scope.get("server")
    if server:
        host, port = server[0], server[1]
        variables["SERVER_NAME"] = str(host)
        if port is not None:
            variables["SERVER_PORT"] = str(port)

    client = scope.get("client")
    if client:
        variables["REMOTE_ADDR"] = str(client[0])
        variables["REMOTE_PORT"] = str(client[1])

    if document_root is not None:
        variables["DOCUMENT_ROOT"] = str(document_root)

    for raw_name, raw_value in scope.get("headers", ()):
        name = raw_name.decode("latin-1").lower()
        value = raw_value.decode("latin-1")
        key = _UNPREFIXED.get(name) or header_variable(name)
        if key in variables:
            sep = "; " if name == "cookie" else ", "
            variables[key] = f"{variables[key]}{sep}{value}"
        else:
            variables[key] = value

    return variables

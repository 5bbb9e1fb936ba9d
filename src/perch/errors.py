"""Perch exception hierarchy.

Shared across the dispatcher, the view pipeline, and the ASGI handler
so every module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app configuration is invalid.

    Typically caught during ``App._freeze()`` at startup.
    """


class MissingRequestField(PerchError, KeyError):  # noqa: N818
    """A required server variable is absent from the request.

    Raised by accessors such as ``Request.method`` and ``Request.url``
    instead of propagating an undefined value.
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Missing required request field: {field}")

    def __str__(self) -> str:
        return f"Missing required request field: {self.field}"


class ViewNotFound(PerchError):  # noqa: N818
    """A view or layout that must exist could not be resolved."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"View not found: {name!r}")


class SerializationError(PerchError):
    """The action result could not be encoded as JSON.

    Carries the encoder's error code (the exception type name) and message.
    """

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"JSON encode error #{code}: {message}")


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the dispatch table or by actions. The ASGI handler
    catches these and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no controller action is registered for the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class BadRequest(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """400 — the request body could not be parsed."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class PayloadTooLarge(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """413 — the request body exceeds ``AppConfig.max_content_length``."""

    def __init__(self, limit: int) -> None:
        super().__init__(status=413, detail=f"Request body exceeds {limit} bytes")

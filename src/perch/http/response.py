"""HTTP responses.

Two shapes of the same thing:

- ``HttpResponse`` — the writer an action result executes against.
  Status, headers and body are set imperatively, then ``end()`` seals it.
- ``Response`` — the frozen value the sender turns into ASGI messages.
  Built from a writer with ``HttpResponse.to_response()`` or directly by
  error handlers, and adjusted through chainable ``.with_*()`` copies.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from http import HTTPStatus


def reason_phrase(status: int) -> str:
    """Standard reason phrase for *status*, or an empty string."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    ``content_type`` is ``None`` unless something set it; the sender only
    emits a ``Content-Type`` header when it is present.
    """

    body: str | bytes = ""
    status: int = 200
    status_description: str | None = None
    content_type: str | None = None
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    # -- Body helpers --

    @property
    def reason(self) -> str:
        """The status description, falling back to the standard phrase."""
        return self.status_description or reason_phrase(self.status)

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or None."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


class HttpResponse:
    """Mutable response writer for one request.

    Usage::

        response.set_status_code(404)
        response.set_status_description("No such page")
        response.write("No such page")
        response.end()

    Writing or changing status after ``end()`` raises ``RuntimeError``.
    """

    __slots__ = ("_chunks", "_ended", "content_type", "headers", "status", "status_description")

    def __init__(self) -> None:
        self.status: int = 200
        self.status_description: str | None = None
        self.content_type: str | None = None
        self.headers: list[tuple[str, str]] = []
        self._chunks: list[bytes] = []
        self._ended: bool = False

    @property
    def ended(self) -> bool:
        return self._ended

    def _check_open(self) -> None:
        if self._ended:
            msg = "Response has already ended"
            raise RuntimeError(msg)

    def set_status_code(self, status: int) -> None:
        self._check_open()
        self.status = status

    def set_status_description(self, description: str | None) -> None:
        self._check_open()
        self.status_description = description

    def set_content_type(self, content_type: str) -> None:
        self._check_open()
        self.content_type = content_type

    def set_header(self, name: str, value: str) -> None:
        """Set header *name*, replacing any earlier value."""
        self._check_open()
        if name.lower() == "content-type":
            self.content_type = value
            return
        lowered = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != lowered]
        self.headers.append((name, value))

    def write(self, body: str | bytes) -> None:
        """Append *body* to the response."""
        self._check_open()
        self._chunks.append(body.encode("utf-8") if isinstance(body, str) else body)

    def end(self) -> None:
        """Seal the response. Idempotent."""
        self._ended = True

    def to_response(self) -> Response:
        """Freeze the written state into a ``Response``."""
        return Response(
            body=b"".join(self._chunks),
            status=self.status,
            status_description=self.status_description,
            content_type=self.content_type,
            headers=tuple(self.headers),
        )

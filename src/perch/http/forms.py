"""Form body parsing — URL-encoded and multipart.

The dispatcher parses the body once, before the ``Request`` snapshot is
built, so form fields and uploaded files are plain immutable mappings by
the time a controller sees them.

URL-encoded bodies use stdlib ``urllib.parse``; multipart bodies use
``python-multipart``.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

FORM_CONTENT_TYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})

UPLOAD_OK = 0
UPLOAD_NO_FILE = 4


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    ``error`` follows the upload error-code convention: ``0`` (``UPLOAD_OK``)
    means the file arrived intact, ``4`` (``UPLOAD_NO_FILE``) means the
    field was submitted without choosing a file. Content is held in memory.
    """

    filename: str
    content_type: str
    size: int
    content: bytes = field(repr=False)
    error: int = 0

    def read(self) -> bytes:
        """Return the file content as bytes."""
        return self.content

    def save(self, path: str | Path) -> None:
        """Write the file content to *path*. Parent directories must exist."""
        Path(path).write_bytes(self.content)


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    ``__getitem__`` returns the first value for a key (string fields only).
    ``get_list`` returns all values for a key. ``files`` holds the first
    upload per field; ``get_file_list`` returns every upload for a field.

    Usage::

        name = request.form("username")
        avatar = request.files("avatar")  # UploadFile or None
    """

    __slots__ = ("_data", "_file_lists", "_files")

    def __init__(
        self,
        data: dict[str, list[str]] | None = None,
        files: Mapping[str, UploadFile | list[UploadFile]] | None = None,
    ) -> None:
        file_lists = {
            key: list(value) if isinstance(value, list) else [value]
            for key, value in (files or {}).items()
            if value
        }
        object.__setattr__(self, "_data", data or {})
        object.__setattr__(self, "_file_lists", file_lists)
        object.__setattr__(self, "_files", {key: value[0] for key, value in file_lists.items()})

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """Uploaded files by field name."""
        return self._files

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))

    def get_file_list(self, key: str) -> list[UploadFile]:
        """Return every upload submitted under *key* (``multiple`` inputs)."""
        return list(self._file_lists.get(key, []))


def is_form_content_type(content_type: str) -> bool:
    """True if *content_type* names a form encoding the parser accepts."""
    return content_type.lower().split(";")[0].strip() in FORM_CONTENT_TYPES


def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body into FormData.

    Supports ``application/x-www-form-urlencoded`` and
    ``multipart/form-data``.

    Raises:
        ValueError: If the content type is not a form encoding, or a
            multipart body has no boundary.
    """
    ct_lower = content_type.lower().split(";")[0].strip()

    if ct_lower == "application/x-www-form-urlencoded":
        return FormData(parse_qs(body.decode("utf-8"), keep_blank_values=True))

    if ct_lower == "multipart/form-data":
        return _parse_multipart(body, content_type)

    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    from python_multipart.multipart import MultipartParser, parse_options_header

    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    data: dict[str, list[str]] = {}
    files: dict[str, list[UploadFile]] = {}

    # Per-part state, reset on every part boundary
    headers: dict[str, str] = {}
    chunk = bytearray()
    pending_header = ""
    field_name: str | None = None
    filename: str | None = None

    def on_part_begin() -> None:
        nonlocal headers, chunk, field_name, filename
        headers = {}
        chunk = bytearray()
        field_name = None
        filename = None

    def on_part_data(buf: bytes, start: int, end: int) -> None:
        chunk.extend(buf[start:end])

    def on_part_end() -> None:
        if field_name is None:
            return
        if filename is not None:
            content = bytes(chunk)
            # An untouched file input still sends an empty, nameless part
            error = UPLOAD_NO_FILE if not filename and not content else UPLOAD_OK
            files.setdefault(field_name, []).append(
                UploadFile(
                    filename=filename,
                    content_type=headers.get("content-type", "application/octet-stream"),
                    size=len(content),
                    content=content,
                    error=error,
                )
            )
        else:
            data.setdefault(field_name, []).append(chunk.decode("utf-8", errors="replace"))

    def on_header_field(buf: bytes, start: int, end: int) -> None:
        nonlocal pending_header
        pending_header = buf[start:end].decode("latin-1").lower()

    def on_header_value(buf: bytes, start: int, end: int) -> None:
        nonlocal field_name, filename
        value = buf[start:end].decode("latin-1")
        headers[pending_header] = value
        if pending_header == "content-disposition":
            _, params = parse_options_header(value.encode("latin-1"))
            name = params.get(b"name")
            if name is not None:
                field_name = name.decode("utf-8")
            fname = params.get(b"filename")
            if fname is not None:
                filename = fname.decode("utf-8")

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
    }

    parser = MultipartParser(boundary, callbacks)
    parser.write(body)
    parser.finalize()

    return FormData(data, files)

"""Immutable HTTP request.

A frozen snapshot of everything the client sent: server variables,
cookies, query string, form fields, and uploaded files. Derived values
(URL, path, headers, language preferences) are computed on first access
and cached for the lifetime of the request.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import SplitResult, urlsplit

from perch.errors import MissingRequestField
from perch.http.cookies import parse_cookies
from perch.http.environ import server_variables
from perch.http.forms import FormData, UploadFile
from perch.http.query import QueryParams

_V = TypeVar("_V")

_LANGUAGE_RE = re.compile(
    r"([a-z]{1,8}(-[a-z]{1,8})?)\s*(;\s*q\s*=\s*(1|0\.[0-9]+))?",
    re.IGNORECASE,
)


def single_or_all(mapping: Mapping[str, _V], key: str | None) -> Mapping[str, _V] | _V | None:
    """Return ``mapping[key]`` (``None`` when missing), or the whole mapping when *key* is None."""
    if key is None:
        return mapping
    return mapping.get(key)


def _header_name(variable: str) -> str:
    """``HTTP_ACCEPT_ENCODING`` -> ``Accept-Encoding``."""
    return "-".join(word.capitalize() for word in variable[5:].lower().split("_"))


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Build one per inbound call with ``Request.from_asgi()`` or directly
    from mappings (handy in tests)::

        req = Request({"REQUEST_METHOD": "GET", "REQUEST_URI": "/?q=1"})
        req.path            # "/"
        req.query("q")      # "1"
        req.headers()       # {}: no HTTP_* variables

    Accessors that take an optional key follow one contract: with a key
    they return that entry or ``None``; without a key they return the
    whole mapping.
    """

    variables: Mapping[str, str]
    cookie_values: Mapping[str, str] = field(default_factory=dict)
    query_params: QueryParams = field(default_factory=QueryParams)
    form_data: FormData = field(default_factory=FormData)

    # Private: mutable cache for derived values
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Single-key-or-all accessors --

    def server(self, key: str | None = None) -> Any:
        """Server variables."""
        return single_or_all(self.variables, key)

    def cookies(self, key: str | None = None) -> Any:
        """Cookies sent by the client."""
        return single_or_all(self.cookie_values, key)

    def query(self, key: str | None = None) -> Any:
        """Query string parameters (first value per name)."""
        return single_or_all(self.query_params, key)

    def form(self, key: str | None = None) -> Any:
        """Form fields from a URL-encoded or multipart body."""
        return single_or_all(self.form_data, key)

    def files(self, key: str | None = None) -> Mapping[str, UploadFile] | UploadFile | None:
        """Uploaded files by field name."""
        return single_or_all(self.form_data.files, key)

    def headers(self, key: str | None = None) -> Any:
        """HTTP headers rebuilt from ``HTTP_*`` server variables.

        Names are normalized: ``HTTP_USER_AGENT`` becomes ``User-Agent``.
        """
        if "headers" not in self._cache:
            self._cache["headers"] = {
                _header_name(name): value
                for name, value in self.variables.items()
                if name.startswith("HTTP_")
            }
        return single_or_all(self._cache["headers"], key)

    # -- Derived URL values --

    @property
    def url(self) -> SplitResult:
        """The full request URL split into scheme, netloc, path, query, fragment.

        Raises ``MissingRequestField`` when ``HTTP_HOST`` is absent.
        """
        if "url" not in self._cache:
            host = self.variables.get("HTTP_HOST")
            if not host:
                raise MissingRequestField("HTTP_HOST")
            scheme = "https" if self.is_secure_connection else "http"
            self._cache["url"] = urlsplit(f"{scheme}://{host}{self.raw_url}")
        return self._cache["url"]

    @property
    def raw_url(self) -> str:
        """The request target as sent: ``/home/example?search=123``."""
        return self.variables.get("REQUEST_URI", "")

    @property
    def path(self) -> str:
        """The raw URL without its query string: ``/home/example``."""
        if "path" not in self._cache:
            self._cache["path"] = self.raw_url.partition("?")[0]
        return self._cache["path"]

    @property
    def query_string(self) -> str:
        """The raw ``QUERY_STRING``."""
        return self.variables.get("QUERY_STRING", "")

    @property
    def url_referrer(self) -> str | None:
        """The URL of the page that linked here, if the client sent one."""
        return self.variables.get("HTTP_REFERER")

    @property
    def document_root(self) -> str:
        """``DOCUMENT_ROOT``, or the working directory when unset."""
        return self.variables.get("DOCUMENT_ROOT") or os.getcwd()

    # -- Method and connection --

    @property
    def method(self) -> str:
        """The HTTP method (``GET``, ``POST``, ``HEAD``...).

        Raises ``MissingRequestField`` when ``REQUEST_METHOD`` is absent.
        """
        try:
            return self.variables["REQUEST_METHOD"]
        except KeyError:
            raise MissingRequestField("REQUEST_METHOD") from None

    @property
    def is_post(self) -> bool:
        return self.method == "POST"

    @property
    def is_secure_connection(self) -> bool:
        """True for HTTPS: a non-empty, non-``off`` ``HTTPS`` flag or port 443."""
        https = self.variables.get("HTTPS", "")
        if https and https != "off":
            return True
        return self.variables.get("SERVER_PORT") == "443"

    @property
    def user_agent(self) -> str | None:
        return self.variables.get("HTTP_USER_AGENT")

    @property
    def user_host_address(self) -> str | None:
        """The client IP address."""
        return self.variables.get("REMOTE_ADDR")

    # -- Content --

    @property
    def content_type(self) -> str:
        """``CONTENT_TYPE`` or ``HTTP_CONTENT_TYPE``, else an empty string."""
        for name in ("CONTENT_TYPE", "HTTP_CONTENT_TYPE"):
            value = self.variables.get(name)
            if value:
                return value
        return ""

    @property
    def content_length(self) -> int | None:
        value = self.variables.get("CONTENT_LENGTH")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    def user_languages(self) -> dict[str, float]:
        """Client language preferences from ``Accept-Language``.

        Returns language tag -> weight, highest weight first. A tag
        without ``q=`` weighs 1.0. Equal weights keep header order::

            "en-US,en;q=0.5,fr;q=0.8" -> {"en-US": 1.0, "fr": 0.8, "en": 0.5}
        """
        if "languages" not in self._cache:
            header = self.variables.get("HTTP_ACCEPT_LANGUAGE", "")
            weights: dict[str, float] = {}
            for match in _LANGUAGE_RE.finditer(header):
                tag, weight = match.group(1), match.group(4)
                weights[tag] = float(weight) if weight else 1.0
            ordered = sorted(weights.items(), key=lambda item: item[1], reverse=True)
            self._cache["languages"] = dict(ordered)
        return dict(self._cache["languages"])

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Mapping[str, Any],
        *,
        form: FormData | None = None,
        document_root: str | Path | None = None,
    ) -> Request:
        """Create a Request from an ASGI ``http`` scope and a parsed body."""
        variables = server_variables(scope, document_root=document_root)
        return cls(
            variables=variables,
            cookie_values=parse_cookies(variables.get("HTTP_COOKIE", "")),
            query_params=QueryParams(variables["QUERY_STRING"]),
            form_data=form or FormData(),
        )

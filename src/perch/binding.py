"""Binding request data to action arguments.

Actions declare what they want by parameter name or annotation::

    def save(self, model): ...                    # the request model
    def search(self, request: Request): ...       # the request itself
    def create(self, form: SignupForm): ...       # a dataclass filled from the form

Dataclass parameters are populated from the form body on POST and from
the query string otherwise, converting string values to the annotated
field types.  Supported field types: ``str``, ``int``, ``float``,
``bool``.  Missing keys use the dataclass field default.  Type
conversion failures keep the raw value.
"""

from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Callable, Mapping
from types import SimpleNamespace
from typing import Any

from perch.config import AppConfig
from perch.http.request import Request


def is_extractable_dataclass(annotation: Any) -> bool:
    """Return True if *annotation* is a user-defined dataclass type.

    Excludes perch's own dataclass types (``Request``, ``ViewResult``,
    etc.) which are never populated from query/form data.
    """
    if not isinstance(annotation, type) or not dataclasses.is_dataclass(annotation):
        return False

    module = getattr(annotation, "__module__", "") or ""
    return not module.startswith("perch.")


def extract_dataclass[T](cls: type[T], data: Mapping[str, Any]) -> T:
    """Create a dataclass instance from a mapping (query params or form).

    For each field in *cls*, looks up the field name in *data*.  If found,
    converts the value to the field's annotated type.  If missing, the
    field's default applies.
    """
    kwargs: dict[str, Any] = {}

    for f in dataclasses.fields(cls):  # type: ignore[arg-type]
        if f.name not in data:
            continue

        target_type = f.type
        if isinstance(target_type, str):
            target_type = _resolve_type(target_type)

        kwargs[f.name] = _convert(data[f.name], target_type)

    return cls(**kwargs)


def _convert(value: Any, target_type: Any) -> Any:
    """Convert *value* to *target_type*, returning *value* unchanged on failure."""
    if target_type is str:
        s = str(value)
        return s.strip() if isinstance(value, str) else s

    if target_type is int:
        try:
            return int(value)
        except (ValueError, TypeError):
            return value

    if target_type is float:
        try:
            return float(value)
        except (ValueError, TypeError):
            return value

    if target_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return bool(value)

    return value


def _resolve_type(name: str) -> type | str:
    """Resolve common type names from string annotations."""
    builtins: dict[str, type] = {
        "str": str,
        "int": int,
        "float": float,
        "bool": bool,
    }
    return builtins.get(name, name)


def build_request_model(request: Request, config: AppConfig) -> SimpleNamespace | None:
    """The model handed to an action.

    A POST binds the form fields (first value per key). With
    ``bind_query_model`` other methods bind the query string. Otherwise
    there is no model.
    """
    if request.is_post:
        return SimpleNamespace(**{key: request.form_data.get(key) for key in request.form_data})
    if config.bind_query_model:
        return SimpleNamespace(**{key: request.query_params.get(key) for key in request.query_params})
    return None


def build_action_kwargs(
    handler: Callable[..., Any],
    request: Request,
    model: Any,
) -> dict[str, Any]:
    """Build keyword arguments for *handler* by introspecting its signature.

    - ``request`` (by name or ``Request`` annotation) gets the request
    - user dataclass annotations are extracted from the form (POST) or
      the query string
    - the first remaining parameter gets the request model, even when it
      declares a default (``None`` when nothing was bound)
    """
    try:
        sig = inspect.signature(handler, eval_str=True)
    except NameError:
        sig = inspect.signature(handler)

    kwargs: dict[str, Any] = {}
    model_bound = False
    for name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        annotation = param.annotation
        if name == "request" or annotation is Request:
            kwargs[name] = request
        elif is_extractable_dataclass(annotation):
            source = request.form_data if request.is_post else request.query_params
            kwargs[name] = extract_dataclass(annotation, source)
        elif not model_bound:
            kwargs[name] = model
            model_bound = True
    return kwargs

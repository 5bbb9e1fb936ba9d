"""Per-request view state.

One ``ViewContext`` is created when a dispatch starts and dropped when
it finishes. The dispatcher threads it through the pipeline explicitly;
``view_context_var`` publishes the same object for the ``View`` façade
and for code that has no direct reference.

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading. Concurrent requests never see each other's context.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.results import ActionResult


@dataclass(slots=True)
class ModelState:
    """Validation and failure information for the current request.

    ``exception`` is set when the controller action raised.
    """

    exception: BaseException | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.exception is None and not self.errors

    def add_error(self, key: str, message: str) -> None:
        self.errors.setdefault(key, []).append(message)


@dataclass(slots=True)
class ViewContext:
    """State consumed by view rendering.

    Written by the dispatcher and the executing action result, then
    read by views and layouts. ``action_result`` is the payload handed to
    templates as ``model``; ``result`` is the action result variant it came
    from.
    """

    controller: str = ""
    action: str = ""
    layout: str | None = None
    title: str | None = None
    view_data: dict[str, Any] = field(default_factory=dict)
    action_result: Any = None
    result: ActionResult | None = None
    content: Any = None
    model_state: ModelState = field(default_factory=ModelState)
    view_file: Path | None = None


view_context_var: ContextVar[ViewContext] = ContextVar("perch_view_context")
"""The view context of the dispatch running in this task."""


def get_view_context() -> ViewContext:
    """Return the current view context.

    Raises ``LookupError`` if called outside a dispatch.
    """
    return view_context_var.get()


def merge_view_data(existing: Mapping[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Merge view data as a unique union.

    Later keys overwrite earlier ones; then any entry whose value equals
    the value of an earlier entry is dropped, so each value appears once::

        merge_view_data({"a": 1, "b": 2}, {"b": 2, "c": 3})  # {"a": 1, "b": 2, "c": 3}
        merge_view_data({"a": 1}, {"b": 1})                  # {"a": 1}
    """
    merged = {**existing, **incoming}
    result: dict[str, Any] = {}
    seen: list[Any] = []
    for key, value in merged.items():
        if any(value == earlier for earlier in seen):
            continue
        seen.append(value)
        result[key] = value
    return result
